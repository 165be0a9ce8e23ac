"""Version comparison and the install gate.

Versions are dot-separated numeric segments ("1.3", "0.2.0.10"). Missing
trailing segments count as 0, so "1.3" == "1.3.0" and "1.3" < "1.10".

If either side has a non-numeric segment, the comparison degrades to plain
string ordering. That can give wrong answers for schemes such as
"1.3-rc1"; callers can detect the degraded case with `is_ambiguous()`.
"""

from __future__ import annotations

import re
from enum import Enum, auto
from itertools import zip_longest

__all__ = [
    "Ordering",
    "GateDecision",
    "compare",
    "is_ambiguous",
    "gate",
    "extract_version",
]


class Ordering(Enum):
    LESS = auto()
    EQUAL = auto()
    GREATER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class GateDecision(Enum):
    """Outcome of the install gate for one tool."""

    ALREADY_SATISFIED = auto()
    PROCEED = auto()


def _segments(version: str) -> list[int] | None:
    if not version:
        return []
    parts = version.split(".")
    if not all(part.isdigit() for part in parts):
        return None
    return [int(part) for part in parts]


def is_ambiguous(a: str, b: str) -> bool:
    """Return True if comparing a and b falls back to string ordering."""
    return _segments(a) is None or _segments(b) is None


def _order[T: (int, str)](a: T, b: T) -> Ordering:
    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


def compare(a: str, b: str) -> Ordering:
    """Compare two version strings.

    The empty string compares LESS than any non-empty version.

    Example:
        compare("1.3", "1.10") -> Ordering.LESS
        compare("1.3", "1.3.0") -> Ordering.EQUAL
    """
    if not a or not b:
        return _order(bool(a), bool(b))

    left = _segments(a)
    right = _segments(b)
    if left is None or right is None:
        return _order(a, b)

    for x, y in zip_longest(left, right, fillvalue=0):
        if x != y:
            return _order(x, y)
    return Ordering.EQUAL


def gate(installed: str | None, desired: str, *, force: bool) -> GateDecision:
    """Decide whether a tool needs installing.

    Args:
        installed: Installed version, or None/"" when the tool is absent
        desired: Version the tool should be at
        force: Reinstall even if the installed version is new enough

    Returns:
        ALREADY_SATISFIED iff installed >= desired and force is unset
    """
    if force:
        return GateDecision.PROCEED
    if compare(installed or "", desired) == Ordering.LESS:
        return GateDecision.PROCEED
    return GateDecision.ALREADY_SATISFIED


_FIRST_NUMBER_RE = re.compile(r"[0-9][0-9.]*")


def extract_version(output: str) -> str:
    """Extract a version from `<cmd> --version` output.

    Takes the first line containing a digit and returns the first run of
    digits and dots in it, without trailing dots.

    Example:
        extract_version("hledger 1.3.1, linux-x86_64") -> "1.3.1"
    """
    for line in output.splitlines():
        match = _FIRST_NUMBER_RE.search(line)
        if match:
            return match.group(0).rstrip(".")
    return ""
