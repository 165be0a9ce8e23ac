"""Tests for hledger_install.core.versions module."""

from __future__ import annotations

import pytest

from hledger_install.core.versions import (
    GateDecision,
    Ordering,
    compare,
    extract_version,
    gate,
    is_ambiguous,
)


class TestCompare:
    """Test numeric segment-wise comparison."""

    def test_numeric_not_lexicographic(self) -> None:
        assert compare("1.3", "1.10") == Ordering.LESS
        assert compare("1.10", "1.3") == Ordering.GREATER
        # Plain string ordering would say the opposite.
        assert "1.3" > "1.10"

    def test_equal(self) -> None:
        assert compare("1.3", "1.3") == Ordering.EQUAL

    @pytest.mark.parametrize("a,b", [("1.3", "1.3.0"), ("1.3.0.0", "1.3"), ("2", "2.0")])
    def test_trailing_zeros_are_equal(self, a: str, b: str) -> None:
        assert compare(a, b) == Ordering.EQUAL

    def test_longer_version_with_nonzero_tail_is_greater(self) -> None:
        assert compare("0.2.0.10", "0.2.0") == Ordering.GREATER

    def test_leading_zeros_compare_numerically(self) -> None:
        assert compare("1.03", "1.3") == Ordering.EQUAL

    def test_empty_is_less_than_anything(self) -> None:
        assert compare("", "0") == Ordering.LESS
        assert compare("0.1", "") == Ordering.GREATER
        assert compare("", "") == Ordering.EQUAL

    def test_non_numeric_falls_back_to_string_order(self) -> None:
        # "1.3-rc1" > "1.3" as strings, even though it is a pre-release.
        assert compare("1.3-rc1", "1.3") == Ordering.GREATER
        assert compare("1.10a", "1.9") == Ordering.LESS

    def test_antisymmetric(self) -> None:
        pairs = [("1.3", "1.10"), ("0.1.1.11", "0.1.2"), ("2", "1.99.99")]
        for a, b in pairs:
            forward = compare(a, b)
            backward = compare(b, a)
            assert {forward, backward} == {Ordering.LESS, Ordering.GREATER}


class TestIsAmbiguous:
    def test_numeric_versions(self) -> None:
        assert is_ambiguous("1.3", "1.10") is False

    def test_empty_is_not_ambiguous(self) -> None:
        assert is_ambiguous("", "1.3") is False

    def test_non_numeric_segment(self) -> None:
        assert is_ambiguous("1.3-rc1", "1.3") is True
        assert is_ambiguous("1.3", "1..3") is True


class TestGate:
    """Test the install gate decision."""

    def test_absent_tool_proceeds(self) -> None:
        assert gate("", "1.3", force=False) == GateDecision.PROCEED
        assert gate(None, "1.3", force=False) == GateDecision.PROCEED

    def test_older_proceeds(self) -> None:
        assert gate("1.2.1", "1.3", force=False) == GateDecision.PROCEED

    def test_equal_is_satisfied(self) -> None:
        assert gate("1.3", "1.3", force=False) == GateDecision.ALREADY_SATISFIED

    def test_newer_is_satisfied(self) -> None:
        assert gate("1.10", "1.3", force=False) == GateDecision.ALREADY_SATISFIED

    def test_force_always_proceeds(self) -> None:
        assert gate("1.10", "1.3", force=True) == GateDecision.PROCEED
        assert gate("1.3", "1.3", force=True) == GateDecision.PROCEED

    def test_pure(self) -> None:
        decisions = {gate("1.2", "1.3", force=False) for _ in range(5)}
        assert decisions == {GateDecision.PROCEED}


class TestExtractVersion:
    def test_first_number_on_line(self) -> None:
        assert extract_version("hledger 1.3.1, linux-x86_64") == "1.3.1"

    def test_skips_lines_without_digits(self) -> None:
        assert extract_version("hledger-iadd\nversion 1.2.3\n") == "1.2.3"

    def test_strips_trailing_dot(self) -> None:
        assert extract_version("Version 1.5.1.") == "1.5.1"

    def test_no_digits(self) -> None:
        assert extract_version("no version here") == ""
        assert extract_version("") == ""
