"""Error codes and error kinds.

`ErrorCode` values are process exit codes. `ErrorKind` classifies what went
wrong during a single tool's installation attempt; those errors never leave
the tool they belong to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto

__all__ = ["ErrorCode", "ErrorKind", "InstallError"]


class ErrorCode(IntEnum):
    """Exit codes for the installer.

    - 0: Normal completion, including when individual tools failed
    - 1: Fatal precondition (unsupported OS, invalid argument)
    """

    OK = 0
    FATAL = 1

    def __str__(self) -> str:
        return self.name.lower()


class ErrorKind(Enum):
    """What kind of failure an InstallError describes."""

    FATAL_ENVIRONMENT = auto()
    DEPENDENCY_INSTALL_FAILURE = auto()
    DOWNLOAD_FAILURE = auto()
    EXTRACT_FAILURE = auto()
    COPY_INSTALL_FAILURE = auto()
    BACKEND_UNAVAILABLE = auto()
    STRATEGY_FAILURE = auto()
    # Reported, never fatal: the gate falls back to comparing plain strings.
    VERSION_PARSE_AMBIGUOUS = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")


@dataclass(frozen=True, slots=True)
class InstallError:
    """A failure confined to one tool's installation attempt.

    Attributes:
        kind: Classification of the failure
        message: Human-readable description
        hint: Optional suggestion for the user
    """

    kind: ErrorKind
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def is_fatal(self) -> bool:
        return self.kind == ErrorKind.FATAL_ENVIRONMENT
