"""Console output abstraction.

Services print through ConsoleProtocol rather than calling rich directly, so
tests can capture what would have been shown. Detail lines (which package
manager ran, where a bindist came from) are only shown in verbose mode;
status lines, progress and failures always print.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles, valued by their rich style string."""

    DEFAULT = ""
    DIM = "dim"
    BOLD = "bold"
    ERROR = "red"
    WARNING = "yellow"


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a line as-is."""
        ...

    def detail(self, message: str) -> None:
        """Print a line only in verbose mode."""
        ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console on a rich Console; messages are never parsed as markup."""

    def __init__(self, *, quiet: bool = True) -> None:
        from rich.console import Console

        self._console = Console(highlight=False)
        self._quiet = quiet

    @property
    def quiet(self) -> bool:
        return self._quiet

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(message, style=style.value or None, markup=False)

    def detail(self, message: str) -> None:
        if not self._quiet:
            self.print(message, Style.DIM)

    def error(self, message: str) -> None:
        self._console.print(f"error: {message}", style=Style.ERROR.value, markup=False)

    def warning(self, message: str) -> None:
        self._console.print(f"WARNING: {message}", style=Style.WARNING.value, markup=False)

    def newline(self) -> None:
        self._console.print()


@dataclass(frozen=True, slots=True)
class OutputRecord:
    message: str
    style: Style


@dataclass
class MockConsole:
    """Console that records output instead of printing, for tests."""

    quiet: bool = False
    outputs: list[OutputRecord] = field(default_factory=list[OutputRecord])

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def detail(self, message: str) -> None:
        if not self.quiet:
            self.outputs.append(OutputRecord(message, Style.DIM))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"WARNING: {message}", Style.WARNING))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """All records whose message contains substring."""
        return [o for o in self.outputs if substring in o.message]
