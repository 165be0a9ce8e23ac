"""Subprocess execution behind an injectable runner.

Everything the installer does to the host (probing `uname`, running package
managers, curl, cabal, stack) goes through a CommandRunner, so tests can
substitute a fake that records calls and returns canned output.

Calls block until the command exits; there is no timeout.

Usage:
    result = run(runner, ["stack", "--version"])
    match result:
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"Failed: {error}")
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from hledger_install.core.result import Err, Ok, Result

__all__ = [
    "CommandRunner",
    "DefaultCommandRunner",
    "MockCommandRunner",
    "RecordedCall",
    "ProcessError",
    "run",
    "run_live",
]

COMMAND_NOT_FOUND = 127


class CommandRunner(Protocol):
    """Protocol for running commands and locating executables."""

    def run(
        self, args: list[str], *, capture: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and return the result.

        Args:
            args: Command and arguments
            capture: Whether to capture stdout/stderr
            cwd: Working directory (optional)

        Returns:
            CompletedProcess with returncode, stdout, stderr
        """
        ...

    def which(self, name: str) -> str | None:
        """Return the full path of an executable on PATH, or None."""
        ...


class DefaultCommandRunner:
    """Default command runner using subprocess.run."""

    def run(
        self, args: list[str], *, capture: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                args,
                capture_output=capture,
                text=True,
                check=False,
                cwd=cwd,
            )
        except OSError as e:
            return subprocess.CompletedProcess(args, COMMAND_NOT_FOUND, "", str(e))

    def which(self, name: str) -> str | None:
        return shutil.which(name)


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    runner: CommandRunner, cmd: list[str], *, cwd: Path | None = None
) -> Result[str, ProcessError]:
    """Execute a command, capturing output.

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    proc = runner.run(cmd, capture=True, cwd=cwd)
    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout or "",
                stderr=proc.stderr or "",
            )
        )
    return Ok(proc.stdout or "")


def run_live(
    runner: CommandRunner, cmd: list[str], *, cwd: Path | None = None
) -> Result[None, ProcessError]:
    """Execute a command with output streaming to the terminal.

    Use this for package managers and installers, whose progress the user
    should see.
    """
    proc = runner.run(cmd, capture=False, cwd=cwd)
    if proc.returncode != 0:
        return Err(ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr=""))
    return Ok(None)


@dataclass(frozen=True, slots=True)
class RecordedCall:
    """A command run through MockCommandRunner."""

    args: tuple[str, ...]
    capture: bool
    cwd: Path | None


@dataclass
class MockCommandRunner:
    """Command runner that returns canned results, for testing.

    `responses` maps an argv prefix to (returncode, stdout); the longest
    matching prefix wins, and unmatched commands succeed with no output.
    `executables` maps names to the paths `which()` reports.
    """

    executables: dict[str, str] = field(default_factory=dict[str, str])
    responses: dict[tuple[str, ...], tuple[int, str]] = field(
        default_factory=dict[tuple[str, ...], tuple[int, str]]
    )
    calls: list[RecordedCall] = field(default_factory=list[RecordedCall])

    def run(
        self, args: list[str], *, capture: bool = True, cwd: Path | None = None
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(RecordedCall(tuple(args), capture, cwd))
        returncode, stdout = 0, ""
        for prefix in sorted(self.responses, key=len, reverse=True):
            if tuple(args[: len(prefix)]) == prefix:
                returncode, stdout = self.responses[prefix]
                break
        return subprocess.CompletedProcess(args, returncode, stdout, "")

    def which(self, name: str) -> str | None:
        return self.executables.get(name)

    # Test helper methods

    def add_executable(self, name: str, path: str | None = None) -> None:
        self.executables[name] = path or f"/usr/bin/{name}"

    def respond(self, *prefix: str, returncode: int = 0, stdout: str = "") -> None:
        self.responses[prefix] = (returncode, stdout)

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [call.args for call in self.calls]

    def ran(self, *prefix: str) -> bool:
        """Whether any command starting with prefix was run."""
        return any(args[: len(prefix)] == prefix for args in self.commands)
