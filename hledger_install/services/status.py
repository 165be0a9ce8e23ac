"""Installed-tool status: where each tool is and which version it reports."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from hledger_install.core.result import Err, Ok
from hledger_install.core.versions import extract_version
from hledger_install.output.console import ConsoleProtocol, Style
from hledger_install.platform.paths import local_bin_dir, on_path
from hledger_install.platform.process import CommandRunner, run

__all__ = ["ToolStatus", "ToolLocator", "StatusReporter"]


@dataclass(frozen=True, slots=True)
class ToolStatus:
    """One line of the status listing.

    Attributes:
        name: Executable name
        version: Reported version, empty if absent or unreadable
        path: Location on PATH, empty if absent
    """

    name: str
    version: str
    path: str

    @property
    def installed(self) -> bool:
        return bool(self.path)

    def __str__(self) -> str:
        if not self.installed:
            return f"{self.name} not found"
        version = f" {self.version}" if self.version else ""
        return f"{self.name}{version} is installed at {self.path}"


class ToolLocator:
    """Look up tools on PATH and ask them for their version."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def location(self, name: str) -> str:
        return self._runner.which(name) or ""

    def version(self, name: str) -> str:
        """First version number in `<name> --version`, or "" if absent.

        The exit status is ignored: some tools print their version and still
        exit non-zero.
        """
        if not self.location(name):
            return ""
        match run(self._runner, [name, "--version"]):
            case Ok(stdout):
                return extract_version(stdout)
            case Err(error):
                return extract_version(error.stdout)

    def status(self, name: str) -> ToolStatus:
        path = self.location(name)
        version = self.version(name) if path else ""
        return ToolStatus(name=name, version=version, path=path)


class StatusReporter:
    """Print the status of every managed tool."""

    def __init__(self, *, locator: ToolLocator, console: ConsoleProtocol) -> None:
        self._locator = locator
        self._console = console

    def collect(self, names: Iterable[str]) -> list[ToolStatus]:
        return [self._locator.status(name) for name in names]

    def report(self, names: Iterable[str]) -> list[ToolStatus]:
        statuses = self.collect(names)
        for status in statuses:
            style = Style.DEFAULT if status.installed else Style.DIM
            self._console.print(str(status), style)
        return statuses

    def warn_if_bin_dir_off_path(self, path_env: str | None = None) -> bool:
        """Warn when ~/.local/bin is missing from PATH.

        Returns:
            True if a warning was printed
        """
        bin_dir = local_bin_dir()
        if on_path(bin_dir, path_env):
            return False
        self._console.warning(f"'{bin_dir}' is not on your PATH.")
        self._console.print(
            "    For best results, please add it to the beginning of PATH in your profile.",
            Style.DIM,
        )
        return True
