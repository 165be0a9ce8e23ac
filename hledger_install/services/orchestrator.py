"""Install every managed tool, one at a time, continuing past failures.

For each tool in the table's order: ask the tool for its installed version,
skip it if the gate says it is new enough, otherwise try each applicable
strategy until one succeeds. A tool whose strategies all fail is recorded
as failed and the run moves on; nothing one tool does can stop the next.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from hledger_install.core.config import Config, ToolSpec
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err
from hledger_install.core.versions import GateDecision, gate, is_ambiguous
from hledger_install.output.console import ConsoleProtocol, Style
from hledger_install.services.strategies import Strategy

__all__ = ["Outcome", "InstallResult", "VersionSource", "InstallOrchestrator"]

SEPARATOR = "-" * 10


class Outcome(Enum):
    ALREADY_SATISFIED = auto()
    INSTALLED = auto()
    FAILED = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")


@dataclass(frozen=True, slots=True)
class InstallResult:
    """What happened to one tool.

    Attributes:
        tool: Tool name
        outcome: Skipped, installed, or failed
        message: Installed version, the winning strategy, or the last error
    """

    tool: str
    outcome: Outcome
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome != Outcome.FAILED


class VersionSource(Protocol):
    """Reports the installed version of a tool ("" when absent)."""

    def version(self, name: str) -> str: ...


class InstallOrchestrator:
    """Run the gate and the strategies over the whole tool table.

    Usage:
        orchestrator = InstallOrchestrator(
            config=config, versions=locator, strategies=strategies, console=console
        )
        results = orchestrator.run()
    """

    def __init__(
        self,
        *,
        config: Config,
        versions: VersionSource,
        strategies: Sequence[Strategy],
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._versions = versions
        self._strategies = list(strategies)
        self._console = console

    def check(self, tool: ToolSpec) -> GateDecision:
        installed = self._versions.version(tool.name)
        if installed and is_ambiguous(installed, tool.version):
            note = InstallError(
                kind=ErrorKind.VERSION_PARSE_AMBIGUOUS,
                message=(
                    f"{tool.name}: version {installed!r} is not purely numeric, "
                    f"comparing with {tool.version!r} as plain text"
                ),
            )
            self._console.detail(f"{note.kind}: {note}")
        return gate(installed, tool.version, force=self._config.force)

    def install_tool(self, tool: ToolSpec) -> InstallResult:
        """Gate and install one tool. Never raises for install failures."""
        if self.check(tool) == GateDecision.ALREADY_SATISFIED:
            return InstallResult(tool.name, Outcome.ALREADY_SATISFIED, tool.version)

        self._console.print(f"Installing {tool.name}", Style.BOLD)
        last_error = "no applicable installation strategy"
        for strategy in self._strategies:
            if not strategy.applies():
                continue
            result = strategy.attempt(tool)
            if isinstance(result, Err):
                last_error = result.error.message
                self._console.detail(f"{strategy.name}: {last_error}")
                if result.error.hint:
                    self._console.detail(f"hint: {result.error.hint}")
                continue
            self._console.newline()
            return InstallResult(tool.name, Outcome.INSTALLED, strategy.name)

        self._console.error(f"Failed to install {shlex.join(tool.closure())}")
        self._console.print(last_error, Style.DIM)
        self._console.newline()
        return InstallResult(tool.name, Outcome.FAILED, last_error)

    def run(self) -> list[InstallResult]:
        """Install every tool in order; exactly one result per tool."""
        self._console.print(SEPARATOR)
        results = [self.install_tool(tool) for tool in self._config.table.tools]
        self._console.print(SEPARATOR)
        return results
