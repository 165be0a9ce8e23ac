"""Installation strategies, tried in order for each tool.

1. Installer A (cabal), only when it is present and installer B is not.
2. Installer B (stack), bootstrapping it first if it is missing (or always,
   once per run, when forced), pinned to the configured snapshot.

Each strategy returns a Result; the orchestrator moves on to the next one on
Err.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Protocol

from hledger_install.backends.resolver import INSTALLER_A, INSTALLER_B, BackendResolver
from hledger_install.core.config import Config, ToolSpec
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import ConsoleProtocol
from hledger_install.platform.paths import home
from hledger_install.platform.process import CommandRunner, run_live

__all__ = ["Strategy", "InstallerAStrategy", "InstallerBStrategy", "default_strategies"]


class Strategy(Protocol):
    """One way of installing a tool."""

    name: str

    def applies(self) -> bool:
        """Whether this strategy should be tried on this host."""
        ...

    def attempt(self, tool: ToolSpec) -> Result[None, InstallError]:
        """Try to install the tool and everything it depends on."""
        ...


def _try(
    runner: CommandRunner, console: ConsoleProtocol, argv: list[str], cwd: Path
) -> Result[None, InstallError]:
    console.print(f"Trying {shlex.join(argv)}")
    # Run from $HOME so project-local cabal/stack configuration is ignored.
    result = run_live(runner, argv, cwd=cwd)
    if isinstance(result, Err):
        return Err(InstallError(kind=ErrorKind.STRATEGY_FAILURE, message=str(result.error)))
    return Ok(None)


class InstallerAStrategy:
    """Direct versioned install with cabal."""

    name = INSTALLER_A

    def __init__(
        self,
        *,
        config: Config,
        resolver: BackendResolver,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._resolver = resolver
        self._runner = runner
        self._console = console

    def applies(self) -> bool:
        return self._resolver.has_installer_a() and not self._resolver.has_installer_b()

    def argv(self, tool: ToolSpec) -> list[str]:
        verbosity = 1 if self._config.verbose else 0
        return [INSTALLER_A, "install", *tool.closure(), f"--verbose={verbosity}"]

    def attempt(self, tool: ToolSpec) -> Result[None, InstallError]:
        return _try(self._runner, self._console, self.argv(tool), home())


class InstallerBStrategy:
    """Snapshot-pinned install with stack, bootstrapping stack if needed."""

    name = INSTALLER_B

    def __init__(
        self,
        *,
        config: Config,
        resolver: BackendResolver,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._resolver = resolver
        self._runner = runner
        self._console = console
        self._bootstrap: Result[None, InstallError] | None = None
        self._executable = INSTALLER_B

    def applies(self) -> bool:
        return True

    def ensure_installer(self) -> Result[None, InstallError]:
        """Make sure stack is on PATH.

        Bootstraps at most once per run. A failed bootstrap is remembered,
        so later tools fail fast instead of downloading again.
        """
        if self._bootstrap is not None:
            return self._bootstrap
        if self._resolver.has_installer_b() and not self._config.force:
            return Ok(None)

        self._console.print(f"Installing {INSTALLER_B}")
        installed = self._resolver.install_installer_b()
        if isinstance(installed, Err):
            self._bootstrap = Err(installed.error)
            return self._bootstrap

        # ~/.local/bin may not be on PATH yet; call the new binary directly.
        if not self._resolver.has_installer_b():
            self._executable = str(installed.value)
        self._bootstrap = Ok(None)
        return self._bootstrap

    def argv(self, tool: ToolSpec) -> list[str]:
        verbosity = "info" if self._config.verbose else "error"
        argv = [self._executable, "install", "--install-ghc"]
        if self._config.snapshot:
            argv.append(f"--resolver={self._config.snapshot}")
        argv.extend(tool.closure())
        argv.append(f"--verbosity={verbosity}")
        return argv

    def attempt(self, tool: ToolSpec) -> Result[None, InstallError]:
        ready = self.ensure_installer()
        if isinstance(ready, Err):
            return ready
        return _try(self._runner, self._console, self.argv(tool), home())


def default_strategies(
    *,
    config: Config,
    resolver: BackendResolver,
    runner: CommandRunner,
    console: ConsoleProtocol,
) -> list[Strategy]:
    return [
        InstallerAStrategy(config=config, resolver=resolver, runner=runner, console=console),
        InstallerBStrategy(config=config, resolver=resolver, runner=runner, console=console),
    ]
