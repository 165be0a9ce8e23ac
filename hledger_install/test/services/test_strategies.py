"""Tests for hledger_install.services.strategies module."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from hledger_install.backends.packages import PackageManager
from hledger_install.backends.resolver import BackendResolver
from hledger_install.core.config import Config, ToolSpec, ToolTable
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import MockConsole
from hledger_install.platform.detection import DistroFamily, DistroInfo, Isa, OsKind, WordWidth
from hledger_install.platform.process import MockCommandRunner
from hledger_install.services.strategies import InstallerAStrategy, InstallerBStrategy

LIB = ToolSpec("hledger-lib", "1.3")
HLEDGER = ToolSpec("hledger", "1.3", (LIB,))


class NoPackages:
    def install(self, manager: PackageManager, packages: Sequence[str]) -> Result[None, InstallError]:
        return Ok(None)

    def detect(self) -> PackageManager | None:
        return None

    def try_install(self, packages: Sequence[str]) -> Result[None, InstallError]:
        return Ok(None)


class StackBindist:
    """Installs stack by making it visible to the runner."""

    def __init__(self, runner: MockCommandRunner, target: Path, *, on_path: bool = True) -> None:
        self.runner = runner
        self.target = target
        self.on_path = on_path
        self.installs = 0

    def install(self, flavor: str) -> Result[Path, InstallError]:
        self.installs += 1
        if self.on_path:
            self.runner.add_executable("stack", str(self.target))
        return Ok(self.target)


class BrokenBindist:
    def __init__(self) -> None:
        self.installs = 0

    def install(self, flavor: str) -> Result[Path, InstallError]:
        self.installs += 1
        return Err(InstallError(ErrorKind.DOWNLOAD_FAILURE, "download failed"))


def _config(*, force: bool = False, verbose: bool = False) -> Config:
    table = ToolTable(
        installer_name="hledger-install",
        installer_version="1",
        snapshot="lts-8",
        primary=(HLEDGER,),
        auxiliary=(),
    )
    return Config(table=table, force=force, verbose=verbose)


def _resolver(
    runner: MockCommandRunner, bindist: StackBindist | BrokenBindist
) -> BackendResolver:
    return BackendResolver(
        distro=DistroInfo(OsKind.LINUX, DistroFamily.UBUNTU, "20.04", Isa.X86, WordWidth.BITS_64),
        packages=NoPackages(),
        bindist=bindist,
        runner=runner,
        console=MockConsole(),
    )


@pytest.fixture
def home_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


class TestInstallerAStrategy:
    def _strategy(self, runner: MockCommandRunner, *, verbose: bool = False) -> InstallerAStrategy:
        bindist = BrokenBindist()
        return InstallerAStrategy(
            config=_config(verbose=verbose),
            resolver=_resolver(runner, bindist),
            runner=runner,
            console=MockConsole(),
        )

    def test_applies_only_without_stack(self) -> None:
        runner = MockCommandRunner()
        runner.add_executable("cabal")
        assert self._strategy(runner).applies() is True

        runner.add_executable("stack")
        assert self._strategy(runner).applies() is False

    def test_not_applicable_without_cabal(self) -> None:
        assert self._strategy(MockCommandRunner()).applies() is False

    def test_argv(self) -> None:
        strategy = self._strategy(MockCommandRunner())
        assert strategy.argv(HLEDGER) == ["cabal", "install", "hledger-1.3", "hledger-lib-1.3", "--verbose=0"]

    def test_argv_verbose(self) -> None:
        strategy = self._strategy(MockCommandRunner(), verbose=True)
        assert strategy.argv(HLEDGER)[-1] == "--verbose=1"

    def test_runs_from_home(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        strategy = self._strategy(runner)

        assert isinstance(strategy.attempt(HLEDGER), Ok)
        assert runner.calls[0].cwd == home_dir

    def test_failure(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        runner.respond("cabal", returncode=1)

        result = self._strategy(runner).attempt(HLEDGER)

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.STRATEGY_FAILURE


class TestInstallerBStrategy:
    def test_argv(self) -> None:
        runner = MockCommandRunner()
        strategy = InstallerBStrategy(
            config=_config(),
            resolver=_resolver(runner, BrokenBindist()),
            runner=runner,
            console=MockConsole(),
        )
        assert strategy.argv(HLEDGER) == [
            "stack",
            "install",
            "--install-ghc",
            "--resolver=lts-8",
            "hledger-1.3",
            "hledger-lib-1.3",
            "--verbosity=error",
        ]

    def test_existing_stack_is_not_bootstrapped(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        runner.add_executable("stack")
        bindist = StackBindist(runner, home_dir / "stack")
        strategy = InstallerBStrategy(
            config=_config(), resolver=_resolver(runner, bindist), runner=runner, console=MockConsole()
        )

        assert isinstance(strategy.attempt(HLEDGER), Ok)
        assert bindist.installs == 0

    def test_bootstraps_once(self, home_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", "/usr/bin")
        runner = MockCommandRunner()
        bindist = StackBindist(runner, home_dir / ".local" / "bin" / "stack")
        strategy = InstallerBStrategy(
            config=_config(), resolver=_resolver(runner, bindist), runner=runner, console=MockConsole()
        )

        strategy.attempt(HLEDGER)
        strategy.attempt(HLEDGER)

        assert bindist.installs == 1
        assert runner.commands.count(tuple(strategy.argv(HLEDGER))) == 2

    def test_force_reinstalls_stack_once(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        runner.add_executable("stack")
        bindist = StackBindist(runner, home_dir / "stack")
        strategy = InstallerBStrategy(
            config=_config(force=True),
            resolver=_resolver(runner, bindist),
            runner=runner,
            console=MockConsole(),
        )

        strategy.attempt(HLEDGER)
        strategy.attempt(HLEDGER)

        assert bindist.installs == 1

    def test_failed_bootstrap_is_remembered(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        bindist = BrokenBindist()
        strategy = InstallerBStrategy(
            config=_config(), resolver=_resolver(runner, bindist), runner=runner, console=MockConsole()
        )

        first = strategy.attempt(HLEDGER)
        second = strategy.attempt(HLEDGER)

        assert isinstance(first, Err) and isinstance(second, Err)
        assert first.error.kind == ErrorKind.DOWNLOAD_FAILURE
        assert bindist.installs == 1
        assert not runner.ran("stack")

    def test_uses_installed_path_when_not_on_path(self, home_dir: Path) -> None:
        runner = MockCommandRunner()
        target = home_dir / ".local" / "bin" / "stack"
        bindist = StackBindist(runner, target, on_path=False)
        strategy = InstallerBStrategy(
            config=_config(), resolver=_resolver(runner, bindist), runner=runner, console=MockConsole()
        )

        assert isinstance(strategy.attempt(HLEDGER), Ok)
        assert runner.commands[-1][0] == str(target)
