"""Tests for hledger_install.services.orchestrator module."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from hledger_install.backends.packages import PackageManager
from hledger_install.backends.resolver import BackendResolver
from hledger_install.core.config import Config, ToolSpec, ToolTable, load_tool_table
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import MockConsole
from hledger_install.platform.detection import DistroFamily, DistroInfo, Isa, OsKind, WordWidth
from hledger_install.platform.process import MockCommandRunner
from hledger_install.services.orchestrator import InstallOrchestrator, Outcome
from hledger_install.services.status import ToolLocator
from hledger_install.services.strategies import default_strategies

LIB = ToolSpec("hledger-lib", "1.3")
HLEDGER = ToolSpec("hledger", "1.3", (LIB,))
UI = ToolSpec("hledger-ui", "1.3", (HLEDGER, LIB))
IRR = ToolSpec("hledger-irr", "0.1.1.11", (LIB,))


class FakeVersions:
    def __init__(self, versions: dict[str, str] | None = None) -> None:
        self.versions = versions or {}

    def version(self, name: str) -> str:
        return self.versions.get(name, "")


class FakeStrategy:
    def __init__(self, name: str, *, applies: bool = True, fail_for: Sequence[str] = ()) -> None:
        self.name = name
        self._applies = applies
        self._fail_for = set(fail_for)
        self.attempted: list[str] = []

    def applies(self) -> bool:
        return self._applies

    def attempt(self, tool: ToolSpec) -> Result[None, InstallError]:
        self.attempted.append(tool.name)
        if tool.name in self._fail_for:
            return Err(InstallError(ErrorKind.STRATEGY_FAILURE, f"{self.name} failed"))
        return Ok(None)


class CountingBindist:
    def __init__(self) -> None:
        self.installs = 0

    def install(self, flavor: str) -> Result[Path, InstallError]:
        self.installs += 1
        return Err(InstallError(ErrorKind.DOWNLOAD_FAILURE, "offline"))


class NoPackages:
    def install(self, manager: PackageManager, packages: Sequence[str]) -> Result[None, InstallError]:
        return Ok(None)

    def detect(self) -> PackageManager | None:
        return None

    def try_install(self, packages: Sequence[str]) -> Result[None, InstallError]:
        return Ok(None)


def _config(*tools: ToolSpec, force: bool = False) -> Config:
    table = ToolTable(
        installer_name="hledger-install",
        installer_version="1",
        snapshot="lts-8",
        primary=tools,
        auxiliary=(),
    )
    return Config(table=table, force=force)


class TestInstallOrchestrator:
    def test_one_result_per_tool_in_order(self) -> None:
        strategy = FakeStrategy("stack")
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER, UI, IRR),
            versions=FakeVersions(),
            strategies=[strategy],
            console=MockConsole(),
        )

        results = orchestrator.run()

        assert [r.tool for r in results] == ["hledger", "hledger-ui", "hledger-irr"]
        assert all(r.outcome == Outcome.INSTALLED for r in results)
        assert strategy.attempted == ["hledger", "hledger-ui", "hledger-irr"]

    def test_satisfied_tools_are_skipped(self) -> None:
        strategy = FakeStrategy("stack")
        console = MockConsole()
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER, UI),
            versions=FakeVersions({"hledger": "1.3", "hledger-ui": "1.10"}),
            strategies=[strategy],
            console=console,
        )

        results = orchestrator.run()

        assert [r.outcome for r in results] == [Outcome.ALREADY_SATISFIED] * 2
        assert strategy.attempted == []
        assert not console.find("Installing")

    def test_force_reinstalls(self) -> None:
        strategy = FakeStrategy("stack")
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER, force=True),
            versions=FakeVersions({"hledger": "1.3"}),
            strategies=[strategy],
            console=MockConsole(),
        )

        orchestrator.run()

        assert strategy.attempted == ["hledger"]

    def test_falls_through_to_next_strategy(self) -> None:
        first = FakeStrategy("cabal", fail_for=["hledger"])
        second = FakeStrategy("stack")
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER),
            versions=FakeVersions(),
            strategies=[first, second],
            console=MockConsole(),
        )

        [result] = orchestrator.run()

        assert result.outcome == Outcome.INSTALLED
        assert result.message == "stack"
        assert second.attempted == ["hledger"]

    def test_inapplicable_strategy_is_skipped(self) -> None:
        first = FakeStrategy("cabal", applies=False)
        second = FakeStrategy("stack")
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER),
            versions=FakeVersions(),
            strategies=[first, second],
            console=MockConsole(),
        )

        orchestrator.run()

        assert first.attempted == []

    def test_failure_does_not_stop_the_run(self) -> None:
        strategy = FakeStrategy("stack", fail_for=["hledger-ui"])
        console = MockConsole()
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER, UI, IRR),
            versions=FakeVersions(),
            strategies=[strategy],
            console=console,
        )

        results = orchestrator.run()

        assert [r.outcome for r in results] == [Outcome.INSTALLED, Outcome.FAILED, Outcome.INSTALLED]
        assert results[1].ok is False
        assert console.find("Failed to install hledger-ui-1.3 hledger-1.3 hledger-lib-1.3")

    def test_no_strategies_fails_every_tool(self) -> None:
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER, IRR),
            versions=FakeVersions(),
            strategies=[],
            console=MockConsole(),
        )

        results = orchestrator.run()

        assert [r.outcome for r in results] == [Outcome.FAILED, Outcome.FAILED]

    def test_separators(self) -> None:
        console = MockConsole()
        InstallOrchestrator(
            config=_config(HLEDGER),
            versions=FakeVersions({"hledger": "1.3"}),
            strategies=[],
            console=console,
        ).run()

        assert console.messages == ["----------", "----------"]

    def test_ambiguous_version_is_noted(self) -> None:
        console = MockConsole(quiet=False)
        orchestrator = InstallOrchestrator(
            config=_config(HLEDGER),
            versions=FakeVersions({"hledger": "1.3-rc1"}),
            strategies=[FakeStrategy("stack")],
            console=console,
        )

        [result] = orchestrator.run()

        # String ordering puts "1.3-rc1" after "1.3".
        assert result.outcome == Outcome.ALREADY_SATISFIED
        assert console.find("version parse ambiguous")


class TestScenarios:
    """End-to-end runs with the real strategies and a fake host."""

    @pytest.fixture(autouse=True)
    def _home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))

    def _run(
        self, runner: MockCommandRunner, config: Config
    ) -> tuple[list[Outcome], CountingBindist]:
        console = MockConsole()
        bindist = CountingBindist()
        resolver = BackendResolver(
            distro=DistroInfo(OsKind.LINUX, DistroFamily.DEBIAN, "11", Isa.X86, WordWidth.BITS_64),
            packages=NoPackages(),
            bindist=bindist,
            runner=runner,
            console=console,
        )
        orchestrator = InstallOrchestrator(
            config=config,
            versions=ToolLocator(runner),
            strategies=default_strategies(config=config, resolver=resolver, runner=runner, console=console),
            console=console,
        )
        return [r.outcome for r in orchestrator.run()], bindist

    def test_up_to_date_host_makes_no_attempts(self) -> None:
        runner = MockCommandRunner()
        runner.add_executable("hledger")
        runner.respond("hledger", "--version", stdout="hledger 1.3\n")

        outcomes, bindist = self._run(runner, _config(HLEDGER))

        assert outcomes == [Outcome.ALREADY_SATISFIED]
        assert runner.commands == [("hledger", "--version")]
        assert bindist.installs == 0

    def test_cabal_only_host_never_bootstraps_stack(self) -> None:
        runner = MockCommandRunner()
        runner.add_executable("cabal")
        runner.add_executable("hledger")
        runner.respond("hledger", "--version", stdout="hledger 1.2\n")

        outcomes, bindist = self._run(runner, _config(HLEDGER))

        assert outcomes == [Outcome.INSTALLED]
        installs = [c for c in runner.commands if c[:2] in {("cabal", "install"), ("stack", "install")}]
        assert installs == [("cabal", "install", "hledger-1.3", "hledger-lib-1.3", "--verbose=0")]
        assert bindist.installs == 0

    def test_failed_bootstrap_fails_each_tool_once(self) -> None:
        runner = MockCommandRunner()

        outcomes, bindist = self._run(runner, _config(HLEDGER, IRR))

        assert outcomes == [Outcome.FAILED, Outcome.FAILED]
        assert bindist.installs == 1

    def test_bundled_table_installs_everything_with_stack(self) -> None:
        runner = MockCommandRunner()
        runner.add_executable("stack")
        table = load_tool_table().unwrap()
        assert table is not None

        outcomes, _ = self._run(runner, Config(table=table))

        assert outcomes == [Outcome.INSTALLED] * 8
        stack_installs = [c for c in runner.commands if c[:2] == ("stack", "install")]
        assert len(stack_installs) == 8
        assert all("--resolver=lts-8" in c for c in stack_installs)

    def test_rerun_is_idempotent(self) -> None:
        runner = MockCommandRunner()
        runner.add_executable("stack")
        runner.add_executable("hledger")
        runner.respond("hledger", "--version", stdout="hledger 1.3\n")

        first, _ = self._run(runner, _config(HLEDGER))
        second, _ = self._run(runner, _config(HLEDGER))

        assert first == second == [Outcome.ALREADY_SATISFIED]
