from __future__ import annotations

import click
import typer

from hledger_install import __version__
from hledger_install.backends.bindist import BindistInstaller, Downloader, ScratchDir
from hledger_install.backends.packages import SystemPackages
from hledger_install.backends.resolver import BackendCapability, BackendResolver, Target
from hledger_install.core.config import Config, load_tool_table
from hledger_install.core.errors import ErrorCode
from hledger_install.core.result import Err, Ok
from hledger_install.core.versions import GateDecision, gate
from hledger_install.output.console import ConsoleProtocol, RichConsole, Style
from hledger_install.platform.detection import DistroInfo, detect
from hledger_install.platform.paths import local_bin_dir
from hledger_install.platform.process import CommandRunner, DefaultCommandRunner
from hledger_install.services.orchestrator import InstallOrchestrator
from hledger_install.services.status import StatusReporter, ToolLocator
from hledger_install.services.strategies import default_strategies


def _help_text() -> str:
    table = load_tool_table()
    hledger = table.value.get("hledger") if isinstance(table, Ok) else None
    installs = f", installs hledger {hledger.version}" if hledger else ""
    return (
        "Install the current release of hledger and related tools, using cabal "
        "(if installed and stack is not) or stack (installing it when needed, "
        "or always with --force).\n\n"
        "With --status, just list the currently installed hledger tools.\n\n"
        "This can take minutes to hours, about 2G of memory and up to a gigabyte "
        "of disk. It can be killed and rerun without losing progress.\n\n"
        f"Version {__version__}{installs}"
    )


def _needs_install(config: Config, locator: ToolLocator) -> bool:
    return any(
        gate(locator.version(tool.name), tool.version, force=config.force) == GateDecision.PROCEED
        for tool in config.table.tools
    )


app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def execute(
    config: Config,
    *,
    console: ConsoleProtocol,
    runner: CommandRunner,
    status_only: bool = False,
    distro: DistroInfo | None = None,
) -> ErrorCode:
    """Show status, install what is missing or outdated, show status again."""
    locator = ToolLocator(runner)
    reporter = StatusReporter(locator=locator, console=console)
    reporter.report(config.table.status_names)
    if status_only:
        return ErrorCode.OK

    packages = SystemPackages(runner=runner, console=console, quiet=config.quiet)
    scratch = ScratchDir()
    bindist = BindistInstaller(
        downloader=Downloader(runner=runner, packages=packages, console=console, quiet=config.quiet),
        scratch=scratch,
        target_dir=local_bin_dir(),
    )
    resolver = BackendResolver(
        distro=distro if distro is not None else detect(),
        packages=packages,
        bindist=bindist,
        runner=runner,
        console=console,
    )

    capability = resolver.capability()
    console.detail(f"Installation backend: {capability}")
    # On an unsupported OS, exit 1 only if something needs installing and no
    # installer is on PATH to do it.
    if (
        resolver.target == Target.UNSUPPORTED_OS
        and capability == BackendCapability.NO_BACKEND
        and _needs_install(config, locator)
    ):
        flavor = resolver.select_flavor()
        if isinstance(flavor, Err) and flavor.error.is_fatal:
            console.error(flavor.error.message)
            if flavor.error.hint:
                console.print(flavor.error.hint, Style.DIM)
            return ErrorCode.FATAL

    orchestrator = InstallOrchestrator(
        config=config,
        versions=locator,
        strategies=default_strategies(config=config, resolver=resolver, runner=runner, console=console),
        console=console,
    )
    try:
        orchestrator.run()
    finally:
        scratch.cleanup()

    reporter.report(config.table.status_names)
    reporter.warn_if_bin_dir_off_path()
    return ErrorCode.OK


@app.command(help=_help_text())
def install(
    force: bool = typer.Option(False, "-f", "--force", help="Reinstall tools, and stack, even if up to date."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Show more output from installers."),
    status: bool = typer.Option(False, "-s", "--status", help="List installed hledger tools and exit."),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(f"hledger-install {__version__}")
        raise typer.Exit(code=int(ErrorCode.OK))

    table = load_tool_table()
    if isinstance(table, Err):
        typer.echo(f"error: {table.error}", err=True)
        raise typer.Exit(code=int(ErrorCode.FATAL))

    config = Config(table=table.value, force=force, verbose=verbose)
    code = execute(
        config,
        console=RichConsole(quiet=config.quiet),
        runner=DefaultCommandRunner(),
        status_only=status,
    )
    raise typer.Exit(code=int(code))


def main() -> None:
    try:
        code = app(standalone_mode=False)
    except click.UsageError as e:
        typer.echo(f"Invalid argument: {e.format_message()}", err=True)
        raise SystemExit(int(ErrorCode.FATAL))
    except click.exceptions.Abort:
        raise SystemExit(int(ErrorCode.FATAL))
    raise SystemExit(code if isinstance(code, int) else int(ErrorCode.OK))
