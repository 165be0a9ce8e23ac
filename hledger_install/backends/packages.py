"""Native OS package managers.

Each supported package manager is described by a `PackageManager` value:
the argv prefix that installs packages non-interactively, its quiet flag, and
the command that usually fixes a failed install. `SystemPackages` runs them
(through sudo when it is available) and is the seam tests replace with a
fake.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import ConsoleProtocol
from hledger_install.platform.process import CommandRunner, run_live

__all__ = [
    "PackageManager",
    "APT_GET",
    "DNF",
    "YUM",
    "APK",
    "PKG",
    "FALLBACK_ORDER",
    "PackageInstaller",
    "SystemPackages",
]


@dataclass(frozen=True, slots=True)
class PackageManager:
    """How to install packages with one package manager.

    Attributes:
        name: Executable name, also used to detect the manager on PATH
        install_args: Arguments after the executable for a non-interactive install
        quiet_flag: Flag that silences progress output, if the manager has one
        refresh_command: What the user should run when an install fails
    """

    name: str
    install_args: tuple[str, ...]
    quiet_flag: str | None
    refresh_command: str

    def argv(self, packages: Sequence[str], *, quiet: bool, sudo: str | None = None) -> list[str]:
        """Build the install command line."""
        argv = [self.name, *self.install_args]
        if quiet and self.quiet_flag:
            argv.append(self.quiet_flag)
        argv.extend(packages)
        if sudo:
            argv.insert(0, sudo)
        return argv


APT_GET = PackageManager("apt-get", ("install", "-y"), "-qq", "apt-get update")
DNF = PackageManager("dnf", ("install", "-y"), "-q", "dnf check-update")
YUM = PackageManager("yum", ("install", "-y"), "-q", "yum check-update")
APK = PackageManager("apk", ("add", "--update"), "-q", "apk update")
PKG = PackageManager("pkg", ("install", "-y"), None, "pkg update")

# Probed in this order when the distribution is not recognized.
FALLBACK_ORDER: tuple[PackageManager, ...] = (APT_GET, DNF, YUM, APK)


class PackageInstaller(Protocol):
    """Installs OS packages. Implemented for real hosts and by test fakes."""

    def install(
        self, manager: PackageManager, packages: Sequence[str]
    ) -> Result[None, InstallError]:
        """Install packages with a specific package manager."""
        ...

    def detect(self) -> PackageManager | None:
        """Return the first package manager from FALLBACK_ORDER on PATH."""
        ...

    def try_install(self, packages: Sequence[str]) -> Result[None, InstallError]:
        """Install packages with whichever package manager is available."""
        ...


class SystemPackages:
    """Install packages on the real host."""

    def __init__(
        self,
        *,
        runner: CommandRunner,
        console: ConsoleProtocol,
        quiet: bool = True,
    ) -> None:
        self._runner = runner
        self._console = console
        self._quiet = quiet

    def install(
        self, manager: PackageManager, packages: Sequence[str]
    ) -> Result[None, InstallError]:
        if not packages:
            return Ok(None)

        # sudo prompts on the terminal, so output is never captured here.
        sudo = self._runner.which("sudo")
        argv = manager.argv(packages, quiet=self._quiet, sudo="sudo" if sudo else None)
        self._console.detail(f"Running: {shlex.join(argv)}")
        result = run_live(self._runner, argv)
        if isinstance(result, Err):
            return Err(
                InstallError(
                    kind=ErrorKind.DEPENDENCY_INSTALL_FAILURE,
                    message=f"Installing {manager.name} packages failed",
                    hint=f"Please run '{manager.refresh_command}' and try again.",
                )
            )
        return Ok(None)

    def detect(self) -> PackageManager | None:
        for manager in FALLBACK_ORDER:
            if self._runner.which(manager.name) is not None:
                return manager
        return None

    def try_install(self, packages: Sequence[str]) -> Result[None, InstallError]:
        manager = self.detect()
        if manager is None:
            names = ", ".join(m.name for m in FALLBACK_ORDER)
            return Err(
                InstallError(
                    kind=ErrorKind.BACKEND_UNAVAILABLE,
                    message=f"No supported package manager found (tried {names})",
                )
            )
        return self.install(manager, packages)
