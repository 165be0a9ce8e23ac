"""Backend selection: which installer to use and how to bootstrap it.

Installer A (cabal) is used as-is when it is the only one present. Installer
B (stack) is bootstrapped when missing: install the OS build dependencies
with the distribution's package manager, pick the bindist flavor for this
host, and install the bindist.

Both the OS dependency lists and the flavor choice are explicit tables keyed
by the host facts in `DistroInfo`, so every combination can be tested
without running on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Protocol

from hledger_install.backends.packages import (
    APK,
    APT_GET,
    DNF,
    PKG,
    YUM,
    PackageInstaller,
    PackageManager,
)
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import ConsoleProtocol
from hledger_install.platform.detection import DistroFamily, DistroInfo, Isa, OsKind, WordWidth
from hledger_install.platform.paths import on_path
from hledger_install.platform.process import CommandRunner

__all__ = [
    "INSTALLER_A",
    "INSTALLER_B",
    "BackendCapability",
    "Target",
    "Flavor",
    "FlavorChoice",
    "BindistBackend",
    "BackendResolver",
    "target_for",
    "select_flavor",
    "dependency_packages",
]

INSTALLER_A = "cabal"
INSTALLER_B = "stack"

MANUAL_INSTALL_URL = "http://docs.haskellstack.org/en/stable/install_and_upgrade/"


class BackendCapability(Enum):
    """What the host can use to install tools."""

    NATIVE_INSTALLER_A = auto()  # cabal on PATH, stack not
    NATIVE_INSTALLER_B = auto()  # stack on PATH
    BOOTSTRAP_INSTALLER_B = auto()  # neither usable, but stack can be bootstrapped
    NO_BACKEND = auto()

    def __str__(self) -> str:
        return self.name.lower()


class Target(Enum):
    """Bootstrap target, one per supported host family."""

    UBUNTU = auto()
    DEBIAN = auto()
    FEDORA = auto()
    CENTOS = auto()
    ALPINE = auto()
    FREEBSD = auto()
    DARWIN = auto()
    UNSUPPORTED_LINUX = auto()
    UNSUPPORTED_OS = auto()

    def __str__(self) -> str:
        return self.name.lower()


_LINUX_TARGETS: dict[DistroFamily, Target] = {
    DistroFamily.UBUNTU: Target.UBUNTU,
    DistroFamily.DEBIAN: Target.DEBIAN,
    DistroFamily.FEDORA: Target.FEDORA,
    DistroFamily.CENTOS: Target.CENTOS,
    DistroFamily.ALPINE: Target.ALPINE,
}


def target_for(os_kind: OsKind, family: DistroFamily) -> Target:
    match os_kind:
        case OsKind.LINUX:
            return _LINUX_TARGETS.get(family, Target.UNSUPPORTED_LINUX)
        case OsKind.DARWIN:
            return Target.DARWIN
        case OsKind.FREEBSD:
            return Target.FREEBSD
        case _:
            return Target.UNSUPPORTED_OS


class Flavor(Enum):
    """Bindist flavors published on the bindist host."""

    LINUX_ARM = "linux-arm"
    LINUX_I386 = "linux-i386"
    LINUX_I386_GMP4 = "linux-i386-gmp4"
    LINUX_X86_64_STATIC = "linux-x86_64-static"
    OSX_X86_64 = "osx-x86_64"
    FREEBSD_X86_64 = "freebsd-x86_64"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class FlavorChoice:
    """Selected bindist flavor.

    Attributes:
        flavor: What to download
        variant: Label shown in the bindist notice ("libgmp4"), if any
        supported: False when guessing for an unrecognized distribution
    """

    flavor: Flavor
    variant: str | None = None
    supported: bool = True


def _generic_linux(isa: Isa, width: WordWidth, *, supported: bool) -> FlavorChoice:
    if isa == Isa.ARM:
        return FlavorChoice(Flavor.LINUX_ARM, supported=supported)
    if width == WordWidth.BITS_64:
        return FlavorChoice(Flavor.LINUX_X86_64_STATIC, supported=supported)
    return FlavorChoice(Flavor.LINUX_I386, supported=supported)


def _by_width(width: WordWidth) -> FlavorChoice:
    if width == WordWidth.BITS_64:
        return FlavorChoice(Flavor.LINUX_X86_64_STATIC)
    return FlavorChoice(Flavor.LINUX_I386)


def _no_32_bit(name: str) -> InstallError:
    return InstallError(
        kind=ErrorKind.FATAL_ENVIRONMENT,
        message=f"Sorry, there is currently no 32-bit {name} binary available.",
    )


def select_flavor(
    target: Target, version_major: int | None, isa: Isa, width: WordWidth
) -> Result[FlavorChoice, InstallError]:
    """Decide which bindist to install.

    Returns:
        Ok with the flavor, or Err(FATAL_ENVIRONMENT) for combinations no
        bindist exists for (32-bit FreeBSD and Alpine, unsupported OS).
    """
    match target:
        case Target.UBUNTU | Target.DEBIAN:
            return Ok(_generic_linux(isa, width, supported=True))
        case Target.FEDORA:
            return Ok(_by_width(width))
        case Target.CENTOS:
            if width == WordWidth.BITS_32 and version_major == 6:
                return Ok(FlavorChoice(Flavor.LINUX_I386_GMP4, variant="libgmp4"))
            return Ok(_by_width(width))
        case Target.ALPINE:
            if width == WordWidth.BITS_64:
                return Ok(FlavorChoice(Flavor.LINUX_X86_64_STATIC))
            return Err(_no_32_bit("Alpine Linux"))
        case Target.FREEBSD:
            if width == WordWidth.BITS_64:
                return Ok(FlavorChoice(Flavor.FREEBSD_X86_64))
            return Err(_no_32_bit("FreeBSD"))
        case Target.DARWIN:
            return Ok(FlavorChoice(Flavor.OSX_X86_64))
        case Target.UNSUPPORTED_LINUX:
            return Ok(_generic_linux(isa, width, supported=False))
        case Target.UNSUPPORTED_OS:
            return Err(
                InstallError(
                    kind=ErrorKind.FATAL_ENVIRONMENT,
                    message="Sorry, this installer does not support your operating system.",
                    hint=f"See {MANUAL_INSTALL_URL}",
                )
            )


_APT_PACKAGES = ("g++", "gcc", "libc6-dev", "libffi-dev", "libgmp-dev", "make", "xz-utils", "zlib1g-dev")
_RPM_PACKAGES = ("perl", "make", "automake", "gcc", "gmp-devel", "libffi", "zlib", "xz", "tar")
_APK_PACKAGES = ("gmp", "libgcc", "xz", "make")

_DEPENDENCIES: dict[Target, tuple[PackageManager, tuple[str, ...]]] = {
    Target.UBUNTU: (APT_GET, (*_APT_PACKAGES, "git", "gnupg")),
    Target.DEBIAN: (APT_GET, _APT_PACKAGES),
    Target.FEDORA: (DNF, _RPM_PACKAGES),
    Target.CENTOS: (YUM, _RPM_PACKAGES),
    Target.ALPINE: (APK, _APK_PACKAGES),
    Target.FREEBSD: (
        PKG,
        (
            "devel/gmake",
            "perl5",
            "lang/gcc",
            "misc/compat8x",
            "misc/compat9x",
            "converters/libiconv",
            "ca_root_nss",
        ),
    ),
}

# Package lists for an unrecognized distribution, by detected package manager.
_FALLBACK_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    APT_GET.name: _APT_PACKAGES,
    DNF.name: _RPM_PACKAGES,
    YUM.name: _RPM_PACKAGES,
    APK.name: _APK_PACKAGES,
}


def dependency_packages(target: Target) -> tuple[PackageManager, tuple[str, ...]] | None:
    """OS build dependencies for a recognized target, or None if it has none."""
    return _DEPENDENCIES.get(target)


class BindistBackend(Protocol):
    """Installs a bindist flavor and returns the installed executable."""

    def install(self, flavor: str) -> Result[Path, InstallError]: ...


class BackendResolver:
    """Choose and bootstrap installation backends for one host.

    Usage:
        resolver = BackendResolver(distro=detect(), packages=..., bindist=..., ...)
        if resolver.capability() == BackendCapability.BOOTSTRAP_INSTALLER_B:
            resolver.install_installer_b()
    """

    def __init__(
        self,
        *,
        distro: DistroInfo,
        packages: PackageInstaller,
        bindist: BindistBackend,
        runner: CommandRunner,
        console: ConsoleProtocol,
    ) -> None:
        self._distro = distro
        self._packages = packages
        self._bindist = bindist
        self._runner = runner
        self._console = console
        self._target = target_for(distro.os, distro.family)

    @property
    def target(self) -> Target:
        return self._target

    @property
    def distro(self) -> DistroInfo:
        return self._distro

    def has_installer_a(self) -> bool:
        return self._runner.which(INSTALLER_A) is not None

    def has_installer_b(self) -> bool:
        return self._runner.which(INSTALLER_B) is not None

    def capability(self) -> BackendCapability:
        if self.has_installer_b():
            return BackendCapability.NATIVE_INSTALLER_B
        if self.has_installer_a():
            return BackendCapability.NATIVE_INSTALLER_A
        if isinstance(self.select_flavor(), Ok):
            return BackendCapability.BOOTSTRAP_INSTALLER_B
        return BackendCapability.NO_BACKEND

    def select_flavor(self) -> Result[FlavorChoice, InstallError]:
        d = self._distro
        return select_flavor(self._target, d.version_major, d.isa, d.width)

    def dependency_plan(self) -> tuple[PackageManager, tuple[str, ...]] | None:
        """Package manager and packages to install before the bindist.

        For an unrecognized Linux distribution, the first package manager
        found on PATH decides the package list.
        """
        plan = dependency_packages(self._target)
        if plan is not None or self._target != Target.UNSUPPORTED_LINUX:
            return plan
        manager = self._packages.detect()
        if manager is None:
            return None
        return manager, _FALLBACK_DEPENDENCIES[manager.name]

    def install_dependencies(self) -> Result[None, InstallError]:
        plan = self.dependency_plan()
        if plan is None:
            if self._target == Target.UNSUPPORTED_LINUX:
                self._console.warning(
                    "You may need to manually install some system dependencies: "
                    "gcc, make, libffi, zlib, libgmp and libtinfo"
                )
            return Ok(None)

        manager, packages = plan
        self._console.detail("Installing dependencies...")
        return self._packages.install(manager, packages)

    def install_installer_b(self) -> Result[Path, InstallError]:
        """Bootstrap installer B from a bindist.

        Returns:
            Ok with the installed executable, or Err. FATAL_ENVIRONMENT errors
            mean no bindist exists for this host.
        """
        choice_result = self.select_flavor()
        if isinstance(choice_result, Err):
            return choice_result
        choice = choice_result.value

        if self._distro.os == OsKind.LINUX and self._distro.distro_id:
            self._console.detail(f"Detected Linux distribution: {self._distro.distro_id}")
        if not choice.supported:
            self._console.warning(
                "This installer doesn't support your Linux distribution, "
                "trying generic bindist (unsupported, best-effort)..."
            )

        deps = self.install_dependencies()
        if isinstance(deps, Err):
            return deps

        variant = f"generic {choice.variant} bindist" if choice.variant else "generic bindist"
        self._console.detail(f"Using {variant}...")

        installed = self._bindist.install(str(choice.flavor))
        if isinstance(installed, Err):
            return installed
        path = installed.value

        self._console.print(f"{INSTALLER_B.capitalize()} has been installed to: {path}")
        if not on_path(path.parent):
            self._console.warning(f"'{path.parent}' is not on your PATH.")
        if self._target == Target.DARWIN:
            self._console.detail(
                "NOTE: You may need to run 'xcode-select --install' to set up "
                "the Xcode command-line tools."
            )
        if not choice.supported:
            self._console.warning(
                f"Since this installer doesn't support your Linux distribution, there is no "
                f"guarantee that '{INSTALLER_B}' will work at all. See {MANUAL_INSTALL_URL}"
            )
        return Ok(path)
