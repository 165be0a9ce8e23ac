"""Operating system, distribution and architecture detection.

Detection only reads: it runs `uname`, `lsb_release`, `arch` and `getconf`,
and reads files under /etc. It never touches the network and never writes.
The `Prober` takes its command runner and /etc root as arguments so tests
can describe a host without running on it; `detect()` probes the real host
once and caches the answer for the rest of the process.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from functools import lru_cache
from pathlib import Path

from hledger_install.core.result import Ok
from hledger_install.platform.process import CommandRunner, DefaultCommandRunner, run

__all__ = [
    "OsKind",
    "DistroFamily",
    "Isa",
    "WordWidth",
    "DistroRelease",
    "DistroInfo",
    "Prober",
    "detect",
    "family_for_id",
]


class OsKind(Enum):
    """Kernel family, as reported by `uname`."""

    LINUX = auto()
    DARWIN = auto()
    FREEBSD = auto()
    UNSUPPORTED = auto()

    def __str__(self) -> str:
        return self.name.lower()


class DistroFamily(Enum):
    """Linux distribution family."""

    UBUNTU = auto()
    DEBIAN = auto()  # Debian, Kali, Raspbian
    FEDORA = auto()
    CENTOS = auto()  # CentOS, RHEL
    ALPINE = auto()
    ARCH = auto()
    SUSE = auto()
    NIXOS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


class Isa(Enum):
    """CPU instruction set."""

    ARM = auto()
    X86 = auto()

    def __str__(self) -> str:
        return self.name.lower()


class WordWidth(IntEnum):
    """Address width of the operating system."""

    BITS_32 = 32
    BITS_64 = 64

    def __str__(self) -> str:
        return f"{self.value}-bit"


_FAMILY_IDS: dict[str, DistroFamily] = {
    "ubuntu": DistroFamily.UBUNTU,
    "debian": DistroFamily.DEBIAN,
    "kali": DistroFamily.DEBIAN,
    "raspbian": DistroFamily.DEBIAN,
    "fedora": DistroFamily.FEDORA,
    "centos": DistroFamily.CENTOS,
    "rhel": DistroFamily.CENTOS,
    "alpine": DistroFamily.ALPINE,
    "arch": DistroFamily.ARCH,
    "suse": DistroFamily.SUSE,
    "opensuse": DistroFamily.SUSE,
    "sles": DistroFamily.SUSE,
    "nixos": DistroFamily.NIXOS,
}


def family_for_id(distro_id: str) -> DistroFamily:
    """Map a lowercase distribution id onto its family."""
    return _FAMILY_IDS.get(distro_id.strip().lower(), DistroFamily.UNKNOWN)


@dataclass(frozen=True, slots=True)
class DistroRelease:
    """Distribution id and version as reported by the host.

    Attributes:
        id: Lowercase distribution id (e.g. "ubuntu", "centos")
        version: Version string, empty when the host doesn't report one
    """

    id: str
    version: str = ""

    @property
    def family(self) -> DistroFamily:
        return family_for_id(self.id)


@dataclass(frozen=True, slots=True)
class DistroInfo:
    """Everything the backend resolver needs to know about the host.

    Probed once per run and never modified afterwards.
    """

    os: OsKind
    family: DistroFamily
    version: str
    isa: Isa
    width: WordWidth
    distro_id: str = ""

    @property
    def version_major(self) -> int | None:
        """Leading numeric component of the version, if any."""
        match = re.match(r"\d+", self.version)
        return int(match.group(0)) if match else None

    def __str__(self) -> str:
        parts = [str(self.os)]
        if self.os == OsKind.LINUX:
            parts.append(self.distro_id or str(self.family))
            if self.version:
                parts.append(self.version)
        parts.extend([str(self.isa), str(self.width)])
        return " ".join(parts)


_LSB_ID_RE = re.compile(r"Distributor ID:\s+(\S+)")
_LSB_RELEASE_RE = re.compile(r"Release:\s+(\S+)")
_RELEASE_ID_RE = re.compile(r'^(?:DISTRIB_)?ID\s*=\s*"?([^"\n]+)', re.MULTILINE)
_RELEASE_VERSION_RE = re.compile(r'^(?:DISTRIB_RELEASE|VERSION_ID)\s*=\s*"?([^"\n]+)', re.MULTILINE)

# /etc/issue banners: (prefix test, distro id, version pattern)
_ISSUE_BANNERS: tuple[tuple[re.Pattern[str], str, re.Pattern[str] | None], ...] = (
    (re.compile(r"^Arch Linux"), "arch", None),
    (re.compile(r"^Ubuntu"), "ubuntu", re.compile(r"Ubuntu (\d+\.\d+)")),
    (re.compile(r"^Debian"), "debian", re.compile(r"Debian GNU/Linux (\d+(?:\.\d+)?)")),
    (re.compile(r"SUSE"), "suse", re.compile(r"SUSE\b.* (\d+\.\d+)")),
    (re.compile(r"NixOS"), "nixos", re.compile(r"NixOS (\d+\.\d+)")),
    (re.compile(r"^CentOS"), "centos", re.compile(r"^CentOS release (\d+)\.", re.MULTILINE)),
)


class Prober:
    """Probe a host's OS, distribution, instruction set and word width.

    Usage:
        info = Prober().probe()
        if info.os == OsKind.UNSUPPORTED:
            ...
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        etc_dir: Path = Path("/etc"),
    ) -> None:
        self._runner = runner or DefaultCommandRunner()
        self._etc = etc_dir

    def _output(self, cmd: list[str]) -> str | None:
        result = run(self._runner, cmd)
        if isinstance(result, Ok):
            return result.value.strip()
        return None

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    # -- kernel ---------------------------------------------------------------

    def probe_os(self) -> OsKind:
        """Detect the kernel family from `uname`."""
        name = self._output(["uname"]) or ""
        match name:
            case "Linux":
                return OsKind.LINUX
            case "Darwin":
                return OsKind.DARWIN
            case "FreeBSD":
                return OsKind.FREEBSD
            case _:
                return OsKind.UNSUPPORTED

    # -- distribution ----------------------------------------------------------

    def probe_distro(self) -> DistroRelease:
        """Detect the Linux distribution.

        Tries lsb_release, then /etc/*release key/value files, then the
        /etc/issue banner. Returns an "unknown" release if all three fail.
        """
        for strategy in (self._try_lsb, self._try_release_files, self._try_issue):
            release = strategy()
            if release is not None:
                return release
        return DistroRelease(id="unknown")

    def _try_lsb(self) -> DistroRelease | None:
        if self._runner.which("lsb_release") is None:
            return None
        output = self._output(["lsb_release", "-a"])
        if output is None:
            return None
        dist = _LSB_ID_RE.search(output)
        if dist is None:
            return None
        release = _LSB_RELEASE_RE.search(output)
        return DistroRelease(
            id=dist.group(1).lower(),
            version=release.group(1).lower() if release else "",
        )

    def _try_release_files(self) -> DistroRelease | None:
        distro_id = ""
        version = ""
        for path in sorted(self._etc.glob("*release")):
            content = self._read(path)
            if content is None:
                continue
            if not distro_id:
                match = _RELEASE_ID_RE.search(content)
                if match:
                    distro_id = match.group(1).strip().lower()
            if not version:
                match = _RELEASE_VERSION_RE.search(content)
                if match:
                    version = match.group(1).strip()

        if distro_id or version:
            return DistroRelease(id=distro_id, version=version)

        # /etc/arch-release exists but is usually empty
        if (self._etc / "arch-release").exists():
            return DistroRelease(id="arch")
        # /etc/centos-release has a non-standard format before version 7
        centos = self._read(self._etc / "centos-release")
        if centos is not None and re.search(r"\b6\b", centos):
            return DistroRelease(id="centos", version="6")
        return None

    def _try_issue(self) -> DistroRelease | None:
        issue = self._read(self._etc / "issue")
        if issue is None:
            return None
        for banner, distro_id, version_re in _ISSUE_BANNERS:
            if not banner.search(issue):
                continue
            version = ""
            if version_re is not None:
                match = version_re.search(issue)
                if match:
                    version = match.group(1)
            return DistroRelease(id=distro_id, version=version)
        return None

    # -- architecture ----------------------------------------------------------

    def probe_isa(self) -> Isa:
        """Detect ARM vs x86 from the machine identifier."""
        machine = self._output(["arch"]) or self._output(["uname", "-m"]) or ""
        machine = machine.lower()
        if "arm" in machine or machine.startswith("aarch"):
            return Isa.ARM
        return Isa.X86

    def probe_wordwidth(self) -> WordWidth:
        """Detect 32- vs 64-bit.

        getconf reports the OS word width, which is what matters. Without it,
        fall back to the CPU's machine type, though a 32-bit OS can run on a
        64-bit CPU.
        """
        if self._runner.which("getconf") is not None:
            bits = self._output(["getconf", "LONG_BIT"])
            if bits is not None:
                return WordWidth.BITS_64 if "64" in bits else WordWidth.BITS_32
        machine = self._output(["uname", "-m"]) or ""
        return WordWidth.BITS_64 if machine.endswith("64") else WordWidth.BITS_32

    # -- all together ----------------------------------------------------------

    def probe(self) -> DistroInfo:
        """Probe everything. Distribution is only probed on Linux."""
        os_kind = self.probe_os()
        release = self.probe_distro() if os_kind == OsKind.LINUX else DistroRelease(id="")
        return DistroInfo(
            os=os_kind,
            family=release.family,
            version=release.version,
            isa=self.probe_isa(),
            width=self.probe_wordwidth(),
            distro_id=release.id,
        )


@lru_cache(maxsize=1)
def detect() -> DistroInfo:
    """Probe the current host (cached for the process lifetime)."""
    return Prober().probe()
