"""Prebuilt binary (bindist) installation.

A bindist is a gzip'd tarball for one OS/architecture combination, holding a
single top-level directory with the executable inside. Installing one means:
download it with curl or wget, unpack it into the run's scratch directory,
and copy the executable into ~/.local/bin.

Everything downloaded or unpacked lives in one scratch directory per process,
removed by a single exit handler whether the run succeeds, fails, or is
interrupted.
"""

from __future__ import annotations

import atexit
import shutil
import signal
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import FrameType

from hledger_install.backends.packages import PackageInstaller
from hledger_install.core.errors import ErrorKind, InstallError
from hledger_install.core.result import Err, Ok, Result
from hledger_install.output.console import ConsoleProtocol
from hledger_install.platform.process import CommandRunner, run_live

__all__ = [
    "BINDIST_HOST",
    "ScratchDir",
    "Downloader",
    "BindistInstaller",
    "bindist_url",
    "extract",
    "install_binary",
]

BINDIST_HOST = "https://www.stackage.org/stack"

# Preference order for HTTP download tools.
DOWNLOAD_TOOLS = ("curl", "wget")


def bindist_url(flavor: str) -> str:
    return f"{BINDIST_HOST}/{flavor}"


class ScratchDir:
    """Process-scoped temporary directory.

    Created on first use. `cleanup()` is registered with atexit exactly once,
    and SIGTERM/SIGHUP are turned into SystemExit so the same handler runs
    when the process is killed; Ctrl-C already unwinds as KeyboardInterrupt.
    """

    def __init__(self, prefix: str = "hledger-install-") -> None:
        self._prefix = prefix
        self._path: Path | None = None
        self._registered = False

    @property
    def path(self) -> Path:
        if self._path is None:
            self._path = Path(tempfile.mkdtemp(prefix=self._prefix))
            self._register()
        return self._path

    @property
    def exists(self) -> bool:
        return self._path is not None and self._path.exists()

    def cleanup(self) -> None:
        """Remove the directory if it has been created."""
        if self._path is not None:
            shutil.rmtree(self._path, ignore_errors=True)
            self._path = None

    def _register(self) -> None:
        if self._registered:
            return
        self._registered = True
        atexit.register(self.cleanup)
        for signum in (signal.SIGTERM, signal.SIGHUP):
            if signal.getsignal(signum) in (signal.SIG_DFL, None):
                signal.signal(signum, _exit_on_signal)


def _exit_on_signal(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


class Downloader:
    """Download files with curl or wget, whichever is installed.

    If neither is, try installing curl with the host's package manager.
    """

    def __init__(
        self,
        *,
        runner: CommandRunner,
        packages: PackageInstaller,
        console: ConsoleProtocol,
        quiet: bool = True,
    ) -> None:
        self._runner = runner
        self._packages = packages
        self._console = console
        self._quiet = quiet

    def available_tool(self) -> str | None:
        for tool in DOWNLOAD_TOOLS:
            if self._runner.which(tool) is not None:
                return tool
        return None

    def ensure_tool(self) -> Result[str, InstallError]:
        """Return the download tool to use, installing curl if needed."""
        tool = self.available_tool()
        if tool is not None:
            return Ok(tool)

        self._console.detail("Neither curl nor wget found, installing curl")
        installed = self._packages.try_install(["curl"])
        tool = self.available_tool() if isinstance(installed, Ok) else None
        if tool is None:
            return Err(
                InstallError(
                    kind=ErrorKind.DOWNLOAD_FAILURE,
                    message="Neither wget nor curl is available",
                    hint="Please install one to continue.",
                )
            )
        return Ok(tool)

    def argv(self, tool: str, url: str, dest: Path) -> list[str]:
        if tool == "curl":
            return ["curl", *(["-sS"] if self._quiet else []), "-L", "-o", str(dest), url]
        return ["wget", *(["-q"] if self._quiet else []), f"-O{dest}", url]

    def download(self, url: str, dest: Path) -> Result[Path, InstallError]:
        """Download url to dest.

        Returns:
            Ok with dest, or Err(DOWNLOAD_FAILURE)
        """
        tool_result = self.ensure_tool()
        if isinstance(tool_result, Err):
            return tool_result
        tool = tool_result.value

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(InstallError(kind=ErrorKind.DOWNLOAD_FAILURE, message=f"Cannot create {dest.parent}: {e}"))
        result = run_live(self._runner, self.argv(tool, url, dest))
        if isinstance(result, Err) or not dest.exists():
            dest.unlink(missing_ok=True)
            return Err(
                InstallError(kind=ErrorKind.DOWNLOAD_FAILURE, message=f"{tool} download failed: {url}")
            )
        return Ok(dest)


def _safe_relative_path(member_name: str) -> Path | None:
    """Return a sanitized relative extraction path, or None if unsafe."""
    posix = PurePosixPath(member_name)
    if posix.is_absolute():
        return None
    parts = posix.parts
    if not parts or any(part in {"", ".", ".."} for part in parts):
        return None
    return Path(*parts)


def extract(archive: Path, dest: Path) -> Result[int, InstallError]:
    """Unpack a tar archive (any compression tarfile recognizes) into dest.

    Only regular files and directories are extracted; links, devices and
    members that would land outside dest are skipped.

    Returns:
        Ok with the number of files written, or Err(EXTRACT_FAILURE)
    """
    try:
        dest.mkdir(parents=True, exist_ok=True)
        root = dest.resolve()
        files_count = 0
        with tarfile.open(archive, "r:*") as tar:
            for member in tar.getmembers():
                if not member.isreg():
                    continue
                rel_path = _safe_relative_path(member.name)
                if rel_path is None:
                    continue
                target = dest / rel_path
                if not target.resolve().is_relative_to(root):
                    continue
                src = tar.extractfile(member)
                if src is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                target.chmod(member.mode & 0o777 or 0o644)
                files_count += 1
    except (tarfile.TarError, EOFError) as e:
        return Err(
            InstallError(
                kind=ErrorKind.EXTRACT_FAILURE,
                message=f"Extract bindist failed: unrecognized or corrupt archive {archive.name} ({e})",
            )
        )
    except OSError as e:
        return Err(InstallError(kind=ErrorKind.EXTRACT_FAILURE, message=f"Extract bindist failed: {e}"))

    if files_count == 0:
        return Err(
            InstallError(
                kind=ErrorKind.EXTRACT_FAILURE,
                message=f"Extract bindist failed: {archive.name} contains no files",
            )
        )
    return Ok(files_count)


def install_binary(tree: Path, target_dir: Path, name: str = "stack") -> Result[Path, InstallError]:
    """Copy the one `<tree>/*/<name>` executable into target_dir, mode 0755.

    Returns:
        Ok with the installed path, or Err(COPY_INSTALL_FAILURE)
    """
    candidates = sorted(p for p in tree.glob(f"*/{name}") if p.is_file())
    if len(candidates) != 1:
        found = "no" if not candidates else f"{len(candidates)}"
        return Err(
            InstallError(
                kind=ErrorKind.COPY_INSTALL_FAILURE,
                message=f"Expected one {name} executable in the bindist, found {found}",
            )
        )

    target = target_dir / name
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(candidates[0], target)
        target.chmod(0o755)
    except OSError as e:
        return Err(
            InstallError(
                kind=ErrorKind.COPY_INSTALL_FAILURE,
                message=f"Install to {target} failed: {e}",
            )
        )
    return Ok(target)


@dataclass(frozen=True, slots=True)
class BindistInstaller:
    """Download, unpack and install one bindist flavor.

    Attributes:
        downloader: Fetches the archive
        scratch: Where archives are downloaded and unpacked
        target_dir: Where the executable is installed (~/.local/bin)
        binary: Name of the executable inside the bindist
    """

    downloader: Downloader
    scratch: ScratchDir
    target_dir: Path
    binary: str = "stack"

    def install(self, flavor: str) -> Result[Path, InstallError]:
        try:
            work = self.scratch.path
        except OSError as e:
            return Err(
                InstallError(kind=ErrorKind.DOWNLOAD_FAILURE, message=f"Cannot create a temporary directory: {e}")
            )
        archive = work / f"{flavor}.bindist"

        downloaded = self.downloader.download(bindist_url(flavor), archive)
        if isinstance(downloaded, Err):
            return downloaded

        tree = work / flavor
        extracted = extract(archive, tree)
        if isinstance(extracted, Err):
            return extracted

        return install_binary(tree, self.target_dir, self.binary)
