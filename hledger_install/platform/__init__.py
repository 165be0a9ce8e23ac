"""Platform abstraction layer."""

from .detection import (
    DistroFamily,
    DistroInfo,
    DistroRelease,
    Isa,
    OsKind,
    Prober,
    WordWidth,
    detect,
)
from .paths import (
    home,
    local_bin_dir,
    on_path,
)
from .process import (
    CommandRunner,
    DefaultCommandRunner,
    MockCommandRunner,
    ProcessError,
    RecordedCall,
    run,
    run_live,
)

__all__ = [
    # detection
    "DistroFamily",
    "DistroInfo",
    "DistroRelease",
    "Isa",
    "OsKind",
    "Prober",
    "WordWidth",
    "detect",
    # paths
    "home",
    "local_bin_dir",
    "on_path",
    # process
    "CommandRunner",
    "DefaultCommandRunner",
    "MockCommandRunner",
    "ProcessError",
    "RecordedCall",
    "run",
    "run_live",
]
