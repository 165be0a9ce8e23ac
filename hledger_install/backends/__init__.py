"""Installation backends: OS packages, bindists, and backend selection."""

from hledger_install.backends.bindist import (
    BindistInstaller,
    Downloader,
    ScratchDir,
    bindist_url,
    extract,
    install_binary,
)
from hledger_install.backends.packages import (
    FALLBACK_ORDER,
    PackageInstaller,
    PackageManager,
    SystemPackages,
)
from hledger_install.backends.resolver import (
    INSTALLER_A,
    INSTALLER_B,
    BackendCapability,
    BackendResolver,
    Flavor,
    FlavorChoice,
    Target,
    select_flavor,
    target_for,
)

__all__ = [
    # bindist
    "BindistInstaller",
    "Downloader",
    "ScratchDir",
    "bindist_url",
    "extract",
    "install_binary",
    # packages
    "FALLBACK_ORDER",
    "PackageInstaller",
    "PackageManager",
    "SystemPackages",
    # resolver
    "INSTALLER_A",
    "INSTALLER_B",
    "BackendCapability",
    "BackendResolver",
    "Flavor",
    "FlavorChoice",
    "Target",
    "select_flavor",
    "target_for",
]
