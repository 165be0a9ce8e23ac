"""Services: orchestration, strategies and status reporting."""

from hledger_install.services.orchestrator import (
    InstallOrchestrator,
    InstallResult,
    Outcome,
)
from hledger_install.services.status import StatusReporter, ToolLocator, ToolStatus
from hledger_install.services.strategies import (
    InstallerAStrategy,
    InstallerBStrategy,
    Strategy,
    default_strategies,
)

__all__ = [
    "InstallOrchestrator",
    "InstallResult",
    "Outcome",
    "StatusReporter",
    "ToolLocator",
    "ToolStatus",
    "InstallerAStrategy",
    "InstallerBStrategy",
    "Strategy",
    "default_strategies",
]
