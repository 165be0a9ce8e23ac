"""Core domain types and logic."""

from .config import Config, ConfigError, ToolSpec, ToolTable, load_tool_table
from .errors import ErrorCode, ErrorKind, InstallError
from .result import Err, Ok, Result, is_err, is_ok
from .versions import GateDecision, Ordering, compare, extract_version, gate, is_ambiguous

__all__ = [
    # config
    "Config",
    "ConfigError",
    "ToolSpec",
    "ToolTable",
    "load_tool_table",
    # errors
    "ErrorCode",
    "ErrorKind",
    "InstallError",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # versions
    "GateDecision",
    "Ordering",
    "compare",
    "extract_version",
    "gate",
    "is_ambiguous",
]
