"""Tool table and run configuration.

The tool table (which tools to install, at which versions, with which
companion packages) is bundled as data/tools.toml. `Config` combines it with
the command-line flags into one immutable value that is passed explicitly to
the orchestrator and backend resolver.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "ToolSpec",
    "ToolTable",
    "DEFAULT_TOOL_TABLE",
    "MAX_DEPENDENCY_DEPTH",
    "load_tool_table",
]

DEFAULT_TOOL_TABLE = Path(__file__).parent.parent / "data" / "tools.toml"

MAX_DEPENDENCY_DEPTH = 2


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the tool table cannot be loaded or parsed."""

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A package to install, with the packages it must be installed with.

    Attributes:
        name: Package and executable name (e.g. "hledger-ui")
        version: Desired version (e.g. "1.3")
        depends: Companion packages, at most two levels deep
    """

    name: str
    version: str
    depends: tuple[ToolSpec, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if not self.version:
            raise ValueError(f"Tool {self.name!r} has no version")

    @property
    def package_id(self) -> str:
        """Versioned package identifier, e.g. "hledger-ui-1.3"."""
        return f"{self.name}-{self.version}"

    def closure(self) -> tuple[str, ...]:
        """This package followed by everything it depends on.

        Depth-first and de-duplicated, keeping first occurrences.
        """
        seen: list[str] = []

        def visit(spec: ToolSpec) -> None:
            if spec.package_id in seen:
                return
            seen.append(spec.package_id)
            for dep in spec.depends:
                visit(dep)

        visit(self)
        return tuple(seen)


@dataclass(frozen=True, slots=True)
class ToolTable:
    """The fixed, ordered set of tools this installer manages."""

    installer_name: str
    installer_version: str
    snapshot: str
    primary: tuple[ToolSpec, ...]
    auxiliary: tuple[ToolSpec, ...]

    @property
    def tools(self) -> tuple[ToolSpec, ...]:
        """All tools in installation order: primary first, then auxiliary."""
        return (*self.primary, *self.auxiliary)

    @property
    def versions(self) -> dict[str, str]:
        """Desired version per tool name."""
        return {tool.name: tool.version for tool in self.tools}

    @property
    def status_names(self) -> tuple[str, ...]:
        """Executables shown in the status listing, including this installer."""
        return (*(tool.name for tool in self.tools), self.installer_name)

    def get(self, name: str) -> ToolSpec | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    @classmethod
    def from_dict(cls, data: StrDict) -> ToolTable:
        """Create a ToolTable from parsed TOML.

        Raises:
            ValueError: On missing sections, unknown packages, dependency
                cycles, or dependencies nested deeper than allowed.
        """
        installer: StrDict = get_table(data, "installer") or {}
        tools: StrDict = get_table(data, "tools") or {}
        packages = get_table(data, "packages")
        if packages is None:
            raise ValueError("Missing [packages] table")

        cache: dict[str, ToolSpec] = {}
        # Longest dependency chain below each cached package.
        heights: dict[str, int] = {}

        def build(name: str, depth: int, path: tuple[str, ...]) -> ToolSpec:
            if name in path:
                raise ValueError(f"Dependency cycle: {' -> '.join((*path, name))}")
            if depth + heights.get(name, 0) > MAX_DEPENDENCY_DEPTH:
                root = path[0] if path else name
                raise ValueError(f"Dependencies of {root!r} nest deeper than {MAX_DEPENDENCY_DEPTH}")
            if name in cache:
                return cache[name]

            entry = as_str_dict(packages.get(name))
            if entry is None:
                raise ValueError(f"Unknown package: {name!r}")
            version = get_str(entry, "version") or ""
            depends = get_str_list(entry, "depends") or []
            spec = ToolSpec(
                name=name,
                version=version,
                depends=tuple(build(dep, depth + 1, (*path, name)) for dep in depends),
            )
            cache[name] = spec
            heights[name] = max((heights[dep.name] + 1 for dep in spec.depends), default=0)
            return spec

        primary = get_str_list(tools, "primary") or []
        auxiliary = get_str_list(tools, "auxiliary") or []
        if not primary:
            raise ValueError("Missing [tools].primary list")

        return cls(
            installer_name=get_str(installer, "name") or "hledger-install",
            installer_version=get_str(installer, "version") or "unknown",
            snapshot=get_str(installer, "snapshot") or "",
            primary=tuple(build(name, 0, ()) for name in primary),
            auxiliary=tuple(build(name, 0, ()) for name in auxiliary),
        )


@dataclass(frozen=True, slots=True)
class Config:
    """Everything a run needs, built once at startup.

    Attributes:
        table: Tools to install and the snapshot for installer B
        force: Reinstall tools (and installer B) even if already satisfied
        verbose: Show detail output and pass verbose flags to installers
    """

    table: ToolTable
    force: bool = False
    verbose: bool = False

    @property
    def quiet(self) -> bool:
        return not self.verbose

    @property
    def snapshot(self) -> str:
        return self.table.snapshot

    @property
    def versions(self) -> dict[str, str]:
        return self.table.versions


def load_tool_table(path: Path = DEFAULT_TOOL_TABLE) -> Result[ToolTable, ConfigError]:
    """Load the tool table from a TOML file.

    Args:
        path: Path to tools.toml (defaults to the bundled table)

    Returns:
        Ok(ToolTable) on success, Err(ConfigError) on failure
    """
    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Tool table not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading tool table: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Tool table root must be a TOML table", path=path))

    try:
        return Ok(ToolTable.from_dict(data))
    except ValueError as e:
        return Err(ConfigError(f"Invalid tool table: {e}", path=path))
