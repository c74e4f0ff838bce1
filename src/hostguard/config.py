"""Configuration loading and management for hostguard.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.hostguard.toml)
    3. Project config (./hostguard.toml)
    4. Explicit config file (--config)
    5. Environment variables (HOSTGUARD_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(rulesets=["Threading"], fail_on="warning")
    >>> config.categories
    frozenset({<Category.THREADING: 'Threading'>})
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import InvalidConfigError
from .models import Category, Severity
from .symbols.registry import SymbolEntry, custom_entry
from .symbols.tags import SymbolTag

# Type aliases for clarity
Verbosity = Literal["quiet", "normal", "verbose"]
Mode = Literal["report", "fix"]
OutputFormat = Literal["human", "json", "github"]

MODES = ("report", "fix")
OUTPUT_FORMATS = ("human", "json", "github")
VERBOSITIES = ("quiet", "normal", "verbose")

ENV_PREFIX = "HOSTGUARD_"


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    All fields have sensible defaults. Users typically override only a few
    fields via CLI flags or config file.

    Attributes:
        Rule selection:
            rulesets: Category names to enable (default: all five)
            disabled_rules: Rule ids to switch off
            extra_symbols: Additional symbol-table entries, name -> tag names.
                A leading ``*.`` makes the entry match as a member suffix.

        Run mode:
            mode: "report" or "fix"
            dry_run: In fix mode, compute fixes and diffs without writing
            fail_on: Lowest severity that makes the run fail

        Performance tuning:
            max_workers: Parallel workers (None = host parallelism)

        File filtering:
            extensions: Source file extensions collected from directories
            exclude_patterns: Glob patterns to exclude
            max_file_size_mb: Files above this size are reported unreadable
            allow_hidden_files: Include dot-files and dot-directories
            follow_symlinks: Follow symbolic links during collection

        Output control:
            output_format: "human", "json" or "github"
            verbosity: Logging verbosity level
    """

    # Rule selection
    rulesets: tuple[str, ...] = tuple(c.value for c in Category)
    disabled_rules: tuple[str, ...] = ()
    extra_symbols: dict[str, tuple[str, ...]] = field(default_factory=dict)

    # Run mode
    mode: Mode = "report"
    dry_run: bool = False
    fail_on: str = "error"

    # Performance tuning
    max_workers: Optional[int] = None  # None = os.cpu_count()

    # File filtering
    extensions: tuple[str, ...] = (".cs",)
    exclude_patterns: tuple[str, ...] = (
        "bin/*",
        "obj/*",
        ".git/*",
        ".vs/*",
        "packages/*",
        "node_modules/*",
        "*.g.cs",
        "*.g.i.cs",
        "*.Designer.cs",
        "*.AssemblyInfo.cs",
    )
    max_file_size_mb: float = 5.0
    allow_hidden_files: bool = False
    follow_symlinks: bool = False

    # Output control
    output_format: OutputFormat = "human"
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Normalise sequences and validate every field."""
        for name in ("rulesets", "disabled_rules", "extensions", "exclude_patterns"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = [v for v in (part.strip() for part in value.split(",")) if v]
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise InvalidConfigError(name, value, "expected a list of strings")
            object.__setattr__(self, name, tuple(str(v) for v in value))

        # Rule selection
        for name in self.rulesets:
            try:
                Category.parse(name)
            except ValueError as e:
                raise InvalidConfigError("rulesets", name, str(e)) from None
        if not isinstance(self.extra_symbols, dict):
            raise InvalidConfigError("extra_symbols", self.extra_symbols, "expected a table of name = [tags]")
        for name, tags in self.extra_symbols.items():
            if isinstance(tags, str):
                tags = [tags]
            if not name or not tags:
                raise InvalidConfigError("extra_symbols", name, "each symbol needs a name and at least one tag")
            for tag in tags:
                try:
                    SymbolTag.parse(str(tag))
                except ValueError as e:
                    raise InvalidConfigError(f"extra_symbols.{name}", tag, str(e)) from None

        # Run mode
        if self.mode not in MODES:
            raise InvalidConfigError("mode", self.mode, f"expected one of {', '.join(MODES)}")
        try:
            Severity.parse(str(self.fail_on))
        except ValueError as e:
            raise InvalidConfigError("fail_on", self.fail_on, str(e)) from None

        # Performance tuning
        if self.max_workers is not None and (not isinstance(self.max_workers, int) or self.max_workers < 1):
            raise InvalidConfigError("max_workers", self.max_workers, "must be at least 1")

        # File filtering
        for ext in self.extensions:
            if not ext.startswith("."):
                raise InvalidConfigError("extensions", ext, "extensions start with '.'")
        if self.max_file_size_mb <= 0:
            raise InvalidConfigError("max_file_size_mb", self.max_file_size_mb, "must be positive")

        # Output control
        if self.output_format not in OUTPUT_FORMATS:
            raise InvalidConfigError(
                "output_format", self.output_format, f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )
        if self.verbosity not in VERBOSITIES:
            raise InvalidConfigError("verbosity", self.verbosity, f"expected one of {', '.join(VERBOSITIES)}")

    @property
    def categories(self) -> frozenset:
        return frozenset(Category.parse(name) for name in self.rulesets)

    @property
    def fail_on_severity(self) -> Severity:
        return Severity.parse(self.fail_on)

    @property
    def fix(self) -> bool:
        return self.mode == "fix"

    @property
    def workers(self) -> int:
        """Worker count, resolving None to the host's parallelism."""
        return self.max_workers or os.cpu_count() or 1

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    def symbol_entries(self) -> list[SymbolEntry]:
        """Configured extra symbols as symbol-table entries."""
        entries = []
        for name, tags in sorted(self.extra_symbols.items()):
            if isinstance(tags, str):
                tags = [tags]
            entries.append(custom_entry(name, frozenset(SymbolTag.parse(str(t)) for t in tags)))
        return entries


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Configuration sources are merged in priority order (lowest to highest):
        1. Defaults (AnalysisConfig field defaults)
        2. Global config (~/.hostguard.toml)
        3. Project config (./hostguard.toml)
        4. Explicit config file (if config_file provided)
        5. Environment variables (HOSTGUARD_* prefix)
        6. CLI overrides (kwargs); None values are ignored

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated AnalysisConfig instance

    Raises:
        InvalidConfigError: If a config file is missing or malformed, or a
            value is invalid
    """
    merged: dict = {}

    global_config = Path.home() / ".hostguard.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / "hostguard.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise InvalidConfigError("config_file", str(config_file), "file not found")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    # Convert verbosity boolean flags to string
    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"
    merged.update({k: v for k, v in overrides.items() if v is not None})

    # [symbols] table in TOML
    symbols = merged.pop("symbols", None)
    if symbols is not None:
        merged["extra_symbols"] = {**merged.get("extra_symbols", {}), **symbols}

    unknown = sorted(set(merged) - set(AnalysisConfig.__dataclass_fields__))
    if unknown:
        raise InvalidConfigError(unknown[0], merged[unknown[0]], "unknown configuration key")
    return AnalysisConfig(**merged)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from HOSTGUARD_* environment variables.

    Supported environment variables:
        HOSTGUARD_RULESETS: comma-separated categories
        HOSTGUARD_DISABLED_RULES: comma-separated rule ids
        HOSTGUARD_MODE: report/fix
        HOSTGUARD_DRY_RUN: bool (true/false/1/0)
        HOSTGUARD_FAIL_ON: error/warning/info
        HOSTGUARD_MAX_WORKERS: int
        HOSTGUARD_EXTENSIONS: comma-separated extensions
        HOSTGUARD_EXCLUDE_PATTERNS: comma-separated globs
        HOSTGUARD_MAX_FILE_SIZE_MB: float
        HOSTGUARD_OUTPUT_FORMAT: human/json/github
        HOSTGUARD_VERBOSITY: quiet/normal/verbose

    Returns:
        Dict of field_name -> parsed_value for any HOSTGUARD_* vars found.
    """
    type_hints = get_type_hints(AnalysisConfig)
    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue
        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue
        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e)) from None
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns None for types that cannot come from the environment.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is dict or type_hint is dict:
        return None
    if origin is tuple or type_hint is tuple:
        return tuple(part.strip() for part in value.split(",") if part.strip())

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")
    if type_hint is int:
        return int(value)
    if type_hint is float:
        return float(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file, accepting a top-level ``[hostguard]`` table.

    Raises:
        InvalidConfigError: If the file cannot be read or parsed
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        # Fallback to tomli for Python 3.9-3.10
        import tomli as tomllib  # type: ignore

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidConfigError("config_file", str(path), str(e)) from e
    return data.get("hostguard", data)
