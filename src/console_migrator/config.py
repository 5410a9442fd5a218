"""Configuration loading and management for console-migrator.

Configuration sources are merged in priority order:
    1. Defaults (defined in MigrationConfig)
    2. Global config (~/.console-migrator.toml)
    3. Project config (./console-migrator.toml)
    4. Explicit config file
    5. Environment variables (CONSOLE_MIGRATOR_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(verbose=True, backup_retention="on-failure-only")
    >>> config.verbosity
    'verbose'
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
Retention = Literal["always", "on-failure-only"]

ENV_PREFIX = "CONSOLE_MIGRATOR_"
CONFIG_FILENAME = "console-migrator.toml"

# Directory name -> component. Checked in this order; the first rule whose
# directory appears in a file's path wins. "core" comes last because many
# components nest a core/ directory of their own.
DEFAULT_COMPONENT_DIRS: dict[str, list[str]] = {
    "CLI": ["cli", "bin"],
    "MCP": ["mcp", "server"],
    "Swarm": ["swarm", "coordination"],
    "Terminal": ["terminal", "ui"],
    "Memory": ["memory"],
    "Migration": ["migration"],
    "Hooks": ["hooks"],
    "Enterprise": ["enterprise"],
    "Core": ["core"],
}

VALID_METHODS = ("info", "warning", "error", "debug")


@dataclass(frozen=True)
class MigrationConfig:
    """Configuration for a migration run.

    Attributes:
        Files:
            state_dir: Directory (relative to the project root) holding runs,
                reports and backups
            extensions: Source file extensions considered for migration
            exclude_patterns: Glob patterns (matched against the relative
                path) that are never migrated
            max_file_size_mb: Larger files are reported as scan failures

        Source calls:
            receiver: Receiver token of the diagnostic-print calls

        Target facade:
            facade_module: Project-relative path of the logger facade module
            facade_function: Function that returns a component logger
            logger_identifier: Variable bound to the component logger
            call_id_method: Logger method attaching a call identifier
            metadata_methods: Logger methods that accept structured metadata

        Safety:
            backup_retention: "always" keeps backups until explicit cleanup,
                "on-failure-only" discards them once a file validates
            validate: Run the validator after migrating
            max_overhead_ratio: Allowed growth of logger operations relative to
                the baseline (a call-id chain costs one extra operation)

        Performance:
            scan_workers: Threads used for read-only dry-run counting
                (None = auto)

        Components:
            component_dirs: Component name -> directory names
    """

    state_dir: str = ".console-migrator"
    extensions: list[str] = field(
        default_factory=lambda: [".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"]
    )
    exclude_patterns: list[str] = field(
        default_factory=lambda: [
            "node_modules/*",
            "*/node_modules/*",
            "dist/*",
            "build/*",
            "coverage/*",
            "docs/*",
            ".git/*",
            "*.d.ts",
            "*.min.js",
            "*.bundle.js",
        ]
    )
    max_file_size_mb: float = 10.0

    receiver: str = "console"

    facade_module: str = "src/utils/component-logger.js"
    facade_function: str = "getComponentLogger"
    logger_identifier: str = "componentLogger"
    call_id_method: str = "withCallId"
    metadata_methods: list[str] = field(default_factory=lambda: ["info", "warning", "debug"])

    backup_retention: Retention = "always"
    validate: bool = True
    max_overhead_ratio: float = 1.0

    scan_workers: Optional[int] = None

    verbosity: Verbosity = "normal"

    component_dirs: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_COMPONENT_DIRS.items()}
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.backup_retention not in ("always", "on-failure-only"):
            raise InvalidConfigError(
                "backup_retention", self.backup_retention, "expected always or on-failure-only"
            )
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")
        if self.max_overhead_ratio < 0:
            raise InvalidConfigError(
                "max_overhead_ratio", self.max_overhead_ratio, "must be non-negative"
            )
        if self.max_file_size_mb <= 0:
            raise InvalidConfigError("max_file_size_mb", self.max_file_size_mb, "must be positive")
        if self.scan_workers is not None and self.scan_workers < 1:
            raise InvalidConfigError("scan_workers", self.scan_workers, "must be at least 1")
        if not self.extensions:
            raise InvalidConfigError("extensions", self.extensions, "must not be empty")
        for name in ("receiver", "facade_function", "logger_identifier", "call_id_method"):
            value = getattr(self, name)
            if not value.isidentifier():
                raise InvalidConfigError(name, value, "must be a valid identifier")
        for method in self.metadata_methods:
            if method not in VALID_METHODS:
                raise InvalidConfigError(
                    "metadata_methods", method, f"expected one of {', '.join(VALID_METHODS)}"
                )
        # Unknown component names are caught when the classifier is built.
        if not self.component_dirs:
            raise InvalidConfigError("component_dirs", self.component_dirs, "must not be empty")

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)


def load_config(config_file: Optional[Path] = None, **overrides) -> MigrationConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); ``None``
            values are ignored

    Returns:
        Validated MigrationConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / f".{CONFIG_FILENAME}"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / CONFIG_FILENAME
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    overrides = {k: v for k, v in overrides.items() if v is not None}
    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update(overrides)

    # [components] table from TOML
    components = merged.pop("components", None)
    if components is not None:
        if not isinstance(components, dict):
            raise ConfigurationError("[components] must be a table of name = [dirs]")
        merged["component_dirs"] = {str(k): list(v) for k, v in components.items()}

    try:
        return MigrationConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CONSOLE_MIGRATOR_* environment variables.

    Supported for scalar fields only (str, bool, int, float), e.g.
    CONSOLE_MIGRATOR_BACKUP_RETENTION=on-failure-only or
    CONSOLE_MIGRATOR_VALIDATE=false.
    """
    type_hints = get_type_hints(MigrationConfig)

    result: dict[str, Any] = {}

    for field_name in MigrationConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot be expressed as a single string
    (lists, dicts).
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin in (list, dict) or type_hint in (list, dict):
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)


default_config = MigrationConfig()
