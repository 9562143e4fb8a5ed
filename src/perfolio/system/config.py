"""
System Configuration Management.

Settings for ingestion, the computation engine, report output and logging,
read from YAML with built-in defaults for everything.

Sections:
- ingestion: default currency, policy for unknown transaction types
- engine: valuation cache, IRR solver, precomputed KPI windows
- output: directory for exported reports
- logging: console/file logging (see log_system.LoggingConfig)

Usage:
    >>> from perfolio.system import get_system_config
    >>> config = get_system_config()
    >>> config.engine.valuation_cache_limit
    1000
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional

import yaml

if TYPE_CHECKING:
    from perfolio.services.engine.config import EngineConfig

UnknownTypePolicy = Literal["ignore", "warn", "reject"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

CONFIG_ENV_VAR = "PERFOLIO_CONFIG"
PROJECT_CONFIG = Path("config/perfolio.yaml")
USER_CONFIG = Path(".perfolio/perfolio.yaml")

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _engine_config(values: Optional[dict[str, Any]] = None) -> "EngineConfig":
    # Engine imports the system package; resolve lazily
    from perfolio.services.engine.config import EngineConfig

    return EngineConfig(**(values or {}))


@dataclass
class IngestionConfig:
    """Ingestion policy.

    ``unknown_transaction_types``:
        ``ignore`` keeps such transactions silently, ``warn`` keeps them and
        logs once per distinct type, ``reject`` fails the load.
    """

    default_currency: str = "EUR"
    unknown_transaction_types: UnknownTypePolicy = "warn"


@dataclass
class OutputConfig:
    reports_root: str = "reports"


@dataclass
class LoggingConfig:
    """Logging section as written in YAML; file_path stays a string here."""

    level: LogLevel = "INFO"
    format: Literal["console", "json"] = "console"
    timestamp_format: Literal["iso", "compact", "time", "short"] = "compact"
    enable_file: bool = False
    file_path: str = "logs/perfolio.log"
    file_level: LogLevel = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0

    def to_logger_config(self):
        """Build the runtime config consumed by LoggerFactory.configure."""
        from perfolio.system.log_system import LoggingConfig as RuntimeLoggingConfig

        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["file_path"] = Path(self.file_path) if self.file_path else None
        return RuntimeLoggingConfig(**values)


@dataclass
class SystemConfig:
    """
    Complete perfolio configuration.

    Example:
        >>> config = SystemConfig.load(Path("config/perfolio.yaml"))
        >>> config.ingestion.unknown_transaction_types
        'warn'
    """

    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    engine: "EngineConfig" = field(default_factory=_engine_config)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "SystemConfig":
        """
        Load configuration from YAML.

        Without an explicit path, ``$PERFOLIO_CONFIG`` is used when set;
        otherwise ``./config/perfolio.yaml`` and ``~/.perfolio/perfolio.yaml``
        are merged, the home file taking precedence. Missing files are
        skipped; with no file at all the defaults apply.

        Args:
            config_path: Explicit config file (disables the search)

        Returns:
            SystemConfig with file values layered over defaults

        Raises:
            pydantic.ValidationError: If the engine section is invalid
        """
        merged: dict[str, Any] = {}
        for path in _candidate_paths(config_path):
            with open(path) as f:
                loaded = yaml.safe_load(f)
            if loaded:
                merged = _deep_merge(merged, loaded)

        return cls._from_dict(_substitute_env_vars(merged))

    @classmethod
    def _from_dict(cls, config_dict: dict[str, Any]) -> "SystemConfig":
        logging_values = _section(config_dict, "logging", LoggingConfig)
        if not logging_values.get("file_path"):
            logging_values.pop("file_path", None)

        return cls(
            ingestion=IngestionConfig(**_section(config_dict, "ingestion", IngestionConfig)),
            engine=_engine_config(config_dict.get("engine")),
            output=OutputConfig(**_section(config_dict, "output", OutputConfig)),
            logging=LoggingConfig(**logging_values),
        )


def _candidate_paths(config_path: Optional[Path]) -> list[Path]:
    if config_path:
        return [config_path]

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return [Path(env_path)]

    return [path for path in (PROJECT_CONFIG, Path.home() / USER_CONFIG) if path.exists()]


def _section(config_dict: dict[str, Any], name: str, target: type) -> dict[str, Any]:
    """Known keys of one YAML section; unknown keys are dropped."""
    known = {f.name for f in fields(target)}
    return {key: value for key, value in (config_dict.get(name) or {}).items() if key in known}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge key by key."""
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        result[key] = _deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ``${NAME}`` in strings with the environment value; unset names are left as is."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda match: os.environ.get(match.group(1), match.group(0)), value)
    return value


_config: Optional[SystemConfig] = None


def get_system_config(config_path: Optional[Path] = None) -> SystemConfig:
    """
    Process-wide configuration, loaded on first access.

    Passing ``config_path`` forces a load from that file.
    """
    global _config
    if _config is None or config_path is not None:
        _config = SystemConfig.load(config_path)
    return _config


def reload_system_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Discard the cached configuration and load it again."""
    global _config
    _config = SystemConfig.load(config_path)
    return _config
