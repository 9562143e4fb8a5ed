"""System-level services: configuration and logging."""

from perfolio.system.log_system import LoggerFactory, LoggingConfig
from perfolio.system.config import SystemConfig, get_system_config, reload_system_config

__all__ = [
    "LoggerFactory",
    "LoggingConfig",
    "SystemConfig",
    "get_system_config",
    "reload_system_config",
]
