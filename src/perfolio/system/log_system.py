"""
Structured logging for perfolio.

Wires structlog onto the standard library logging tree so that library
code can simply do::

    from perfolio.system import LoggerFactory

    logger = LoggerFactory.get_logger()
    logger.info("valuation_index.built", transactions=120, duration_ms=3)

Console output uses structlog's ConsoleRenderer, ``json`` output uses the
JSONRenderer. An optional rotating file handler receives the same events
rendered as JSON.
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_TIMESTAMP_FORMATS: dict[str, Optional[str]] = {
    "iso": "iso",
    "compact": "%Y-%m-%d %H:%M:%S",
    "time": "%H:%M:%S",
    "short": "%H:%M",
}


@dataclass
class LoggingConfig:
    """Runtime logging configuration consumed by LoggerFactory."""

    level: LogLevel = "INFO"
    format: Literal["console", "json"] = "console"
    timestamp_format: Literal["iso", "compact", "time", "short"] = "compact"
    enable_file: bool = False
    file_path: Optional[Path] = None
    file_level: LogLevel = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_width: int = 0


class LoggerFactory:
    """
    Central place to configure and hand out structlog loggers.

    ``configure`` may be called any number of times; each call replaces the
    handlers installed by the previous one. ``get_logger`` configures with
    defaults on first use.
    """

    _configured: bool = False
    _config: Optional[LoggingConfig] = None
    _handlers: list[logging.Handler] = []

    @classmethod
    def configure(cls, config: Optional[LoggingConfig] = None) -> None:
        """
        Configure structlog and the stdlib root logger.

        Args:
            config: Logging configuration (defaults used if None)
        """
        config = config or LoggingConfig()

        timestamper = structlog.processors.TimeStamper(fmt=_TIMESTAMP_FORMATS.get(config.timestamp_format, "iso"))
        shared_processors: list[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
        ]

        structlog.configure(
            processors=[
                *shared_processors,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )

        root = logging.getLogger()
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []

        console_renderer: Any
        if config.format == "json":
            console_renderer = structlog.processors.JSONRenderer()
        else:
            console_renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    console_renderer,
                ],
            )
        )
        cls._handlers.append(console_handler)

        if config.enable_file and config.file_path is not None:
            file_path = Path(config.file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler: logging.Handler
            if config.file_rotation:
                file_handler = logging.handlers.RotatingFileHandler(
                    file_path,
                    maxBytes=config.max_file_size_mb * 1024 * 1024,
                    backupCount=config.backup_count,
                    encoding="utf-8",
                )
            else:
                file_handler = logging.FileHandler(file_path, encoding="utf-8")
            file_handler.setLevel(config.file_level)
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    foreign_pre_chain=shared_processors,
                    processors=[
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        structlog.processors.dict_tracebacks,
                        structlog.processors.JSONRenderer(),
                    ],
                )
            )
            cls._handlers.append(file_handler)

        for handler in cls._handlers:
            root.addHandler(handler)

        # Root must pass everything any handler wants to see
        root.setLevel(min(handler.level for handler in cls._handlers))

        cls._config = config
        cls._configured = True

    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
        """
        Get a structlog logger.

        Args:
            name: Logger name (defaults to "perfolio")

        Returns:
            Bound structlog logger
        """
        if not cls._configured:
            cls.configure()
        return structlog.get_logger(name or "perfolio")

    @classmethod
    def get_config(cls) -> Optional[LoggingConfig]:
        """Return the active logging configuration (None before configure)."""
        return cls._config

    @classmethod
    def reset(cls) -> None:
        """Remove installed handlers and forget configuration (testing utility)."""
        root = logging.getLogger()
        for handler in cls._handlers:
            root.removeHandler(handler)
            handler.close()
        cls._handlers = []
        cls._config = None
        cls._configured = False
        structlog.reset_defaults()
