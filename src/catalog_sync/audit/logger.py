"""
Structured logger for catalog sync operations.

This module wraps a structlog logger behind the small interface used across
managers and providers, and configures the rendering (text or JSON), the
level and the optional log file from LoggingConfig.
"""

import logging
import sys
from typing import Optional

import structlog

from ..config.models import LoggingConfig


class CatalogSyncLogger:
    """Logger facade used by all catalog sync components."""

    def __init__(self, name: str = "catalog_sync"):
        self.name = name
        self._logger = structlog.get_logger(name)

    def setup_logging(self, config: LoggingConfig) -> None:
        """
        Configure structlog and the standard library handlers.

        Args:
            config: Logging configuration
        """
        handlers = [logging.StreamHandler(sys.stderr)]
        if config.log_to_file and config.log_file_path:
            handlers.append(logging.FileHandler(config.log_file_path, encoding="utf-8"))

        logging.basicConfig(
            format="%(message)s",
            level=getattr(logging, config.level),
            handlers=handlers,
            force=True,
        )

        if config.format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        self._logger = structlog.get_logger(self.name)

    def debug(self, message: str, extra: Optional[dict] = None) -> None:
        self._logger.debug(message, **(extra or {}))

    def info(self, message: str, extra: Optional[dict] = None) -> None:
        self._logger.info(message, **(extra or {}))

    def warning(self, message: str, extra: Optional[dict] = None) -> None:
        self._logger.warning(message, **(extra or {}))

    def error(
        self, message: str, extra: Optional[dict] = None, exc_info: bool = False
    ) -> None:
        self._logger.error(message, exc_info=exc_info, **(extra or {}))
