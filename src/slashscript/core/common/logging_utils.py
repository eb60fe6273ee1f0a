"""
Logging utilities for the engine.

This module provides utilities for logging, including:
- Test/production environment tagging
- Structured loggers for the service layer
- Compact rendering of pipe values and script text in log lines
"""

import logging
import os
import sys
from typing import Any, Literal

import structlog

DEFAULT_LOG_FORMAT = (
    "%(asctime)s [%(levelname)-8s] [%(env_tag)s] %(name)s:%(lineno)d %(message)s"
)


# Environment detection
def _is_running_under_pytest() -> bool:
    """Detect if we're running under pytest.

    Returns:
        True if running under pytest, False otherwise
    """
    return "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST") is not None


def _get_environment_tag() -> str:
    """Get the environment tag for logging.

    Returns:
        'test' if running under pytest, 'prod' otherwise
    """
    return "test" if _is_running_under_pytest() else "prod"


class EnvironmentTaggingFilter(logging.Filter):
    """Logging filter that adds environment tags to log records."""

    def __init__(self) -> None:
        super().__init__()
        self._env_tag = _get_environment_tag()

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.env_tag = self._env_tag
        return True


class EnvironmentTaggingFormatter(logging.Formatter):
    """Logging formatter that includes environment tags."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
    ) -> None:
        if fmt is None:
            fmt = DEFAULT_LOG_FORMAT
        super().__init__(fmt, datefmt, style=style)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Optional logger name

    Returns:
        A structured logger
    """
    return structlog.get_logger(name)  # type: ignore


def summarize(value: Any, limit: int = 80) -> str:
    """Render a pipe value or script excerpt for a single log line."""
    text = value if isinstance(value, str) else repr(value)
    text = text.replace("\n", "\\n")
    if len(text) > limit:
        return f"{text[: limit - 3]}..."
    return text


def configure_structlog() -> None:
    """Route structlog loggers through stdlib logging handlers and levels."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def install_environment_tagging() -> None:
    """Install environment tagging filter on the root logger and its handlers."""
    root = logging.getLogger()
    filter_instance = EnvironmentTaggingFilter()
    root.addFilter(filter_instance)

    for handler in list(root.handlers):
        handler.addFilter(filter_instance)
        if isinstance(handler.formatter, logging.Formatter):
            handler.setFormatter(
                EnvironmentTaggingFormatter(
                    fmt=handler.formatter._fmt, datefmt=handler.formatter.datefmt
                )
            )


def configure_logging_with_environment_tagging(
    level: int = logging.INFO,
    log_format: str | None = None,
    log_file: str | None = None,
) -> None:
    """Configure logging with environment tagging.

    Args:
        level: Logging level
        log_format: Optional log format string
        log_file: Optional log file path
    """
    formatter = EnvironmentTaggingFormatter(fmt=log_format or DEFAULT_LOG_FORMAT)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    install_environment_tagging()
    configure_structlog()


class LogContext:
    """Context manager for adding context to logs."""

    def __init__(self, logger: structlog.stdlib.BoundLogger, **context: Any):
        """Initialize the context manager.

        Args:
            logger: The logger to use
            **context: The context to add
        """
        self.logger = logger
        self.context = context
        self.bound_logger: structlog.stdlib.BoundLogger | None = None

    def __enter__(self) -> structlog.stdlib.BoundLogger:
        self.bound_logger = self.logger.bind(**self.context)
        return self.bound_logger

    def __exit__(self, *args: Any) -> None:
        self.bound_logger = None
