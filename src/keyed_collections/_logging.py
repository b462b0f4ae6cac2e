"""Structured logging for keyed_collections.

Payload events are emitted through structlog. ``configure_logging`` routes
them, and any stdlib records from the host application, through one
ProcessorFormatter so a relay writes a single structured stream to stderr.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

__all__ = [
    'configure_logging',
    'get_logger',
]


def _environment_adder(environment: str) -> Any:
    """Stamp every event with the deployment environment unless it is already bound."""

    def add_environment(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault('environment', environment)
        return event_dict

    return add_environment


def _pre_chain(environment: str | None) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.stdlib.ExtraAdder(),
    ]
    if environment is not None:
        processors.append(_environment_adder(environment))
    return processors


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = 'INFO',
    *,
    json_output: bool = True,
    environment: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL").
        json_output: If True, emit one JSON object per line. If False, use
            console output.
        environment: Added to every event as ``environment`` when given.

    Example:
        ```python
        configure_logging('DEBUG', environment='production')
        get_logger('relay').info('payload received', keys=3)
        ```
    """
    structlog.configure(
        processors=[
            *_pre_chain(environment),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(environment),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger, resolved against the configuration current at first use."""
    return structlog.get_logger(name)
