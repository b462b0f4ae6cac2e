"""Runtime configuration: CollectionConfig, environment detection and initialization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from keyed_collections._logging import configure_logging

__all__ = [
    'DEFAULT_SENSITIVE_KEYS',
    'CollectionConfig',
    'environment',
    'get_config',
    'init',
]

DEFAULT_SENSITIVE_KEYS: tuple[str, ...] = ('password', 'pass', 'token', 'authorization', 'cookie')

_DEFAULT_ENVIRONMENT = 'local'


@dataclass(frozen=True)
class CollectionConfig:
    """Configuration shared by serialization and the payload boundary.

    Attributes:
        environment: Deployment environment name (e.g. "local", "production").
        log_level: Logging level (e.g. "DEBUG", "INFO"). None = logging untouched.
        json_indent: Indentation used by ``Collection.to_pretty_json``.
        sensitive_keys: Payload keys whose values are masked by ``payload.sanitize``.
    """

    environment: str = _DEFAULT_ENVIRONMENT
    log_level: str | None = None
    json_indent: int = 4
    sensitive_keys: tuple[str, ...] = field(default=DEFAULT_SENSITIVE_KEYS)


_config: CollectionConfig | None = None


def _detect_environment() -> str:
    """Read the environment name from APP_ENV, defaulting to "local"."""
    env = os.environ.get('APP_ENV', '').strip()
    return env or _DEFAULT_ENVIRONMENT


def init(
    environment: str | None = None,
    log_level: str | None = None,
    json_indent: int | None = None,
    sensitive_keys: tuple[str, ...] | list[str] | None = None,
) -> CollectionConfig:
    """Initialize keyed_collections with the given configuration.

    Args:
        environment: Environment name. Read from APP_ENV if None.
        log_level: Logging level ("DEBUG", "INFO", etc.). None = logging untouched.
        json_indent: Indentation for pretty JSON output (minimum 0).
        sensitive_keys: Keys masked when payloads are sanitized.

    Returns:
        The CollectionConfig that was set.

    Example:
        ```python
        from keyed_collections import init

        init(environment='production', log_level='INFO')
        ```
    """
    global _config  # noqa: PLW0603

    resolved_environment = environment if environment is not None else _detect_environment()
    resolved_keys = (
        tuple(key.lower() for key in sensitive_keys) if sensitive_keys is not None else DEFAULT_SENSITIVE_KEYS
    )

    _config = CollectionConfig(
        environment=resolved_environment,
        log_level=log_level,
        json_indent=max(0, json_indent) if json_indent is not None else 4,
        sensitive_keys=resolved_keys,
    )

    if log_level is not None:
        configure_logging(log_level, environment=resolved_environment)
        logging.getLogger(__name__).debug('keyed_collections initialized for %s', resolved_environment)

    return _config


def get_config() -> CollectionConfig:
    """Get the active configuration.

    Unlike a runtime that must be started, collections work without ``init``;
    a default configuration built from the environment is used then.
    """
    if _config is None:
        return CollectionConfig(environment=_detect_environment())
    return _config


def environment(is_: str | None = None) -> str | bool:
    """Return the environment name, or whether it equals ``is_``.

    Example:
        ```python
        environment()  # 'local'
        environment('production')  # False
        ```
    """
    current = get_config().environment
    if is_ is None:
        return current
    return current == is_
