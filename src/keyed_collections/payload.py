"""Webhook payload boundary: decode, encode, sanitize and log request bodies.

Relays receive JSON bodies, inspect them as Collections and forward them.
This module is the only place that talks to the outside world, and it does
so through msgspec (bytes in, bytes out) and structlog (one event per
payload). It never opens files or sockets.

Example:
    ```python
    from keyed_collections.payload import decode_payload, log_payload

    payload = decode_payload(b'{"event": "push", "token": "s3cr3t"}')
    payload.get('event')  # 'push'
    log_payload(payload, channel='github')  # token logged as '***' locally
    ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from keyed_collections._config import environment, get_config
from keyed_collections._logging import get_logger
from keyed_collections.collection import Collection
from keyed_collections.serialize import decode_json, encode_json

__all__ = [
    'MASK',
    'decode_payload',
    'encode_payload',
    'log_payload',
    'sanitize',
]

MASK = '***'

def decode_payload(body: bytes | str) -> Collection:
    """Decode a JSON request body into a Collection.

    An empty body yields an empty Collection; a JSON scalar or array is
    wrapped the same way the Collection constructor wraps it.

    Raises:
        InvalidArgumentError: If the body is not valid JSON.
    """
    if not body or not body.strip():
        return Collection()
    return Collection(decode_json(body))


def encode_payload(payload: Collection | Mapping[Any, Any]) -> bytes:
    """Encode a payload as compact JSON bytes for forwarding."""
    return encode_json(payload if isinstance(payload, Collection) else Collection(payload)).encode()


def sanitize(payload: Collection | Mapping[Any, Any], sensitive: Iterable[str] | None = None) -> Collection:
    """Mask the values of sensitive top-level keys.

    Keys are matched case-insensitively against ``sensitive`` (the configured
    ``sensitive_keys`` by default). Nested values are left alone.
    """
    masked = {key.lower() for key in (sensitive if sensitive is not None else get_config().sensitive_keys)}
    return Collection(payload).map(lambda item, key: MASK if str(key).lower() in masked else item)


def log_payload(
    payload: Collection | Mapping[Any, Any],
    channel: str = 'request',
    sanitize_values: bool | None = None,
) -> None:
    """Emit one structured log event describing a payload.

    Args:
        payload: The decoded payload.
        channel: Logical channel name, bound to the event along with the
            configured environment.
        sanitize_values: Mask sensitive keys. None masks them only when the
            configured environment is ``local``.
    """
    if sanitize_values is None:
        sanitize_values = bool(environment('local'))

    body = sanitize(payload) if sanitize_values else Collection(payload)
    logger = get_logger(__name__).bind(channel=channel, environment=get_config().environment)
    logger.info(
        'payload received',
        keys=len(body),
        sanitized=sanitize_values,
        body=body.to_array(),
    )
