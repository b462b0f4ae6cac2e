"""JSON projection and msgspec encoding for collections.

A collection becomes a JSON array when its keys are exactly ``0..n-1`` in
order (the empty collection included) and a JSON object otherwise. ``project``
is the single place that rule lives. Every nested Collection and plain dict
is routed through it before msgspec sees the value, so ``to_json``,
``to_array`` and ``json_serialize`` always agree.

Example:
    ```python
    encode_json(Collection([1, 2]))  # '[1,2]'
    encode_json(Collection({1: 'a'}))  # '{"1":"a"}'
    ```
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import msgspec

from keyed_collections.arr import is_list
from keyed_collections.errors import InvalidArgumentError

__all__ = [
    'JsonSerializable',
    'decode_json',
    'encode_json',
    'project',
    'to_builtins',
]


@runtime_checkable
class JsonSerializable(Protocol):
    """Objects that provide their own JSON-ready representation."""

    def json_serialize(self) -> Any: ...


def project(items: Mapping[Any, Any]) -> list[Any] | dict[Any, Any]:
    """Apply the array-or-object rule to a mapping."""
    if is_list(items):
        return list(items.values())
    return dict(items)


def _enc_hook(obj: Any) -> Any:
    if isinstance(obj, JsonSerializable):
        return obj.json_serialize()
    if hasattr(obj, '__dict__'):
        return vars(obj)
    raise NotImplementedError(f'Objects of type {type(obj).__name__} are not supported')


def _projected(value: Any) -> Any:
    """Apply the array-or-object rule at every level, plain dicts included."""
    if isinstance(value, JsonSerializable):
        return _projected(value.json_serialize())
    if isinstance(value, Mapping):
        return project({key: _projected(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return [_projected(item) for item in value]
    return value


def to_builtins(value: Any) -> Any:
    """Deep-convert a value to builtin types, keeping non-string keys."""
    return msgspec.to_builtins(_projected(value), enc_hook=_enc_hook, str_keys=False)


def encode_json(value: Any, indent: int | None = None) -> str:
    """Encode a value as JSON text, pretty-printed when ``indent`` is given."""
    data = msgspec.json.encode(_projected(value), enc_hook=_enc_hook)
    if indent is not None:
        data = msgspec.json.format(data, indent=indent)
    return data.decode()


def decode_json(text: str | bytes) -> Any:
    """Decode JSON text.

    Raises:
        InvalidArgumentError: If the text is not valid JSON.
    """
    try:
        return msgspec.json.decode(text)
    except msgspec.DecodeError as exc:
        raise InvalidArgumentError(f'Malformed JSON: {exc}', 'json') from exc
