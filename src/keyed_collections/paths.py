"""Nested path lookup over mappings, sequences, collections and objects.

A path is a dotted string (``'user.address.city'``), an int, or a list of
segments. Two kinds of special segment exist:

- ``*`` fans out over every element of the current target and resolves the
  rest of the path per element. Chained wildcards collapse one level.
- ``{first}`` / ``{last}`` resolve to the first or last key of the target.

``\\*``, ``\\{first}`` and ``\\{last}`` are the escaped literal forms.

Example:
    ```python
    payload = {'users': [{'name': 'ana'}, {'name': 'bo'}]}
    data_get(payload, 'users.*.name')  # ['ana', 'bo']
    data_get(payload, 'users.{last}.name')  # 'bo'
    data_get(payload, 'users.5.name', 'nobody')  # 'nobody'
    ```
"""

from __future__ import annotations

import functools
import re
import types
from collections.abc import Iterable, Mapping, MutableMapping, MutableSequence
from typing import Any

__all__ = [
    'MISSING',
    'data_forget',
    'data_get',
    'data_has',
    'data_set',
    'segments_of',
    'value',
]

_INT_SEGMENT = re.compile(r'-?\d+')
_LAZY_DEFAULTS = (types.FunctionType, types.MethodType, types.BuiltinMethodType, functools.partial)


class _Missing:
    """Sentinel marking an argument that was not passed."""

    __slots__ = ()

    def __repr__(self) -> str:
        return '<missing>'

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def value(default: Any, *args: Any) -> Any:
    """Resolve a default: plain functions are called, anything else is returned."""
    if isinstance(default, _LAZY_DEFAULTS):
        return default(*args)
    return default


def segments_of(path: Any) -> list[Any]:
    """Split a path into its segments."""
    if isinstance(path, (list, tuple)):
        return list(path)
    if isinstance(path, int) and not isinstance(path, bool):
        return [path]
    return str(path).split('.')


def _unwrap(target: Any) -> Any:
    """Return the live backing dict of a Collection, the target otherwise."""
    from keyed_collections.collection import Collection  # noqa: PLC0415

    if isinstance(target, Collection):
        return target._items  # noqa: SLF001
    return target


def _as_mapping(target: Any) -> Mapping[Any, Any]:
    target = _unwrap(target)
    if isinstance(target, Mapping):
        return target
    if isinstance(target, (list, tuple)):
        return dict(enumerate(target))
    if isinstance(target, Iterable) and not isinstance(target, (str, bytes)):
        return dict(enumerate(target))
    if hasattr(target, '__dict__'):
        return vars(target)
    return {}


def _int_form(segment: Any) -> int | None:
    if isinstance(segment, int) and not isinstance(segment, bool):
        return segment
    if isinstance(segment, str) and _INT_SEGMENT.fullmatch(segment):
        return int(segment)
    return None


def _step(target: Any, segment: Any) -> tuple[bool, Any]:
    """Resolve one segment against a target, reporting whether it was found."""
    target = _unwrap(target)
    if isinstance(target, Mapping):
        if segment in target:
            return True, target[segment]
        index = _int_form(segment)
        if index is not None and index in target:
            return True, target[index]
        if isinstance(segment, int) and str(segment) in target:
            return True, target[str(segment)]
        return False, None
    if isinstance(target, (list, tuple)):
        index = _int_form(segment)
        if index is not None and 0 <= index < len(target):
            return True, target[index]
        return False, None
    if isinstance(target, (str, bytes, int, float, bool)) or target is None:
        return False, None
    if isinstance(segment, str) and segment.isidentifier():
        attribute = getattr(target, segment, None)
        if attribute is not None:
            return True, attribute
    return False, None


def _resolve_special(target: Any, segment: Any) -> Any:
    match segment:
        case '\\*':
            return '*'
        case '\\{first}':
            return '{first}'
        case '\\{last}':
            return '{last}'
        case '{first}':
            return next(iter(_as_mapping(target)), None)
        case '{last}':
            keys = list(_as_mapping(target))
            return keys[-1] if keys else None
        case _:
            return segment


def _collapse(results: list[Any]) -> list[Any]:
    collapsed: list[Any] = []
    for item in results:
        item = _unwrap(item)
        if isinstance(item, Mapping):
            collapsed.extend(item.values())
        elif isinstance(item, (list, tuple)):
            collapsed.extend(item)
    return collapsed


def data_get(target: Any, path: Any, default: Any = None) -> Any:
    """Get a value from a nested structure using a path.

    Args:
        target: Mapping, sequence, Collection or object to read from.
        path: Dotted string, int, list of segments, or None for the target itself.
        default: Returned when any segment fails to resolve. Plain functions
            are called lazily.

    Returns:
        The resolved value, a list of values when the path fans out, or the default.
    """
    if path is None:
        return target

    segments = segments_of(path)
    for position, segment in enumerate(segments):
        if segment is None:
            return target

        if segment == '*':
            target = _unwrap(target)
            if isinstance(target, Mapping):
                elements: Iterable[Any] = target.values()
            elif isinstance(target, Iterable) and not isinstance(target, (str, bytes)):
                elements = target
            else:
                return value(default)

            rest = segments[position + 1 :]
            results = [data_get(element, rest) for element in elements]
            return _collapse(results) if '*' in rest else results

        found, target = _step(target, _resolve_special(target, segment))
        if not found:
            return value(default)

    return target


def data_has(target: Any, path: Any) -> bool:
    """Whether every segment of a (wildcard-free) path resolves."""
    if path is None or target is None:
        return False
    segments = segments_of(path)
    if not segments:
        return False
    for segment in segments:
        found, target = _step(target, _resolve_special(target, segment))
        if not found:
            return False
    return True


def data_set(target: Any, path: Any, new_value: Any, *, overwrite: bool = True) -> Any:
    """Set a value in a nested structure, creating intermediate dicts.

    ``*`` writes to every element of the current level. Missing or non-container
    intermediates are replaced with dicts. Returns the (possibly new) target.

    Example:
        ```python
        data_set({}, 'a.b', 1)  # {'a': {'b': 1}}
        data_set({'a': [{}, {}]}, 'a.*.x', 0)  # {'a': [{'x': 0}, {'x': 0}]}
        ```
    """
    segments = segments_of(path)
    segment, rest = segments[0], segments[1:]
    container = _unwrap(target)

    if segment == '*':
        if not isinstance(container, (MutableMapping, MutableSequence)):
            container = {}
            target = container
        keys = list(container.keys()) if isinstance(container, MutableMapping) else range(len(container))
        for key in keys:
            if rest:
                container[key] = data_set(container[key], rest, new_value, overwrite=overwrite)
            elif overwrite:
                container[key] = new_value
        return target

    if not isinstance(container, (MutableMapping, MutableSequence)):
        container = {}
        target = container

    if isinstance(container, MutableSequence):
        index = _int_form(segment)
        if index is None:
            container = dict(enumerate(container))
            target = container
        elif index >= len(container):
            container.extend([None] * (index + 1 - len(container)))
            segment = index
        else:
            segment = index

    if rest:
        found = isinstance(container, MutableSequence) or segment in container
        current = container[segment] if found else None
        if not isinstance(_unwrap(current), (MutableMapping, MutableSequence)):
            current = {}
        container[segment] = data_set(current, rest, new_value, overwrite=overwrite)
    elif overwrite or isinstance(container, MutableSequence) or segment not in container:
        container[segment] = new_value
    return target


def data_forget(target: Any, path: Any) -> Any:
    """Remove a value from a nested structure; ``*`` removes under every element."""
    segments = segments_of(path)
    segment, rest = segments[0], segments[1:]
    container = _unwrap(target)
    if not isinstance(container, (MutableMapping, MutableSequence)):
        return target

    if segment == '*':
        children = list(container.values()) if isinstance(container, MutableMapping) else list(container)
        for child in children:
            if rest:
                data_forget(child, rest)
        if not rest:
            container.clear()
        return target

    if isinstance(container, MutableSequence):
        index = _int_form(segment)
        if index is None or not 0 <= index < len(container):
            return target
        segment = index
    elif segment not in container:
        index = _int_form(segment)
        if index is None or index not in container:
            return target
        segment = index

    if rest:
        data_forget(container[segment], rest)
    else:
        del container[segment]
    return target
