"""Pure helpers over plain mappings.

Every function takes a mapping (or anything ``from_`` can turn into one) and
returns new data; the argument is never mutated. Dotted keys address nested
mappings the same way ``data_get`` does, minus wildcards.

Example:
    ```python
    from keyed_collections import arr

    settings = {'db': {'host': 'localhost', 'port': 5432}}
    arr.get(settings, 'db.port')  # 5432
    arr.dot(settings)  # {'db.host': 'localhost', 'db.port': 5432}
    arr.set_(settings, 'db.user', 'app')['db']  # {'host': 'localhost', 'port': 5432, 'user': 'app'}
    ```
"""

from __future__ import annotations

import dataclasses
import itertools
import math
import random as _random
import re
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

import msgspec

from keyed_collections.errors import InvalidArgumentError
from keyed_collections.keys import canonical_key, loose_truthy
from keyed_collections.operators import adapt, use_as_callable
from keyed_collections.paths import MISSING, data_get, segments_of, value

__all__ = [
    'accessible',
    'collapse',
    'cross_join',
    'dot',
    'except_',
    'exists',
    'first',
    'flatten',
    'forget',
    'from_',
    'get',
    'has',
    'has_any',
    'is_list',
    'last',
    'map_',
    'map_with_keys',
    'only',
    'partition',
    'pluck',
    'prepend',
    'pull',
    'random',
    'select',
    'set_',
    'shuffle',
    'undot',
    'where',
    'where_not_null',
    'wrap',
]

_DECIMAL_KEY = re.compile(r'0|-?[1-9]\d*')


def _collection_items(target: Any) -> dict[Any, Any] | None:
    from keyed_collections.collection import Collection  # noqa: PLC0415

    if isinstance(target, Collection):
        return target._items  # noqa: SLF001
    return None


def from_(items: Any) -> dict[Any, Any]:
    """Turn anything array-like into a dict.

    Raises:
        InvalidArgumentError: If ``items`` is a scalar.
    """
    if items is None:
        return {}
    backing = _collection_items(items)
    if backing is not None:
        return dict(backing)
    if isinstance(items, Mapping):
        return dict(items)
    if hasattr(items, 'json_serialize'):
        return from_(items.json_serialize())
    if isinstance(items, (str, bytes, int, float, bool)):
        raise InvalidArgumentError('Items cannot be represented by a scalar value.', 'items')
    if isinstance(items, Enum):
        return {0: items}
    if isinstance(items, msgspec.Struct):
        return msgspec.structs.asdict(items)
    if dataclasses.is_dataclass(items) and not isinstance(items, type):
        return {field.name: getattr(items, field.name) for field in dataclasses.fields(items)}
    if isinstance(items, Iterable):
        return dict(enumerate(items))
    return dict(vars(items))


def accessible(target: Any) -> bool:
    """Whether a value supports keyed access (mapping, list, tuple or Collection)."""
    return isinstance(target, (Mapping, list, tuple)) or _collection_items(target) is not None


def _backing(target: Any) -> Any:
    backing = _collection_items(target)
    return target if backing is None else backing


def exists(target: Any, key: Any) -> bool:
    """Whether a top-level key exists (list indices count as keys)."""
    target = _backing(target)
    if isinstance(target, Mapping):
        return key in target
    if isinstance(target, (list, tuple)):
        return isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(target)
    return False


def _segment_key(target: Any, segment: Any) -> tuple[bool, Any]:
    if exists(target, segment):
        return True, segment
    if isinstance(segment, str) and segment.lstrip('-').isdigit() and exists(target, int(segment)):
        return True, int(segment)
    return False, None


def get(target: Any, key: Any, default: Any = None) -> Any:
    """Get an item using dot notation.

    A key that exists verbatim (dots included) wins over the nested reading.
    """
    if not accessible(target):
        return value(default)
    if key is None:
        return target
    if exists(target, key):
        return _backing(target)[key]
    if not isinstance(key, str) or '.' not in key:
        found, resolved = _segment_key(target, key)
        return _backing(target)[resolved] if found else value(default)

    for segment in key.split('.'):
        found, resolved = _segment_key(target, segment) if accessible(target) else (False, None)
        if not found:
            return value(default)
        target = _backing(target)[resolved]
    return target


def has(target: Any, keys: Any) -> bool:
    """Whether every key (dot notation allowed) is present."""
    keys = keys if isinstance(keys, (list, tuple)) else [keys]
    if not keys or not accessible(target) or not _backing(target):
        return False

    for key in keys:
        if exists(target, key):
            continue
        current = target
        for segment in str(key).split('.'):
            found, resolved = _segment_key(current, segment) if accessible(current) else (False, None)
            if not found:
                return False
            current = _backing(current)[resolved]
    return True


def has_any(target: Any, keys: Any) -> bool:
    """Whether at least one of the keys (dot notation allowed) is present."""
    if keys is None:
        return False
    keys = keys if isinstance(keys, (list, tuple)) else [keys]
    if not keys or not accessible(target) or not _backing(target):
        return False
    return any(has(target, key) for key in keys)


def _array_key(segment: Any) -> Any:
    """A segment spelling a canonical decimal integer addresses an integer key."""
    if isinstance(segment, str) and _DECIMAL_KEY.fullmatch(segment):
        return int(segment)
    return segment


def _assign(mapping: dict[Any, Any], segments: list[Any], new_value: Any) -> None:
    """Write a value along a path in place, replacing non-dict intermediates."""
    segments = [_array_key(segment) for segment in segments]
    for segment in segments[:-1]:
        child = mapping.get(segment)
        if not isinstance(child, dict):
            child = {}
            mapping[segment] = child
        mapping = child
    mapping[segments[-1]] = new_value


def set_(target: Any, key: Any, new_value: Any) -> Any:
    """Return a copy of ``target`` with a value set at a dotted key.

    Example:
        ```python
        set_({'a': {'b': 1}}, 'a.c', 2)  # {'a': {'b': 1, 'c': 2}}
        ```
    """
    if key is None:
        return new_value

    result = from_(target)
    segments = segments_of(key)
    head, rest = segments[0], segments[1:]
    if rest:
        child = result.get(head)
        result[head] = set_(child if accessible(child) else {}, rest, new_value)
    else:
        result[head] = new_value
    return result


def _forget_path(mapping: dict[Any, Any], segments: list[Any]) -> dict[Any, Any]:
    head, rest = segments[0], segments[1:]
    found, resolved = _segment_key(mapping, head)
    if not found:
        return mapping
    result = dict(mapping)
    if rest:
        child = result[resolved]
        if accessible(child):
            result[resolved] = _forget_path(from_(child), rest)
    else:
        del result[resolved]
    return result


def forget(target: Any, keys: Any) -> dict[Any, Any]:
    """Return a copy of ``target`` without the given (dotted) keys."""
    result = from_(target)
    keys = keys if isinstance(keys, (list, tuple)) else [keys]
    for key in keys:
        if key in result:
            del result[key]
            continue
        result = _forget_path(result, segments_of(key))
    return result


def pull(target: Any, key: Any, default: Any = None) -> tuple[Any, dict[Any, Any]]:
    """Get a value and a copy of ``target`` with that value removed."""
    return get(target, key, default), forget(target, key)


def first(target: Any, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
    """First value, or first value passing ``callback(value, key)``."""
    items = from_(target)
    if callback is None:
        return next(iter(items.values())) if items else value(default)
    test = adapt(callback)
    for key, item in items.items():
        if loose_truthy(test(item, key)):
            return item
    return value(default)


def last(target: Any, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
    """Last value, or last value passing ``callback(value, key)``."""
    items = from_(target)
    if callback is None:
        return next(reversed(items.values())) if items else value(default)
    test = adapt(callback)
    for key in reversed(items):
        if loose_truthy(test(items[key], key)):
            return items[key]
    return value(default)


def only(target: Any, keys: Any) -> dict[Any, Any]:
    """Keep the given keys, in the order of ``target``."""
    wanted = set(keys) if isinstance(keys, (list, tuple, set, frozenset)) else {keys}
    return {key: item for key, item in from_(target).items() if key in wanted}


def except_(target: Any, keys: Any) -> dict[Any, Any]:
    return forget(target, keys)


def select(target: Any, keys: Any) -> dict[Any, Any]:
    """Project every row onto the given keys, skipping keys a row lacks."""
    keys = keys if isinstance(keys, (list, tuple)) else [keys]
    result: dict[Any, Any] = {}
    for index, row in from_(target).items():
        projected: dict[Any, Any] = {}
        for key in keys:
            if accessible(row) and exists(row, key):
                projected[key] = _backing(row)[key]
            elif not accessible(row) and hasattr(row, str(key)):
                projected[key] = getattr(row, str(key))
        result[index] = projected
    return result


def map_(target: Any, callback: Callable[..., Any]) -> dict[Any, Any]:
    """Apply ``callback(value, key)`` to every value, keeping keys."""
    fn = adapt(callback)
    return {key: fn(item, key) for key, item in from_(target).items()}


def _pairs(produced: Any) -> Iterable[tuple[Any, Any]]:
    backing = _collection_items(produced)
    if backing is not None:
        return backing.items()
    if isinstance(produced, Mapping):
        return produced.items()
    if isinstance(produced, (tuple, list)) and len(produced) == 2:
        return [(produced[0], produced[1])]
    raise InvalidArgumentError('The callback must return a mapping or a (key, value) pair.', 'callback')


def map_with_keys(target: Any, callback: Callable[..., Any]) -> dict[Any, Any]:
    """Build a new mapping from the pairs ``callback(value, key)`` returns.

    Later pairs overwrite earlier ones with the same key.
    """
    fn = adapt(callback)
    result: dict[Any, Any] = {}
    for key, item in from_(target).items():
        for new_key, new_value in _pairs(fn(item, key)):
            result[new_key] = new_value
    return result


def where(target: Any, callback: Callable[..., Any]) -> dict[Any, Any]:
    """Keep the entries for which ``callback(value, key)`` is loosely truthy."""
    test = adapt(callback)
    return {key: item for key, item in from_(target).items() if loose_truthy(test(item, key))}


def where_not_null(target: Any) -> dict[Any, Any]:
    return {key: item for key, item in from_(target).items() if item is not None}


def _array_values(item: Any) -> list[Any] | None:
    backing = _collection_items(item)
    if backing is not None:
        return list(backing.values())
    if isinstance(item, Mapping):
        return list(item.values())
    if isinstance(item, (list, tuple)):
        return list(item)
    return None


def flatten(target: Any, depth: float = math.inf) -> list[Any]:
    """Flatten nested arrays into a list of leaf values, up to ``depth`` levels."""
    result: list[Any] = []
    for item in from_(target).values():
        nested = _array_values(item)
        if nested is None:
            result.append(item)
        elif depth <= 1:
            result.extend(nested)
        else:
            result.extend(flatten(nested, depth - 1))
    return result


def collapse(target: Any) -> list[Any]:
    """Concatenate the values of every array element; scalars are dropped."""
    result: list[Any] = []
    for item in from_(target).values():
        nested = _array_values(item)
        if nested is not None:
            result.extend(nested)
    return result


def dot(target: Any, prepend: str = '') -> dict[str, Any]:
    """Flatten nested arrays into a single level with dotted keys.

    Empty arrays are kept as leaf values.
    """
    result: dict[str, Any] = {}
    for key, item in from_(target).items():
        if accessible(item) and len(_backing(item)):
            result.update(dot(item, f'{prepend}{key}.'))
        else:
            result[f'{prepend}{key}'] = item
    return result


def undot(target: Any) -> dict[Any, Any]:
    """Expand dotted keys into nested dicts."""
    result: dict[Any, Any] = {}
    for key, item in from_(target).items():
        _assign(result, segments_of(key), item)
    return result


def wrap(target: Any) -> Any:
    """Wrap a value in a list unless it already is an array; None becomes []."""
    if target is None:
        return []
    if isinstance(target, (list, dict)):
        return target
    if isinstance(target, tuple):
        return list(target)
    return [target]


def prepend(target: Any, new_value: Any, key: Any = MISSING) -> dict[Any, Any]:
    """Put a value first.

    Without a key, integer keys are renumbered from zero; with one, the key is
    placed first and replaces any existing entry.
    """
    items = from_(target)
    if key is not MISSING:
        return {key: new_value, **{k: v for k, v in items.items() if k != key}}

    result: dict[Any, Any] = {0: new_value}
    counter = itertools.count(1)
    for k, v in items.items():
        if isinstance(k, int) and not isinstance(k, bool):
            result[next(counter)] = v
        else:
            result[k] = v
    return result


def pluck(target: Any, value_path: Any, key_path: Any = None) -> dict[Any, Any]:
    """Extract a path (or callback result) from every item.

    Without ``key_path`` the result is keyed 0..n-1; with one, each result is
    keyed by the canonical form of that item's key value and later items win.
    """
    get_value = value_path if use_as_callable(value_path) else (lambda item: data_get(item, value_path))
    result: dict[Any, Any] = {}
    for index, item in enumerate(from_(target).values()):
        item_value = get_value(item)
        if key_path is None:
            result[index] = item_value
            continue
        item_key = key_path(item) if use_as_callable(key_path) else data_get(item, key_path)
        result[canonical_key(item_key)] = item_value
    return result


def cross_join(*arrays: Any) -> list[list[Any]]:
    """Every combination picking one value from each array."""
    pools = [list(from_(array).values()) for array in arrays]
    return [list(combination) for combination in itertools.product(*pools)]


def partition(target: Any, callback: Callable[..., Any]) -> tuple[dict[Any, Any], dict[Any, Any]]:
    """Split into (passed, failed) mappings, keeping keys."""
    test = adapt(callback)
    passed: dict[Any, Any] = {}
    failed: dict[Any, Any] = {}
    for key, item in from_(target).items():
        (passed if loose_truthy(test(item, key)) else failed)[key] = item
    return passed, failed


def random(
    target: Any,
    number: int | None = None,
    preserve_keys: bool = False,
    rng: _random.Random | None = None,
) -> Any:
    """Pick one value, or ``number`` values keeping their original order.

    Raises:
        InvalidArgumentError: If more items are requested than available.
    """
    items = from_(target)
    requested = 1 if number is None else number
    if requested > len(items) or requested < 0:
        raise InvalidArgumentError(
            f'You requested {requested} items, but there are only {len(items)} items available.', 'number'
        )

    rng = rng or _random.Random()  # noqa: S311
    keys = list(items)
    if number is None:
        return items[keys[rng.randrange(len(keys))]]

    chosen = [keys[position] for position in sorted(rng.sample(range(len(keys)), requested))]
    if preserve_keys:
        return {key: items[key] for key in chosen}
    return [items[key] for key in chosen]


def shuffle(target: Any, rng: _random.Random | None = None) -> list[Any]:
    """Values in random order."""
    shuffled = list(from_(target).values())
    (rng or _random.Random()).shuffle(shuffled)  # noqa: S311
    return shuffled


def is_list(target: Any) -> bool:
    """Whether the keys are exactly 0..n-1 in order (an empty mapping is a list)."""
    if isinstance(target, (list, tuple)):
        return True
    keys = _backing(target)
    return all(
        isinstance(key, int) and not isinstance(key, bool) and key == position for position, key in enumerate(keys)
    )
