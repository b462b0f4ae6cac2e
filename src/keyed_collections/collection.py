"""Collection: an ordered keyed container with a fluent operation set.

A Collection owns an insertion-ordered ``dict`` of keys to values. Methods
fall into two groups:

- Combinators (``map``, ``filter``, ``group_by``, ``sort_by``, ...) return a
  new Collection and never touch the receiver.
- Mutators (``push``, ``put``, ``forget``, ...) change the receiver in place
  and return None, or the removed data for ``pop``, ``shift``, ``splice``,
  ``pull`` and ``get_or_put``.

Iteration yields values; ``items()`` yields ``(key, value)`` pairs.

Example:
    ```python
    from keyed_collections import Collection

    orders = Collection([
        {'id': 1, 'status': 'paid', 'total': 30},
        {'id': 2, 'status': 'open', 'total': 12},
        {'id': 3, 'status': 'paid', 'total': 8},
    ])
    orders.where('status', 'paid').sum('total')  # 38
    orders.group_by('status').map(len).all()  # {'paid': 2, 'open': 1}
    orders.sort_by('total').pluck('id').all()  # {0: 3, 1: 2, 2: 1}
    ```
"""

from __future__ import annotations

import collections
import functools
import itertools
import math
import numbers
import random as _random
from collections.abc import Callable, ItemsView, Iterable, Iterator, Mapping
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from keyed_collections import arr
from keyed_collections._config import get_config
from keyed_collections.errors import InvalidArgumentError, TypeMismatchError
from keyed_collections.keys import (
    canonical_key,
    has_own_str,
    is_object,
    loose_equals,
    loose_truthy,
    strict_equals,
    string_form,
    three_way,
    to_number,
)
from keyed_collections.operators import (
    adapt,
    arity_of,
    identity,
    negate,
    operator_for_where,
    use_as_callable,
    value_retriever,
)
from keyed_collections.paths import MISSING, data_get, data_has, value
from keyed_collections.serialize import JsonSerializable, decode_json, encode_json, project, to_builtins
from keyed_collections.sorting import SortFlag, comparator_for, many_comparator, sort_entries

__all__ = ['Collection']


def _arrayable(items: Any) -> dict[Any, Any]:
    """Materialize constructor input into a fresh dict."""
    if items is None:
        return {}
    if isinstance(items, Collection):
        return dict(items._items)
    if isinstance(items, Mapping):
        return dict(items)
    if isinstance(items, JsonSerializable):
        return _arrayable(items.json_serialize())
    if isinstance(items, (str, bytes, Enum)):
        return {0: items}
    if isinstance(items, Iterable):
        return dict(enumerate(items))
    return {0: items}


def _is_index(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def _renumbered(entries: Iterable[tuple[Any, Any]]) -> dict[Any, Any]:
    """Renumber integer (and None) keys from zero, keeping string keys."""
    result: dict[Any, Any] = {}
    counter = itertools.count()
    for key, item in entries:
        if key is None or _is_index(key):
            result[next(counter)] = item
        else:
            result[key] = item
    return result


def _key_list(keys: tuple[Any, ...]) -> list[Any] | None:
    if len(keys) == 1:
        (only_key,) = keys
        if only_key is None:
            return None
        if isinstance(only_key, Collection):
            return list(only_key)
        if isinstance(only_key, (list, tuple, set, frozenset)):
            return list(only_key)
    return list(keys)


def _spread(callback: Callable[..., Any]) -> Callable[[Any, Any], Any]:
    """Call ``callback(*chunk, key)``, trimmed to the arguments it accepts."""
    arity = arity_of(callback)

    def spread(chunk: Any, key: Any) -> Any:
        args = [*_arrayable(chunk).values(), key]
        return callback(*(args if arity is None else args[:arity]))

    return spread


def _round_half_up(number: float, precision: int) -> float:
    return float(Decimal(str(number)).quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP))


def _as_number(resolved: Any) -> Any:
    if isinstance(resolved, numbers.Number) and not isinstance(resolved, bool):
        return resolved
    return to_number(resolved)


class _Seen:
    """Remembers values already met, under loose or strict equality."""

    def __init__(self, strict: bool) -> None:
        self._strict = strict
        self._hashed: set[Any] = set()
        self._scanned: list[Any] = []

    def add(self, candidate: Any) -> bool:
        """Record a value; False when an equal value was recorded before."""
        if self._strict:
            marker = (type(candidate), candidate)
            try:
                if marker in self._hashed:
                    return False
                self._hashed.add(marker)
                return True
            except TypeError:
                pass
            if any(strict_equals(candidate, seen) for seen in self._scanned):
                return False
        elif any(loose_equals(candidate, seen) for seen in self._scanned):
            return False
        self._scanned.append(candidate)
        return True


class Collection:
    """An ordered mapping of keys to values with a fluent operation set.

    Args:
        items: A mapping, any finite iterable, another Collection, an object
            with ``json_serialize()``, a scalar (wrapped as ``{0: value}``)
            or None (empty).
    """

    __slots__ = ('_items',)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, items: Any = None) -> None:
        self._items: dict[Any, Any] = _arrayable(items)

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def make(cls, items: Any = None) -> Collection:
        return cls(items)

    @classmethod
    def empty(cls) -> Collection:
        return cls()

    @classmethod
    def wrap(cls, items: Any) -> Collection:
        """Wrap a value in a Collection; arrays keep their shape."""
        if isinstance(items, Collection):
            return cls(items)
        return cls(arr.wrap(items))

    @staticmethod
    def unwrap(items: Any) -> Any:
        """Return the backing dict of a Collection, or the value unchanged."""
        if isinstance(items, Collection):
            return items.all()
        return items

    @classmethod
    def times(cls, number: int, callback: Callable[[int], Any] | None = None) -> Collection:
        """Build ``number`` items from 1-based counters, optionally mapped.

        Example:
            ```python
            Collection.times(3, lambda n: n * 10).all()  # {0: 10, 1: 20, 2: 30}
            ```
        """
        if number < 1:
            return cls()
        numbers_ = cls.range(1, number)
        if callback is None:
            return numbers_
        return numbers_.map(adapt(callback, 1))

    @classmethod
    def range(cls, start: int, stop: int, step: int = 1) -> Collection:
        """Integers from ``start`` to ``stop`` inclusive, counting down when ``stop < start``."""
        if step == 0:
            raise InvalidArgumentError('Step value must not be zero.', 'step')
        step = abs(step)
        if start <= stop:
            return cls(range(start, stop + 1, step))
        return cls(range(start, stop - 1, -step))

    @classmethod
    def from_json(cls, text: str | bytes) -> Collection:
        return cls(decode_json(text))

    # =========================================================================
    # Python protocol
    # =========================================================================

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, key: Any) -> Any:
        return self._items[key]

    def __setitem__(self, key: Any, item: Any) -> None:
        if key is None:
            key = self._next_index()
        self._items[key] = item

    def __delitem__(self, key: Any) -> None:
        del self._items[key]

    def __contains__(self, item: Any) -> bool:
        return any(loose_equals(existing, item) for existing in self._items.values())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Collection):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._items == dict(other)
        if isinstance(other, (list, tuple)):
            return self._items == dict(enumerate(other))
        return NotImplemented

    def __repr__(self) -> str:
        return f'Collection({self._items!r})'

    def __str__(self) -> str:
        return self.to_json()

    def _next_index(self) -> int:
        indices = [key for key in self._items if _is_index(key) and key >= 0]
        return max(indices) + 1 if indices else 0

    def items(self) -> ItemsView[Any, Any]:
        return self._items.items()

    def keys(self) -> Collection:
        return Collection(list(self._items))

    def values(self) -> Collection:
        return Collection(list(self._items.values()))

    def all(self) -> dict[Any, Any]:
        """A shallow copy of the backing dict."""
        return dict(self._items)

    def count(self) -> int:
        return len(self._items)

    def collect(self) -> Collection:
        return Collection(self._items)

    # =========================================================================
    # Access
    # =========================================================================

    def get(self, key: Any, default: Any = None) -> Any:
        key = '' if key is None else key
        if key in self._items:
            return self._items[key]
        return value(default)

    def get_or_put(self, key: Any, default: Any) -> Any:
        """Return the value at ``key``, storing the (lazily resolved) default first if missing."""
        lookup = '' if key is None else key
        if lookup in self._items:
            return self._items[lookup]
        resolved = value(default)
        self._items[lookup] = resolved
        return resolved

    def has(self, *keys: Any) -> bool:
        """Whether every given key exists; a None key means the empty-string key."""
        wanted = _key_list(keys)
        if wanted is None:
            wanted = [None]
        return all(('' if key is None else key) in self._items for key in wanted)

    def has_any(self, *keys: Any) -> bool:
        if not self._items:
            return False
        wanted = _key_list(keys)
        if wanted is None:
            wanted = [None]
        return any(('' if key is None else key) in self._items for key in wanted)

    def first(self, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
        return arr.first(self._items, callback, default)

    def last(self, callback: Callable[..., Any] | None = None, default: Any = None) -> Any:
        return arr.last(self._items, callback, default)

    def first_where(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> Any:
        return self.first(operator_for_where(key, operator, expected))

    def value(self, path: Any, default: Any = None) -> Any:
        """The value at ``path`` of the first item that has that path."""
        item = self.first(lambda target: data_has(target, path))
        return data_get(item, path, default)

    def search(self, needle: Any, strict: bool = False) -> Any:
        """Key of the first matching value (or passing callback), False when none.

        Example:
            ```python
            Collection(['a', '1', 1]).search(1)  # 1
            Collection(['a', '1', 1]).search(1, strict=True)  # 2
            Collection(['a']).search('z')  # False
            ```
        """
        if use_as_callable(needle):
            test = adapt(needle)
            return next((key for key, item in self._items.items() if loose_truthy(test(item, key))), False)
        equals = strict_equals if strict else loose_equals
        return next((key for key, item in self._items.items() if equals(item, needle)), False)

    def before(self, needle: Any, strict: bool = False) -> Any:
        """The value right before the first match, None at the edge or on no match."""
        key = self.search(needle, strict)
        if key is False:
            return None
        keys = list(self._items)
        position = keys.index(key)
        return None if position == 0 else self._items[keys[position - 1]]

    def after(self, needle: Any, strict: bool = False) -> Any:
        """The value right after the first match, None at the edge or on no match."""
        key = self.search(needle, strict)
        if key is False:
            return None
        keys = list(self._items)
        position = keys.index(key)
        return None if position == len(keys) - 1 else self._items[keys[position + 1]]

    def only(self, *keys: Any) -> Collection:
        wanted = _key_list(keys)
        if wanted is None:
            return Collection(self._items)
        return Collection(arr.only(self._items, wanted))

    def except_(self, *keys: Any) -> Collection:
        unwanted = _key_list(keys)
        if unwanted is None:
            return Collection(self._items)
        return Collection(arr.except_(self._items, unwanted))

    def select(self, *keys: Any) -> Collection:
        """Project every item onto the given keys."""
        wanted = _key_list(keys)
        if wanted is None:
            return Collection(self._items)
        return Collection(arr.select(self._items, wanted))

    def nth(self, step: int, offset: int = 0) -> Collection:
        """Every ``step``-th value starting at position ``offset``, reindexed."""
        if step < 1:
            raise InvalidArgumentError('Step value must be at least 1.', 'step')
        return Collection(list(self.slice(offset))[::step])

    def random(
        self,
        number: int | Callable[[Collection], int] | None = None,
        preserve_keys: bool = False,
        rng: _random.Random | None = None,
    ) -> Any:
        """One random value, or a Collection of ``number`` random values."""
        if number is None:
            return arr.random(self._items, rng=rng)
        if use_as_callable(number):
            number = number(self)
        return Collection(arr.random(self._items, number, preserve_keys, rng=rng))

    def count_by(self, selector: Any = None) -> Collection:
        """Count items per canonical selector result, in first-seen order."""
        retrieve = value_retriever(selector)
        counts: dict[Any, int] = {}
        for key, item in self._items.items():
            group = canonical_key(retrieve(item, key))
            counts[group] = counts.get(group, 0) + 1
        return Collection(counts)

    def is_empty(self) -> bool:
        return not self._items

    def is_not_empty(self) -> bool:
        return bool(self._items)

    def contains_one_item(self, callback: Callable[..., Any] | None = None) -> bool:
        if callback is not None:
            return self.filter(callback).count() == 1
        return len(self._items) == 1

    # =========================================================================
    # Filtering
    # =========================================================================

    def filter(self, callback: Callable[..., Any] | None = None) -> Collection:
        """Keep items passing ``callback(value, key)``; without one, drop falsy values."""
        if callback is None:
            return Collection({key: item for key, item in self._items.items() if loose_truthy(item)})
        test = adapt(callback)
        return Collection({key: item for key, item in self._items.items() if loose_truthy(test(item, key))})

    def reject(self, callback: Any = True) -> Collection:
        """Drop items passing the callback, or loosely equal to a plain value."""
        if use_as_callable(callback):
            return self.filter(negate(adapt(callback)))
        return Collection({key: item for key, item in self._items.items() if not loose_equals(item, callback)})

    def where(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> Collection:
        """Filter by comparing the value at ``key``.

        ``where(key)`` keeps truthy values, ``where(key, value)`` compares with
        loose equality and ``where(key, operator, value)`` applies one of the
        ``Operator`` comparisons.

        Raises:
            InvalidArgumentError: If the operator is not recognised.
        """
        return self.filter(operator_for_where(key, operator, expected))

    def where_strict(self, key: Any, expected: Any) -> Collection:
        return self.where(key, '===', expected)

    def where_null(self, key: Any = None) -> Collection:
        return self.where_strict(key, None)

    def where_not_null(self, key: Any = None) -> Collection:
        return self.where(key, '!==', None)

    def where_in(self, key: Any, candidates: Any, strict: bool = False) -> Collection:
        pool = list(_arrayable(candidates).values())
        equals = strict_equals if strict else loose_equals
        return self.filter(lambda item: any(equals(data_get(item, key), candidate) for candidate in pool))

    def where_in_strict(self, key: Any, candidates: Any) -> Collection:
        return self.where_in(key, candidates, strict=True)

    def where_not_in(self, key: Any, candidates: Any, strict: bool = False) -> Collection:
        pool = list(_arrayable(candidates).values())
        equals = strict_equals if strict else loose_equals
        return self.reject(lambda item: any(equals(data_get(item, key), candidate) for candidate in pool))

    def where_not_in_strict(self, key: Any, candidates: Any) -> Collection:
        return self.where_not_in(key, candidates, strict=True)

    def where_between(self, key: Any, bounds: Any) -> Collection:
        bounds = list(_arrayable(bounds).values())
        return self.where(key, '>=', bounds[0]).where(key, '<=', bounds[-1])

    def where_not_between(self, key: Any, bounds: Any) -> Collection:
        bounds = list(_arrayable(bounds).values())
        return self.filter(
            lambda item: three_way(data_get(item, key), bounds[0]) < 0 or three_way(data_get(item, key), bounds[-1]) > 0
        )

    def where_instance_of(self, types: type | Iterable[type]) -> Collection:
        allowed = (types,) if isinstance(types, type) else tuple(types)
        return self.filter(lambda item: isinstance(item, allowed))

    def contains(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> bool:
        """Whether any value matches a callback, a plain value (loosely) or a where-clause."""
        if operator is MISSING:
            if use_as_callable(key):
                test = adapt(key)
                return any(loose_truthy(test(item, k)) for k, item in self._items.items())
            return key in self
        return self.contains(operator_for_where(key, operator, expected))

    def some(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> bool:
        return self.contains(key, operator, expected)

    def contains_strict(self, key: Any, expected: Any = MISSING) -> bool:
        if expected is not MISSING:
            return any(strict_equals(data_get(item, key), expected) for item in self._items.values())
        if use_as_callable(key):
            return self.first(key) is not None
        return any(strict_equals(item, key) for item in self._items.values())

    def doesnt_contain(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> bool:
        return not self.contains(key, operator, expected)

    def doesnt_contain_strict(self, key: Any, expected: Any = MISSING) -> bool:
        return not self.contains_strict(key, expected)

    def every(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> bool:
        if operator is MISSING:
            test = value_retriever(key)
            return all(loose_truthy(test(item, k)) for k, item in self._items.items())
        return self.every(operator_for_where(key, operator, expected))

    def unique(self, key: Any = None, strict: bool = False) -> Collection:
        """Keep the first item per distinct value (or selector result), keys preserved."""
        retrieve = value_retriever(key)
        seen = _Seen(strict)
        return Collection({k: item for k, item in self._items.items() if seen.add(retrieve(item, k))})

    def unique_strict(self, key: Any = None) -> Collection:
        return self.unique(key, strict=True)

    def _until_callback(self, target: Any) -> Callable[..., Any]:
        if use_as_callable(target):
            return adapt(target)
        return lambda item, _key=None: strict_equals(item, target)

    def skip_while(self, target: Any) -> Collection:
        test = self._until_callback(target)
        entries = itertools.dropwhile(lambda entry: loose_truthy(test(entry[1], entry[0])), self._items.items())
        return Collection(dict(entries))

    def skip_until(self, target: Any) -> Collection:
        return self.skip_while(negate(self._until_callback(target)))

    def take_while(self, target: Any) -> Collection:
        test = self._until_callback(target)
        entries = itertools.takewhile(lambda entry: loose_truthy(test(entry[1], entry[0])), self._items.items())
        return Collection(dict(entries))

    def take_until(self, target: Any) -> Collection:
        return self.take_while(negate(self._until_callback(target)))

    # =========================================================================
    # Transformation
    # =========================================================================

    def map(self, callback: Callable[..., Any]) -> Collection:
        """Apply ``callback(value, key)`` to every value, keeping keys."""
        return Collection(arr.map_(self._items, callback))

    def map_with_keys(self, callback: Callable[..., Any]) -> Collection:
        """Rebuild keys and values from the mapping or pair each callback returns."""
        return Collection(arr.map_with_keys(self._items, callback))

    def map_to_dictionary(self, callback: Callable[..., Any]) -> Collection:
        """Group values under keys: each callback returns one ``{key: value}`` or ``(key, value)``.

        Example:
            ```python
            Collection(['ant', 'bee', 'asp']).map_to_dictionary(lambda w: (w[0], w)).all()
            # {'a': ['ant', 'asp'], 'b': ['bee']}
            ```
        """
        fn = adapt(callback)
        dictionary: dict[Any, list[Any]] = {}
        for key, item in self._items.items():
            pairs = arr.map_with_keys({0: fn(item, key)}, lambda produced: produced)
            new_key, new_value = next(iter(pairs.items()))
            dictionary.setdefault(new_key, []).append(new_value)
        return Collection(dictionary)

    def map_to_groups(self, callback: Callable[..., Any]) -> Collection:
        return self.map_to_dictionary(callback).map(Collection)

    def map_spread(self, callback: Callable[..., Any]) -> Collection:
        """Map over nested arrays, passing their values (then the key) as arguments."""
        return self.map(_spread(callback))

    def map_into(self, cls: type) -> Collection:
        """Instantiate ``cls`` from each value (enums look the value up)."""
        if issubclass(cls, Enum):
            return self.map(lambda item: cls(item))
        return self.map(adapt(cls))

    def flat_map(self, callback: Callable[..., Any]) -> Collection:
        return self.map(callback).collapse()

    def collapse(self) -> Collection:
        """Concatenate nested arrays one level deep; keys are discarded."""
        return Collection(arr.collapse(self._items))

    def collapse_with_keys(self) -> Collection:
        """Merge nested arrays one level deep, later keys overwriting earlier ones."""
        result: dict[Any, Any] = {}
        for item in self._items.values():
            if isinstance(item, (Collection, Mapping, list, tuple)):
                result.update(_arrayable(item))
        return Collection(result)

    def flatten(self, depth: float = math.inf) -> Collection:
        return Collection(arr.flatten(self._items, depth))

    def flip(self) -> Collection:
        return Collection({canonical_key(item): key for key, item in self._items.items()})

    def pluck(self, value_path: Any, key_path: Any = None) -> Collection:
        """Extract a path from every item, optionally keyed by another path.

        Example:
            ```python
            users = Collection([{'id': 7, 'name': 'ana'}, {'id': 9, 'name': 'bo'}])
            users.pluck('name').all()  # {0: 'ana', 1: 'bo'}
            users.pluck('name', 'id').all()  # {7: 'ana', 9: 'bo'}
            ```
        """
        return Collection(arr.pluck(self._items, value_path, key_path))

    def dot(self) -> Collection:
        return Collection(arr.dot(self._items))

    def undot(self) -> Collection:
        return Collection(arr.undot(self._items))

    def pad(self, size: int, filler: Any) -> Collection:
        """Pad to ``abs(size)`` items, appending (positive) or prepending (negative)."""
        missing = abs(size) - len(self._items)
        if missing <= 0:
            return Collection(self._items)
        padding = [(None, filler)] * missing
        if size > 0:
            return Collection(_renumbered([*self._items.items(), *padding]))
        return Collection(_renumbered([*padding, *self._items.items()]))

    def zip(self, *others: Any) -> Collection:
        """Pair values by position; shorter inputs are padded with None."""
        columns = [list(self._items.values()), *(list(_arrayable(other).values()) for other in others)]
        return Collection([Collection(list(row)) for row in itertools.zip_longest(*columns)])

    def combine(self, values: Any) -> Collection:
        """Use this collection's values as keys for the given values.

        Raises:
            InvalidArgumentError: If both sides differ in length.
        """
        combined_values = list(_arrayable(values).values())
        if len(combined_values) != len(self._items):
            raise InvalidArgumentError('Both collections must have the same number of elements.', 'values')
        pairs = zip(self._items.values(), combined_values, strict=True)
        return Collection({canonical_key(key): item for key, item in pairs})

    def cross_join(self, *lists: Any) -> Collection:
        return Collection(arr.cross_join(self._items, *(_arrayable(other) for other in lists)))

    def merge(self, items: Any) -> Collection:
        """Append integer-keyed values; string keys from ``items`` overwrite."""
        return Collection(_renumbered([*self._items.items(), *_arrayable(items).items()]))

    def merge_recursive(self, items: Any) -> Collection:
        """Like ``merge``, but colliding string keys gather both values."""
        return Collection(_merge_recursive(self._items, _arrayable(items)))

    def replace(self, items: Any) -> Collection:
        """Overwrite by key, integer keys included."""
        return Collection({**self._items, **_arrayable(items)})

    def replace_recursive(self, items: Any) -> Collection:
        return Collection(_replace_recursive(self._items, _arrayable(items)))

    def concat(self, source: Any) -> Collection:
        result = Collection(self._items)
        result.push(*_arrayable(source).values())
        return result

    def multiply(self, multiplier: int) -> Collection:
        """Repeat the values ``multiplier`` times, reindexed."""
        return Collection(list(self._items.values()) * max(multiplier, 0))

    def union(self, items: Any) -> Collection:
        """Add keys missing from the receiver; existing keys win."""
        result = dict(self._items)
        for key, item in _arrayable(items).items():
            result.setdefault(key, item)
        return Collection(result)

    def reverse(self) -> Collection:
        return Collection(dict(reversed(self._items.items())))

    def shuffle(self, rng: _random.Random | None = None) -> Collection:
        return Collection(arr.shuffle(self._items, rng))

    def implode(self, glue_or_path: Any = None, glue: str | None = None) -> str:
        """Join values into a string.

        With a callback, its results are joined by ``glue``; when items are
        arrays or plain objects, ``glue_or_path`` is the path to pluck;
        otherwise it is the glue itself.
        """
        if use_as_callable(glue_or_path):
            return (glue or '').join(string_form(item) for item in self.map(glue_or_path))

        first = self.first()
        if isinstance(first, (list, tuple, Mapping, Collection)) or (is_object(first) and not has_own_str(first)):
            return (glue or '').join(string_form(item) for item in self.pluck(glue_or_path))

        return (glue_or_path or '').join(string_form(item) for item in self._items.values())

    def join(self, glue: str, final_glue: str = '') -> str:
        """Join values, using ``final_glue`` before the last one.

        Example:
            ```python
            Collection(['a', 'b', 'c']).join(', ', ' and ')  # 'a, b and c'
            ```
        """
        if final_glue == '':
            return self.implode(glue)
        if not self._items:
            return ''
        if len(self._items) == 1:
            return string_form(self.last())
        head = Collection(self._items)
        final_item = head.pop()
        return head.implode(glue) + final_glue + string_form(final_item)

    # =========================================================================
    # Grouping
    # =========================================================================

    def group_by(self, group_by: Any, preserve_keys: bool = False) -> Collection:
        """Group items by selector results, coerced through ``canonical_key``.

        A selector returning a list (or Collection) puts the item in every
        group named. A list of selectors groups recursively, one level per
        selector.

        Example:
            ```python
            Collection([1, 2, 3, 4]).group_by(lambda n: n % 2 == 0).to_array()
            # {0: [1, 3], 1: [2, 4]}
            ```
        """
        next_groups: list[Any] = []
        if not use_as_callable(group_by) and isinstance(group_by, (list, tuple)):
            group_by, *next_groups = group_by

        retrieve = value_retriever(group_by)
        buckets: dict[Any, list[tuple[Any, Any]]] = {}
        for key, item in self._items.items():
            group_keys = retrieve(item, key)
            if isinstance(group_keys, Collection):
                group_keys = list(group_keys)
            elif not isinstance(group_keys, (list, tuple)):
                group_keys = [group_keys]
            for group_key in group_keys:
                buckets.setdefault(canonical_key(group_key), []).append((key, item))

        if preserve_keys:
            result = Collection({group: Collection(dict(entries)) for group, entries in buckets.items()})
        else:
            result = Collection(
                {group: Collection([item for _, item in entries]) for group, entries in buckets.items()}
            )

        if next_groups:
            return result.map(lambda group: group.group_by(next_groups, preserve_keys))
        return result

    def key_by(self, key_by: Any) -> Collection:
        """Key items by selector result; later items win on collisions."""
        retrieve = value_retriever(key_by)
        return Collection({canonical_key(retrieve(item, key)): item for key, item in self._items.items()})

    def partition(self, key: Any, operator: Any = MISSING, expected: Any = MISSING) -> Collection:
        """Split into ``[passed, failed]`` Collections, keys preserved.

        Example:
            ```python
            passed, failed = Collection([1, 2, 3]).partition(lambda n: n > 1)
            ```
        """
        if operator is MISSING:
            callback = value_retriever(key)
        else:
            callback = operator_for_where(key, operator, expected)
        passed, failed = arr.partition(self._items, lambda item, k: loose_truthy(callback(item, k)))
        return Collection([Collection(passed), Collection(failed)])

    # =========================================================================
    # Sorting
    # =========================================================================

    def sort(self, callback: Callable[[Any, Any], int] | int | None = None) -> Collection:
        """Sort values ascending, keys preserved; accepts a comparator or sort flags."""
        if use_as_callable(callback):
            compare = callback
        else:
            compare = comparator_for(SortFlag.REGULAR if callback is None else callback)
        return Collection(sort_entries(self._items.items(), compare))

    def sort_desc(self, flags: int = SortFlag.REGULAR) -> Collection:
        return Collection(sort_entries(self._items.items(), comparator_for(flags), descending=True))

    def sort_by(self, callback: Any, flags: int = SortFlag.REGULAR, descending: bool = False) -> Collection:
        """Sort items by selector results (or several criteria), keys preserved.

        A list of criteria is handed to ``sort_by_many``.
        """
        if not use_as_callable(callback) and isinstance(callback, (list, tuple)):
            return self.sort_by_many(callback, flags)

        retrieve = value_retriever(callback)
        resolved = {key: retrieve(item, key) for key, item in self._items.items()}
        ordered = sort_entries(resolved.items(), comparator_for(flags), descending=descending)
        return Collection({key: self._items[key] for key in ordered})

    def sort_by_desc(self, callback: Any, flags: int = SortFlag.REGULAR) -> Collection:
        if not use_as_callable(callback) and isinstance(callback, (list, tuple)):
            callback = [(arr.wrap(criterion)[0], 'desc') for criterion in callback]
        return self.sort_by(callback, flags, descending=True)

    def sort_by_many(self, comparisons: Iterable[Any], flags: int = SortFlag.REGULAR) -> Collection:
        """Sort by several criteria; later criteria only break ties.

        Example:
            ```python
            people.sort_by_many([('age', 'desc'), ('name', 'asc')])
            people.sort_by_many([lambda a, b: len(a['name']) - len(b['name'])])
            ```
        """
        return Collection(sort_entries(self._items.items(), many_comparator(comparisons, flags)))

    def sort_keys(self, flags: int = SortFlag.REGULAR, descending: bool = False) -> Collection:
        return Collection(sort_entries(self._items.items(), comparator_for(flags), by_key=True, descending=descending))

    def sort_keys_desc(self, flags: int = SortFlag.REGULAR) -> Collection:
        return self.sort_keys(flags, descending=True)

    def sort_keys_using(self, callback: Callable[[Any, Any], int]) -> Collection:
        return Collection(sort_entries(self._items.items(), callback, by_key=True))

    # =========================================================================
    # Set algebra
    # =========================================================================

    def diff(self, items: Any) -> Collection:
        """Values not present in ``items``, compared by string form."""
        other = {string_form(item) for item in _arrayable(items).values()}
        return Collection({key: item for key, item in self._items.items() if string_form(item) not in other})

    def diff_using(self, items: Any, callback: Callable[[Any, Any], int]) -> Collection:
        other = list(_arrayable(items).values())
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if all(callback(item, candidate) != 0 for candidate in other)
            }
        )

    def diff_assoc(self, items: Any) -> Collection:
        """Entries whose key is absent from ``items`` or whose value differs."""
        other = _arrayable(items)
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if key not in other or string_form(other[key]) != string_form(item)
            }
        )

    def diff_assoc_using(self, items: Any, callback: Callable[[Any, Any], int]) -> Collection:
        """Like ``diff_assoc`` with keys compared by ``callback``."""
        other = _arrayable(items)

        def matched(key: Any, item: Any) -> bool:
            return any(
                callback(key, other_key) == 0 and string_form(item) == string_form(other_item)
                for other_key, other_item in other.items()
            )

        return Collection({key: item for key, item in self._items.items() if not matched(key, item)})

    def diff_keys(self, items: Any) -> Collection:
        other = _arrayable(items)
        return Collection({key: item for key, item in self._items.items() if key not in other})

    def diff_keys_using(self, items: Any, callback: Callable[[Any, Any], int]) -> Collection:
        other = list(_arrayable(items))
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if all(callback(key, candidate) != 0 for candidate in other)
            }
        )

    def intersect(self, items: Any) -> Collection:
        other = {string_form(item) for item in _arrayable(items).values()}
        return Collection({key: item for key, item in self._items.items() if string_form(item) in other})

    def intersect_using(self, items: Any, callback: Callable[[Any, Any], int]) -> Collection:
        other = list(_arrayable(items).values())
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if any(callback(item, candidate) == 0 for candidate in other)
            }
        )

    def intersect_assoc(self, items: Any) -> Collection:
        other = _arrayable(items)
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if key in other and string_form(other[key]) == string_form(item)
            }
        )

    def intersect_assoc_using(self, items: Any, callback: Callable[[Any, Any], int]) -> Collection:
        other = _arrayable(items)
        return Collection(
            {
                key: item
                for key, item in self._items.items()
                if any(
                    callback(key, other_key) == 0 and string_form(item) == string_form(other_item)
                    for other_key, other_item in other.items()
                )
            }
        )

    def intersect_by_keys(self, items: Any) -> Collection:
        other = _arrayable(items)
        return Collection({key: item for key, item in self._items.items() if key in other})

    # =========================================================================
    # Partitions and windows
    # =========================================================================

    def chunk(self, size: int, preserve_keys: bool = True) -> Collection:
        """Split into Collections of ``size`` items (the last may be shorter).

        Raises:
            InvalidArgumentError: If ``size`` is less than 1.
        """
        if size < 1:
            raise InvalidArgumentError('Size value must be at least 1.', 'size')
        entries = list(self._items.items())
        chunks = []
        for start in range(0, len(entries), size):
            window = entries[start : start + size]
            chunks.append(Collection(dict(window) if preserve_keys else [item for _, item in window]))
        return Collection(chunks)

    def chunk_while(self, callback: Callable[..., Any]) -> Collection:
        """Start a new chunk whenever ``callback(value, key, chunk)`` is falsy."""
        test = adapt(callback, 3)
        chunks: list[Collection] = []
        current = Collection()
        for key, item in self._items.items():
            if current._items and not loose_truthy(test(item, key, current)):
                chunks.append(current)
                current = Collection()
            current._items[key] = item
        if current._items:
            chunks.append(current)
        return Collection(chunks)

    def split(self, number_of_groups: int) -> Collection:
        """Divide into ``number_of_groups`` groups as evenly as possible.

        The first ``n % number_of_groups`` groups get one extra item; empty
        groups are omitted.

        Raises:
            InvalidArgumentError: If ``number_of_groups`` is less than 1.
        """
        if number_of_groups < 1:
            raise InvalidArgumentError('Number of groups must be at least 1.', 'number_of_groups')
        if not self._items:
            return Collection()

        group_size, remain = divmod(len(self._items), number_of_groups)
        entries = list(self._items.items())
        groups: list[Collection] = []
        start = 0
        for index in range(number_of_groups):
            size = group_size + 1 if index < remain else group_size
            if size:
                groups.append(Collection(_renumbered(entries[start : start + size])))
                start += size
        return Collection(groups)

    def split_in(self, number_of_groups: int) -> Collection:
        """Divide into groups of ``ceil(n / number_of_groups)`` items."""
        if number_of_groups < 1:
            raise InvalidArgumentError('Number of groups must be at least 1.', 'number_of_groups')
        if not self._items:
            return Collection()
        return self.chunk(math.ceil(len(self._items) / number_of_groups))

    def sliding(self, size: int = 2, step: int = 1) -> Collection:
        """Overlapping windows of ``size`` items, ``step`` apart, keys preserved.

        Example:
            ```python
            Collection([1, 2, 3, 4]).sliding(2).to_array()  # [[1, 2], {1: 2, 2: 3}, {2: 3, 3: 4}]
            ```
        """
        if size < 1:
            raise InvalidArgumentError('Size value must be at least 1.', 'size')
        if step < 1:
            raise InvalidArgumentError('Step value must be at least 1.', 'step')
        windows = (len(self._items) - size) // step + 1
        if windows <= 0:
            return Collection()
        return Collection([self.slice(index * step, size) for index in range(windows)])

    def slice(self, offset: int, length: int | None = None) -> Collection:
        """Items from position ``offset`` (negative counts from the end), keys preserved."""
        total = len(self._items)
        start = offset if offset >= 0 else max(total + offset, 0)
        if length is None:
            stop = total
        elif length >= 0:
            stop = start + length
        else:
            stop = total + length
        return Collection(dict(itertools.islice(self._items.items(), start, max(stop, start))))

    def skip(self, count: int) -> Collection:
        return self.slice(count)

    def take(self, limit: int) -> Collection:
        """The first ``limit`` items, or the last ``-limit`` items when negative."""
        if limit < 0:
            return self.slice(limit, abs(limit))
        return self.slice(0, limit)

    def for_page(self, page: int, per_page: int) -> Collection:
        return self.slice(max(0, (page - 1) * per_page), per_page)

    # =========================================================================
    # Aggregates
    # =========================================================================

    def sum(self, callback: Any = None) -> Any:
        """Sum of values (or selector results); None counts as zero."""
        retrieve = identity if callback is None else value_retriever(callback)
        total: Any = 0
        for key, item in self._items.items():
            resolved = retrieve(item, key)
            if resolved is not None:
                total += _as_number(resolved)
        return total

    def avg(self, callback: Any = None) -> Any:
        """Mean of the non-None values (or selector results); None when there are none."""
        retrieve = value_retriever(callback)
        total: Any = 0
        count = 0
        for key, item in self._items.items():
            resolved = retrieve(item, key)
            if resolved is not None:
                total += _as_number(resolved)
                count += 1
        return total / count if count else None

    def average(self, callback: Any = None) -> Any:
        return self.avg(callback)

    def _extreme(self, callback: Any, sign: int) -> Any:
        retrieve = value_retriever(callback)
        result = None
        for key, item in self._items.items():
            resolved = retrieve(item, key)
            if resolved is None:
                continue
            if result is None or three_way(resolved, result) == sign:
                result = resolved
        return result

    def min(self, callback: Any = None) -> Any:
        return self._extreme(callback, -1)

    def max(self, callback: Any = None) -> Any:
        return self._extreme(callback, 1)

    def median(self, key: Any = None) -> Any:
        """Middle of the sorted non-None values; mean of the two middles for even counts.

        Example:
            ```python
            Collection([1, 3, 5]).median()  # 3
            Collection([1, 2, 3, 4]).median()  # 2.5
            ```
        """
        source = self.pluck(key) if key is not None else self
        ordered = list(source.reject_none().sort())
        count = len(ordered)
        if count == 0:
            return None
        middle = count // 2
        if count % 2:
            return ordered[middle]
        return Collection([ordered[middle - 1], ordered[middle]]).avg()

    def mode(self, key: Any = None) -> list[Any] | None:
        """Every value tied for the highest frequency, ascending; None when empty.

        Example:
            ```python
            Collection([1, 1, 2, 2, 3]).mode()  # [1, 2]
            ```
        """
        if not self._items:
            return None
        source = self.pluck(key) if key is not None else self
        counts = collections.Counter(canonical_key(item) for item in source)
        highest = max(counts.values())
        tied = [item for item, frequency in counts.items() if frequency == highest]
        return sorted(tied, key=functools.cmp_to_key(three_way))

    def reject_none(self) -> Collection:
        """Drop None values, keys preserved."""
        return Collection(arr.where_not_null(self._items))

    def percentage(self, callback: Callable[..., Any], precision: int = 2) -> float | None:
        """Share of items passing ``callback``, as a percentage rounded half up."""
        if not self._items:
            return None
        share = self.filter(callback).count() / len(self._items) * 100
        return _round_half_up(share, precision)

    def reduce(self, callback: Callable[..., Any], initial: Any = None) -> Any:
        """Fold values with ``callback(carry, value, key)``."""
        fn = adapt(callback, 3)
        result = initial
        for key, item in self._items.items():
            result = fn(result, item, key)
        return result

    def reduce_with_keys(self, callback: Callable[..., Any], initial: Any = None) -> Any:
        return self.reduce(callback, initial)

    def reduce_spread(self, callback: Callable[..., Any], *initial: Any) -> list[Any]:
        """Fold into several accumulators at once.

        The reducer receives ``(*accumulators, value, key)`` and must return
        the new accumulators as a tuple or list.

        Raises:
            TypeMismatchError: If the reducer returns anything else.
        """
        arity = arity_of(callback)
        result: Any = list(initial)
        for key, item in self._items.items():
            args = [*result, item, key]
            result = callback(*(args if arity is None else args[:arity]))
            if not isinstance(result, (tuple, list)):
                found = type(result).__name__
                raise TypeMismatchError(
                    f"Collection.reduce_spread expects reducer to return a tuple or list, but got a '{found}' instead.",
                    expected=('tuple', 'list'),
                    found=found,
                    position=key,
                )
        return list(result)

    # =========================================================================
    # In-place mutation
    # =========================================================================

    def push(self, *values: Any) -> None:
        """Append values under the next integer keys."""
        index = self._next_index()
        for offset, item in enumerate(values):
            self._items[index + offset] = item

    def unshift(self, *values: Any) -> None:
        """Prepend values; integer keys are renumbered."""
        self._items = _renumbered([*((None, item) for item in values), *self._items.items()])

    def prepend(self, item: Any, key: Any = MISSING) -> None:
        """Put a value first, under ``key`` if given (integer keys renumbered otherwise)."""
        self._items = arr.prepend(self._items, item, key)

    def put(self, key: Any, item: Any) -> None:
        self[key] = item

    def forget(self, keys: Any) -> None:
        """Remove one key or a list of keys; missing keys are ignored."""
        for key in _arrayable(keys).values() if isinstance(keys, (list, tuple, Collection)) else [keys]:
            self._items.pop(key, None)

    def pull(self, key: Any, default: Any = None) -> Any:
        """Remove a (dotted) key and return its value."""
        pulled, self._items = arr.pull(self._items, key, default)
        return pulled

    def pop(self, count: int = 1) -> Any:
        """Remove and return items from the end.

        ``count == 1`` returns the value itself (None when empty); other counts
        return a Collection of the removed values, last first.

        Raises:
            InvalidArgumentError: If ``count`` is negative.
        """
        if count < 0:
            raise InvalidArgumentError('Number of popped items may not be less than zero.', 'count')
        if count == 1:
            return self._items.popitem()[1] if self._items else None
        return Collection([self._items.popitem()[1] for _ in range(min(count, len(self._items)))])

    def shift(self, count: int = 1) -> Any:
        """Remove and return items from the start; integer keys are renumbered.

        ``count == 1`` returns the value itself (None when empty); other counts
        return a Collection of the removed values.

        Raises:
            InvalidArgumentError: If ``count`` is negative.
        """
        if count < 0:
            raise InvalidArgumentError('Number of shifted items may not be less than zero.', 'count')
        if count == 1 and not self._items:
            return None
        taken = min(count, len(self._items))
        entries = list(self._items.items())
        removed = [item for _, item in entries[:taken]]
        if taken:
            self._items = _renumbered(entries[taken:])
        if count == 1:
            return removed[0]
        return Collection(removed)

    def splice(self, offset: int, length: int | None = None, replacement: Any = None) -> Collection:
        """Remove a slice (optionally inserting replacement values) and return it.

        Integer keys of both the receiver and the removed slice are renumbered.
        """
        entries = list(self._items.items())
        total = len(entries)
        start = min(offset, total) if offset >= 0 else max(total + offset, 0)
        if length is None:
            stop = total
        elif length >= 0:
            stop = min(start + length, total)
        else:
            stop = max(total + length, start)

        inserted = [(None, item) for item in _arrayable(replacement).values()]
        removed = entries[start:stop]
        self._items = _renumbered([*entries[:start], *inserted, *entries[stop:]])
        return Collection(_renumbered(removed))

    def transform(self, callback: Callable[..., Any]) -> None:
        """Replace every value with ``callback(value, key)`` in place."""
        self._items = arr.map_(self._items, callback)

    # =========================================================================
    # Duplicates
    # =========================================================================

    def duplicates(self, callback: Any = None, strict: bool = False) -> Collection:
        """Derived values of every item that repeats an earlier one, keyed by position.

        Example:
            ```python
            Collection([1, 2, 2, 3, 3, 3]).duplicates().all()  # {2: 2, 4: 3, 5: 3}
            ```
        """
        derived = self.map(value_retriever(callback))
        firsts = collections.deque(derived.unique(None, strict))
        equals = strict_equals if strict else loose_equals

        found: dict[Any, Any] = {}
        for key, item in derived.items():
            if firsts and equals(item, firsts[0]):
                firsts.popleft()
            else:
                found[key] = item
        return Collection(found)

    def duplicates_strict(self, callback: Any = None) -> Collection:
        return self.duplicates(callback, strict=True)

    # =========================================================================
    # Serialization
    # =========================================================================

    def json_serialize(self) -> list[Any] | dict[Any, Any]:
        """JSON-ready projection; nested serializable values are serialized too."""
        return project(
            {
                key: item.json_serialize() if isinstance(item, JsonSerializable) else item
                for key, item in self._items.items()
            }
        )

    def to_array(self) -> list[Any] | dict[Any, Any]:
        """Deep conversion to builtins following the array-or-object rule."""
        return to_builtins(self)

    def to_json(self, indent: int | None = None) -> str:
        return encode_json(self, indent)

    def to_pretty_json(self) -> str:
        return encode_json(self, get_config().json_indent)

    # =========================================================================
    # Flow helpers
    # =========================================================================

    def each(self, callback: Callable[..., Any]) -> Collection:
        """Call ``callback(value, key)`` per item; returning False stops the loop."""
        fn = adapt(callback)
        for key, item in list(self._items.items()):
            if fn(item, key) is False:
                break
        return self

    def each_spread(self, callback: Callable[..., Any]) -> Collection:
        return self.each(_spread(callback))

    def pipe(self, callback: Callable[[Collection], Any]) -> Any:
        return callback(self)

    def pipe_into(self, cls: type) -> Any:
        return cls(self)

    def pipe_through(self, callbacks: Iterable[Callable[[Any], Any]]) -> Any:
        result: Any = self
        for callback in callbacks:
            result = callback(result)
        return result

    def tap(self, callback: Callable[[Collection], Any]) -> Collection:
        callback(self)
        return self

    def when(
        self,
        condition: Any = None,
        callback: Callable[..., Any] | None = None,
        default: Callable[..., Any] | None = None,
    ) -> Any:
        """Apply ``callback(self, condition)`` when the condition is truthy, else ``default``.

        A callable condition is evaluated with the collection first. Returns
        the callback result, or the collection when it returned None or nothing
        ran.
        """
        resolved = condition(self) if use_as_callable(condition) else condition
        chosen = callback if resolved else default
        if chosen is None:
            return self
        result = adapt(chosen)(self, resolved)
        return self if result is None else result

    def unless(
        self,
        condition: Any = None,
        callback: Callable[..., Any] | None = None,
        default: Callable[..., Any] | None = None,
    ) -> Any:
        resolved = condition(self) if use_as_callable(condition) else condition
        return self.when(not resolved, callback, default)

    def when_empty(self, callback: Callable[..., Any], default: Callable[..., Any] | None = None) -> Any:
        return self.when(self.is_empty(), callback, default)

    def when_not_empty(self, callback: Callable[..., Any], default: Callable[..., Any] | None = None) -> Any:
        return self.when(self.is_not_empty(), callback, default)

    def unless_empty(self, callback: Callable[..., Any], default: Callable[..., Any] | None = None) -> Any:
        return self.when_not_empty(callback, default)

    def unless_not_empty(self, callback: Callable[..., Any], default: Callable[..., Any] | None = None) -> Any:
        return self.when_empty(callback, default)

    def ensure(self, types: type | str | Iterable[type | str]) -> Collection:
        """Check every value against the allowed types.

        Types are classes (checked with ``isinstance``) or type names such as
        ``'int'`` or ``'null'``.

        Raises:
            TypeMismatchError: Naming the first offending value's key.
        """
        allowed = [types] if isinstance(types, (type, str)) else list(types)
        names = tuple(kind if isinstance(kind, str) else kind.__name__ for kind in allowed)

        for key, item in self._items.items():
            item_type = _debug_type(item)
            if any(
                (isinstance(kind, str) and kind == item_type) or (isinstance(kind, type) and isinstance(item, kind))
                for kind in allowed
            ):
                continue
            raise TypeMismatchError(
                f"Collection should only include [{', '.join(names)}] items, "
                f"but '{item_type}' found at position {key}.",
                expected=names,
                found=item_type,
                position=key,
            )
        return self


def _debug_type(item: Any) -> str:
    return 'null' if item is None else type(item).__name__


def _merge_recursive(base: Mapping[Any, Any], other: Mapping[Any, Any]) -> dict[Any, Any]:
    result = _renumbered(base.items())
    counter = itertools.count(max((key for key in result if _is_index(key)), default=-1) + 1)
    for key, item in other.items():
        if _is_index(key):
            result[next(counter)] = item
        elif key in result:
            left = result[key]
            left_items = _arrayable(left) if arr.accessible(left) else {0: left}
            right_items = _arrayable(item) if arr.accessible(item) else {0: item}
            result[key] = project(_merge_recursive(left_items, right_items))
        else:
            result[key] = item
    return result


def _replace_recursive(base: Mapping[Any, Any], other: Mapping[Any, Any]) -> dict[Any, Any]:
    result = dict(base)
    for key, item in other.items():
        current = result.get(key)
        if key in result and arr.accessible(current) and arr.accessible(item):
            merged = _replace_recursive(_arrayable(current), _arrayable(item))
            result[key] = list(merged.values()) if isinstance(current, list) and arr.is_list(merged) else merged
        else:
            result[key] = item
    return result
