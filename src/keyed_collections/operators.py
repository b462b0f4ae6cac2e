"""Selectors and comparison predicates used by ``where``-style operations.

Collection methods accept either a callable or a path wherever they need to
derive something from an item. This module turns both into plain callables:

- ``adapt``: calls a callback with ``(value, key)`` or just ``(value)``
  depending on how many positional parameters it takes.
- ``value_retriever``: a callable stays as-is, a path becomes a ``data_get``
  lookup.
- ``operator_for_where``: builds the predicate behind ``where``,
  ``first_where``, ``contains``, ``every`` and ``partition``.

Example:
    ```python
    is_adult = operator_for_where('age', '>=', 18)
    is_adult({'age': 21})  # True
    is_adult({'age': '9'})  # False
    ```
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from keyed_collections.errors import InvalidArgumentError
from keyed_collections.keys import (
    enum_value,
    has_own_str,
    is_object,
    loose_equals,
    strict_equals,
    three_way,
)
from keyed_collections.paths import MISSING, data_get

__all__ = [
    'Operator',
    'adapt',
    'arity_of',
    'identity',
    'negate',
    'operator_for_where',
    'use_as_callable',
    'value_retriever',
]


class Operator(StrEnum):
    """Comparison operators understood by ``where``."""

    EQ = '='
    LOOSE_EQ = '=='
    NE = '!='
    NE_ALT = '<>'
    LT = '<'
    GT = '>'
    LE = '<='
    GE = '>='
    STRICT_EQ = '==='
    STRICT_NE = '!=='
    SPACESHIP = '<=>'

    @classmethod
    def parse(cls, operator: str | Operator) -> Operator:
        """Resolve an operator string, rejecting unknown ones."""
        try:
            return cls(operator)
        except ValueError:
            raise InvalidArgumentError(f'Unknown comparison operator [{operator}].', 'operator') from None

    @property
    def is_inequality(self) -> bool:
        return self in (Operator.NE, Operator.NE_ALT, Operator.STRICT_NE)

    def compare(self, retrieved: Any, value: Any) -> bool:
        """Apply the operator to two already unwrapped values."""
        match self:
            case Operator.EQ | Operator.LOOSE_EQ:
                return loose_equals(retrieved, value)
            case Operator.NE | Operator.NE_ALT:
                return not loose_equals(retrieved, value)
            case Operator.LT:
                return three_way(retrieved, value) < 0
            case Operator.GT:
                return three_way(retrieved, value) > 0
            case Operator.LE:
                return three_way(retrieved, value) <= 0
            case Operator.GE:
                return three_way(retrieved, value) >= 0
            case Operator.STRICT_EQ:
                return strict_equals(retrieved, value)
            case Operator.STRICT_NE:
                return not strict_equals(retrieved, value)
            case Operator.SPACESHIP:
                return three_way(retrieved, value) != 0


def use_as_callable(value: Any) -> bool:
    """Whether an argument is a callback rather than a path or a plain value."""
    return not isinstance(value, str) and callable(value)


def arity_of(callback: Callable[..., Any]) -> int | None:
    """Count positional parameters; None means the callback takes ``*args``."""
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return 1

    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


def adapt(callback: Callable[..., Any], max_args: int = 2) -> Callable[..., Any]:
    """Wrap a callback so it only receives the arguments it can accept.

    Example:
        ```python
        adapt(lambda value: value * 2)(3, 'key')  # 6
        adapt(lambda value, key: key)(3, 'key')  # 'key'
        ```
    """
    arity = arity_of(callback)
    if arity is None or arity >= max_args:
        return callback
    accepted = max(arity, 0)

    def adapted(*args: Any) -> Any:
        return callback(*args[:accepted])

    return adapted


def identity(value: Any, *_: Any) -> Any:
    return value


def negate(callback: Callable[..., Any]) -> Callable[..., bool]:
    def negated(*args: Any) -> bool:
        return not callback(*args)

    return negated


def value_retriever(selector: Any) -> Callable[[Any, Any], Any]:
    """Turn a selector into a ``(value, key)`` callable.

    None selects the item itself; strings, ints and segment lists are paths.
    """
    if use_as_callable(selector):
        return adapt(selector)
    if selector is None:
        return identity

    def retrieve(item: Any, _key: Any = None) -> Any:
        return data_get(item, selector)

    return retrieve


def operator_for_where(key: Any, operator: Any = MISSING, value: Any = MISSING) -> Callable[..., bool]:
    """Build the predicate for ``where(key, operator, value)``.

    With only a key the item's value at ``key`` must be truthy; with a key and
    one more argument that argument is compared for loose equality.
    """
    if use_as_callable(key):
        return adapt(key)

    if operator is MISSING:
        operator, value = Operator.EQ, True
    elif value is MISSING:
        operator, value = Operator.EQ, operator

    parsed = Operator.parse(operator)
    expected = enum_value(value)

    def predicate(item: Any, _key: Any = None) -> bool:
        retrieved = enum_value(data_get(item, key))

        strings = sum(1 for candidate in (retrieved, expected) if has_own_str(candidate))
        objects = sum(1 for candidate in (retrieved, expected) if is_object(candidate))
        if strings < 2 and objects == 1:
            return parsed.is_inequality

        return parsed.compare(retrieved, expected)

    return predicate
