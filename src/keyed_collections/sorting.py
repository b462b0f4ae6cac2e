"""Sort flags and the comparators behind them.

Flags select how two values are compared. ``FLAG_CASE`` can be combined with
``STRING`` or ``NATURAL`` to ignore case; with other flags it has no effect,
except in ``many_comparator``:

| Flag | Comparison |
|---|---|
| ``REGULAR`` | ``three_way`` native order |
| ``NUMERIC`` | leading-number coercion |
| ``STRING`` | string forms, code point order |
| ``NATURAL`` | string forms, digit runs compared as integers |
| ``LOCALE_STRING`` | ``locale.strcoll`` of string forms |

Example:
    ```python
    compare = comparator_for(SortFlag.NATURAL)
    sorted(['img12', 'img10', 'img2'], key=functools.cmp_to_key(compare))
    # ['img2', 'img10', 'img12']
    ```
"""

from __future__ import annotations

import functools
import locale
import math
import re
from collections.abc import Callable, Iterable
from enum import IntFlag
from typing import Any

from keyed_collections.keys import cmp, string_form, three_way, to_number
from keyed_collections.operators import arity_of, use_as_callable
from keyed_collections.paths import data_get

__all__ = [
    'Comparator',
    'SortFlag',
    'comparator_for',
    'many_comparator',
    'natural_key',
    'sort_entries',
]

Comparator = Callable[[Any, Any], int]

_DIGIT_RUNS = re.compile(r'(\d+)')


class SortFlag(IntFlag):
    """How sort operations compare values."""

    REGULAR = 0
    NUMERIC = 1
    STRING = 2
    LOCALE_STRING = 5
    NATURAL = 6
    FLAG_CASE = 8


def natural_key(text: str, case_insensitive: bool = False) -> list[Any]:
    """Split text into alternating text and integer chunks.

    ``re.split`` with a capturing group always starts with a text chunk, so
    two keys line up text-with-text and number-with-number.
    """
    text = text.lstrip()
    if case_insensitive:
        text = text.lower()
    return [int(chunk) if position % 2 else chunk for position, chunk in enumerate(_DIGIT_RUNS.split(text))]


def _string_comparator(case_insensitive: bool) -> Comparator:
    def compare(a: Any, b: Any) -> int:
        left, right = string_form(a), string_form(b)
        if case_insensitive:
            left, right = left.lower(), right.lower()
        return cmp(left, right)

    return compare


def _natural_comparator(case_insensitive: bool) -> Comparator:
    def compare(a: Any, b: Any) -> int:
        return cmp(natural_key(string_form(a), case_insensitive), natural_key(string_form(b), case_insensitive))

    return compare


def _numeric_compare(a: Any, b: Any) -> int:
    return cmp(to_number(a), to_number(b))


def _integer_compare(a: Any, b: Any) -> int:
    return cmp(_truncated(a), _truncated(b))


def _truncated(value: Any) -> int:
    number = to_number(value)
    return int(number) if math.isfinite(number) else 0


def _locale_compare(a: Any, b: Any) -> int:
    result = locale.strcoll(string_form(a), string_form(b))
    return cmp(result, 0)


def comparator_for(flags: int = SortFlag.REGULAR) -> Comparator:
    """Return the comparator for a combination of sort flags."""
    case_insensitive = bool(flags & SortFlag.FLAG_CASE)
    base = int(flags) & ~int(SortFlag.FLAG_CASE)

    if base == SortFlag.NUMERIC:
        return _numeric_compare
    if base == SortFlag.NATURAL:
        return _natural_comparator(case_insensitive)
    if base == SortFlag.LOCALE_STRING:
        return _locale_compare
    if base == SortFlag.STRING:
        return _string_comparator(case_insensitive)
    return three_way


def many_comparator(comparisons: Iterable[Any], flags: int = SortFlag.REGULAR) -> Comparator:
    """Chain several sort criteria; the first non-zero result wins.

    Each criterion is a path, a one-argument selector, a two-argument
    comparator, or a ``(criterion, direction)`` pair where direction
    ``True``/``'asc'`` is ascending and anything else descending.
    """
    compare_values = _criterion_comparator(flags)
    criteria: list[tuple[Comparator, bool]] = []

    for comparison in comparisons:
        if isinstance(comparison, (list, tuple)):
            prop = comparison[0]
            direction = comparison[1] if len(comparison) > 1 else True
        else:
            prop, direction = comparison, True
        ascending = direction is True or direction == 'asc'

        if use_as_callable(prop) and arity_of(prop) in (None, 2):
            criteria.append((prop, True))
        elif use_as_callable(prop):
            criteria.append((_selector_comparator(prop, compare_values), ascending))
        else:
            criteria.append((_path_comparator(prop, compare_values), ascending))

    def compare(a: Any, b: Any) -> int:
        for criterion, ascending in criteria:
            result = criterion(a, b) if ascending else criterion(b, a)
            if result:
                return result
        return 0

    return compare


def _criterion_comparator(flags: int) -> Comparator:
    """Value comparison for one ``many_comparator`` criterion.

    Unlike ``comparator_for``, ``FLAG_CASE`` applies whatever the base flag
    (natural order when ``NATURAL`` is set, plain string order otherwise) and
    ``NUMERIC`` truncates both sides to integers.
    """
    if flags & SortFlag.FLAG_CASE:
        if (flags & SortFlag.NATURAL) == SortFlag.NATURAL:
            return _natural_comparator(True)
        return _string_comparator(True)
    if flags == SortFlag.NUMERIC:
        return _integer_compare
    return comparator_for(flags)


def _selector_comparator(selector: Callable[[Any], Any], compare_values: Comparator) -> Comparator:
    def compare(a: Any, b: Any) -> int:
        return compare_values(selector(a), selector(b))

    return compare


def _path_comparator(path: Any, compare_values: Comparator) -> Comparator:
    def compare(a: Any, b: Any) -> int:
        return compare_values(data_get(a, path), data_get(b, path))

    return compare


def sort_entries(
    entries: Iterable[tuple[Any, Any]],
    compare: Comparator,
    *,
    by_key: bool = False,
    descending: bool = False,
) -> dict[Any, Any]:
    """Stable-sort ``(key, value)`` pairs by value (or key) into a new dict."""
    position = 0 if by_key else 1
    ordered = sorted(
        entries,
        key=functools.cmp_to_key(lambda left, right: compare(left[position], right[position])),
        reverse=descending,
    )
    return dict(ordered)
