"""Value coercions shared by every collection operation.

Payloads arriving from JSON mix numbers, numeric strings, booleans and nulls
freely, so collections compare values the way a loosely typed payload
expects rather than with Python's strict ``==``:

- ``canonical_key``: the scalar used when a derived value becomes a mapping key.
- ``string_form``: the string cast used for set-algebra equality.
- ``to_number`` / ``is_numeric``: leading-number parsing of strings.
- ``loose_equals`` / ``strict_equals``: the two equality flavours.
- ``three_way``: a total order over heterogeneous values.

Example:
    ```python
    canonical_key(True)  # 1
    canonical_key(None)  # ''
    loose_equals('1', 1)  # True
    strict_equals('1', 1)  # False
    three_way('10', 9)  # 1
    ```
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

import msgspec

from keyed_collections.typeclass import typeclass

__all__ = [
    'canonical_key',
    'cmp',
    'enum_value',
    'has_own_str',
    'is_numeric',
    'is_object',
    'loose_equals',
    'loose_truthy',
    'strict_equals',
    'string_form',
    'three_way',
    'to_number',
]

_NUMERIC_PREFIX = re.compile(r'\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')
_NUMERIC_FULL = re.compile(r'\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*')

_SCALARS = (type(None), bool, int, float, str, bytes)
_ARRAYS = (list, tuple, Mapping)


def cmp(a: Any, b: Any) -> int:
    """Classic three-way comparison of two mutually comparable values."""
    return (a > b) - (a < b)


def is_object(value: Any) -> bool:
    """Whether a value is an object rather than a scalar or an array-like."""
    return not isinstance(value, _SCALARS + _ARRAYS)


def has_own_str(value: Any) -> bool:
    """Whether a value is textual: a ``str`` or an object defining ``__str__``."""
    if isinstance(value, str):
        return True
    if not is_object(value):
        return False
    return type(value).__str__ is not object.__str__


def enum_value(value: Any, default: Any = None) -> Any:
    """Unwrap an enum member to its backing scalar, or its name when unbacked."""
    if isinstance(value, Enum):
        backing = value.value
        return backing if isinstance(backing, (str, int)) and not isinstance(backing, bool) else value.name
    return default if value is None else value


# =========================================================================
# Canonical keys
# =========================================================================


@typeclass
def canonical_key(value: Any) -> Any:
    """Coerce a derived value into the key it is stored under.

    Booleans become 0/1, enums their backing value (or name), None the empty
    string and stringable objects their string form. Anything else is used
    as-is.
    """
    if has_own_str(value):
        return str(value)
    return value


@canonical_key.instance(bool)
def _canonical_bool(value: bool) -> int:
    return int(value)


@canonical_key.instance(type(None))
def _canonical_none(value: None) -> str:
    return ''


@canonical_key.instance(Enum)
def _canonical_enum(value: Enum) -> Any:
    return enum_value(value)


@canonical_key.instance(str, int, float)
def _canonical_scalar(value: Any) -> Any:
    # IntEnum, StrEnum and mixed-in enums reach this instance through their data type.
    if isinstance(value, Enum):
        return enum_value(value)
    return value


# =========================================================================
# String form
# =========================================================================


@typeclass
def string_form(value: Any) -> str:
    """Cast a value to the string used for loose set-algebra equality."""
    if has_own_str(value):
        return str(value)
    return object.__repr__(value)


@string_form.instance(type(None))
def _string_none(value: None) -> str:
    return ''


@string_form.instance(bool)
def _string_bool(value: bool) -> str:
    return '1' if value else ''


@string_form.instance(int)
def _string_int(value: int) -> str:
    if isinstance(value, Enum):
        return string_form(enum_value(value))
    return str(int(value))


@string_form.instance(float)
def _string_float(value: float) -> str:
    if math.isnan(value):
        return 'NAN'
    if math.isinf(value):
        return 'INF' if value > 0 else '-INF'
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


@string_form.instance(str)
def _string_str(value: str) -> str:
    if isinstance(value, Enum):
        return string_form(enum_value(value))
    return str.__str__(value)


@string_form.instance(bytes)
def _string_bytes(value: bytes) -> str:
    return value.decode('utf-8', errors='replace')


@string_form.instance(Enum)
def _string_enum(value: Enum) -> str:
    return string_form(enum_value(value))


@string_form.instance(list, tuple, dict)
def _string_array(value: Any) -> str:
    return msgspec.json.encode(value, enc_hook=string_form).decode()


# =========================================================================
# Numbers
# =========================================================================


def is_numeric(value: Any) -> bool:
    """Whether a value is a number or a string holding exactly one number."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and _NUMERIC_FULL.fullmatch(value) is not None


def to_number(value: Any) -> int | float:
    """Coerce a value to a number, parsing the leading number of a string.

    Example:
        ```python
        to_number('12abc')  # 12
        to_number('1.5e3')  # 1500.0
        to_number('abc')  # 0
        to_number(None)  # 0
        ```
    """
    value = enum_value(value)
    match value:
        case None:
            return 0
        case bool():
            return int(value)
        case int() | float():
            return value
        case str():
            found = _NUMERIC_PREFIX.match(value)
            if found is None:
                return 0
            text = found.group().strip()
            if any(ch in text for ch in '.eE'):
                return float(text)
            return int(text)
        case list() | tuple() | Mapping():
            return 1 if value else 0
        case _:
            return 1


# =========================================================================
# Equality
# =========================================================================


def loose_truthy(value: Any) -> bool:
    """Truthiness as a loosely typed payload sees it ("0" is false)."""
    if isinstance(value, str):
        return value not in ('', '0')
    return bool(value)


def _as_array(value: Any) -> Mapping[Any, Any] | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)):
        return dict(enumerate(value))
    return None


def loose_equals(a: Any, b: Any) -> bool:
    """Loose equality: numeric strings equal numbers, null equals empty values."""
    if a is None and b is None:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return loose_truthy(a) == loose_truthy(b)
    if a is None or b is None:
        other = b if a is None else a
        if isinstance(other, str):
            return other == ''
        return not loose_truthy(other)

    left, right = _as_array(a), _as_array(b)
    if left is not None or right is not None:
        if left is None or right is None or len(left) != len(right):
            return False
        return all(key in right and loose_equals(item, right[key]) for key, item in left.items())

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, str) and isinstance(b, (int, float)):
        a, b = b, a
    if isinstance(a, (int, float)) and isinstance(b, str):
        if is_numeric(b):
            return a == to_number(b)
        return string_form(a) == b
    if isinstance(a, str) and isinstance(b, str):
        if is_numeric(a) and is_numeric(b):
            return to_number(a) == to_number(b)
        return a == b
    if (isinstance(a, str) and has_own_str(b)) or (isinstance(b, str) and has_own_str(a)):
        return str(a) == str(b)
    return bool(a == b)


def strict_equals(a: Any, b: Any) -> bool:
    """Strict equality: same type and same value, recursively for arrays."""
    if type(a) is not type(b):
        return False
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(strict_equals(x, y) for x, y in zip(a, b, strict=True))
    if isinstance(a, Mapping):
        return list(a.keys()) == list(b.keys()) and all(strict_equals(a[key], b[key]) for key in a)
    if isinstance(a, float) and math.isnan(a):
        return False
    return a is b or bool(a == b)


# =========================================================================
# Ordering
# =========================================================================


def _compare_arrays(a: Mapping[Any, Any], b: Mapping[Any, Any]) -> int:
    if len(a) != len(b):
        return cmp(len(a), len(b))
    for key, item in a.items():
        if key not in b:
            return 1
        result = three_way(item, b[key])
        if result:
            return result
    return 0


def three_way(a: Any, b: Any) -> int:
    """Compare two arbitrary values, returning -1, 0 or 1.

    Defines the native order used by ``sort()`` and ``min``/``max``: numbers
    and numeric strings compare numerically, other strings lexically, arrays
    by size and then element-wise, and arrays sort after scalars.
    """
    a, b = enum_value(a), enum_value(b)
    if a is None and b is None:
        return 0
    if (a is None and isinstance(b, str)) or (b is None and isinstance(a, str)):
        return cmp(a or '', b or '')
    if a is None or b is None or isinstance(a, bool) or isinstance(b, bool):
        return cmp(loose_truthy(a), loose_truthy(b))

    left, right = _as_array(a), _as_array(b)
    if left is not None and right is not None:
        return _compare_arrays(left, right)
    if left is not None:
        return 1
    if right is not None:
        return -1

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return cmp(a, b)
    if isinstance(a, (int, float)) and isinstance(b, str):
        return cmp(a, to_number(b)) if is_numeric(b) else cmp(string_form(a), b)
    if isinstance(a, str) and isinstance(b, (int, float)):
        return cmp(to_number(a), b) if is_numeric(a) else cmp(a, string_form(b))
    if isinstance(a, str) and isinstance(b, str):
        if is_numeric(a) and is_numeric(b):
            return cmp(to_number(a), to_number(b))
        return cmp(a, b)

    try:
        return cmp(a, b)
    except TypeError:
        return cmp(string_form(a), string_form(b))
