"""@typeclass decorator for type-directed value coercions.

Coercions such as canonical key conversion or the string form of a value
depend only on the runtime type of their first argument. A typeclass keeps
one implementation per type and picks the most specific one through the
value's MRO, so ``bool`` can be handled apart from ``int`` and every ``Enum``
subclass shares the ``Enum`` instance.
"""

from __future__ import annotations

import dis
from collections.abc import Callable
from typing import Any, Generic, TypeVar

import wrapt

__all__ = ['NoInstanceError', 'TypeClass', 'typeclass']

F = TypeVar('F', bound=Callable[..., Any])

# Opcodes a body of only `...` or a docstring compiles to, besides loading None.
_STUB_OPS = frozenset({'RESUME', 'NOP', 'CACHE', 'RETURN_VALUE', 'NOT_TAKEN'})


class NoInstanceError(TypeError):
    """Raised when no typeclass instance is registered for a type."""

    def __init__(self, typeclass_name: str, value_type: type) -> None:
        self.typeclass_name = typeclass_name
        self.value_type = value_type
        super().__init__(f"No instance of '{typeclass_name}' for type '{value_type.__name__}'")


class TypeClass(wrapt.ObjectProxy, Generic[F]):
    """A polymorphic function dispatching on the type of its first argument.

    Attributes:
        _self_name: The name of the typeclass function.
        _self_default: The fallback implementation, or None for a stub.
        _self_instances: Mapping of types to their implementations.

    Example:
        ```python
        @typeclass
        def describe(value) -> str:
            return 'thing'

        @describe.instance(bool)
        def describe_bool(value: bool) -> str:
            return 'flag'

        describe(True)  # 'flag'
        describe(1.5)  # 'thing'
        ```
    """

    def __init__(self, default_fn: F) -> None:
        super().__init__(default_fn)
        self._self_name = default_fn.__name__
        self._self_default: F | None = default_fn if _has_implementation(default_fn) else None
        self._self_instances: dict[type, Callable[..., Any]] = {}

    def instance(self, *types: type) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register one implementation for one or more types.

        Example:
            ```python
            @describe.instance(int, float)
            def describe_number(value) -> str:
                return 'number'
            ```
        """

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            for type_ in types:
                self._self_instances[type_] = fn
            return fn

        return decorator

    def _find_instance(self, value: Any) -> Callable[..., Any] | None:
        """Find the most specific implementation by walking the MRO."""
        for base in type(value).__mro__:
            fn = self._self_instances.get(base)
            if fn is not None:
                return fn
        return None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if not args:
            raise TypeError(f'{self._self_name}() requires at least one argument')

        instance_fn = self._find_instance(args[0])
        if instance_fn is not None:
            return instance_fn(*args, **kwargs)

        if self._self_default is not None:
            return self._self_default(*args, **kwargs)

        raise NoInstanceError(self._self_name, type(args[0]))

    def __repr__(self) -> str:
        return f'<typeclass {self._self_name} with {len(self._self_instances)} instances>'


def _has_implementation(fn: Callable[..., Any]) -> bool:
    """Check whether a function body does more than ``...``."""
    code = getattr(fn, '__code__', None)
    if code is None:
        return True
    for instruction in dis.get_instructions(code):
        if instruction.opname in _STUB_OPS:
            continue
        if instruction.opname in ('LOAD_CONST', 'RETURN_CONST') and instruction.argval is None:
            continue
        return True
    return False


def typeclass(fn: F) -> TypeClass[F]:
    """Turn a function into a typeclass.

    A function with a real body is the fallback for unregistered types; a
    stub body (``...``) makes unregistered types raise NoInstanceError.
    """
    return TypeClass(fn)
