"""Collection error types: dual struct+exception for value-based and raise-based code."""

from __future__ import annotations

import msgspec

__all__ = [
    'InvalidArgument',
    'InvalidArgumentError',
    'TypeMismatch',
    'TypeMismatchError',
]


# --- Argument Errors ---


class InvalidArgument(msgspec.Struct, frozen=True, gc=False):
    """An argument is outside its accepted range - struct variant."""

    message: str
    argument: str | None = None

    def to_exception(self) -> InvalidArgumentError:
        """Convert to exception for raise-based code."""
        return InvalidArgumentError(self.message, self.argument)


class InvalidArgumentError(ValueError):
    """An argument is outside its accepted range - exception variant.

    Raised before any in-place mutation takes place, so the receiver is left
    untouched.
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        self.message = message
        self.argument = argument
        super().__init__(message)

    def to_struct(self) -> InvalidArgument:
        """Convert to struct for value-based code."""
        return InvalidArgument(self.message, self.argument)


# --- Type Errors ---


class TypeMismatch(msgspec.Struct, frozen=True, gc=False):
    """A value does not have the expected type or shape - struct variant."""

    message: str
    expected: tuple[str, ...] = ()
    found: str | None = None
    position: str | int | None = None

    def to_exception(self) -> TypeMismatchError:
        """Convert to exception for raise-based code."""
        return TypeMismatchError(self.message, expected=self.expected, found=self.found, position=self.position)


class TypeMismatchError(TypeError):
    """A value does not have the expected type or shape - exception variant."""

    def __init__(
        self,
        message: str,
        *,
        expected: tuple[str, ...] = (),
        found: str | None = None,
        position: str | int | None = None,
    ) -> None:
        self.message = message
        self.expected = expected
        self.found = found
        self.position = position
        super().__init__(message)

    def to_struct(self) -> TypeMismatch:
        """Convert to struct for value-based code."""
        return TypeMismatch(self.message, expected=self.expected, found=self.found, position=self.position)
