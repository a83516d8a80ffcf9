"""Error types raised by matbench.

All errors derive from `MatbenchError` and also from the closest builtin
exception, so callers may catch either.
"""

from __future__ import annotations

import operator


class MatbenchError(Exception):
    """Base class for matbench errors."""


class DimensionMismatchError(MatbenchError, ValueError):
    """Operand shapes are incompatible for the requested multiplication."""

    def __init__(self, message: str, left: tuple[int, int], right: tuple[int, int]):
        super().__init__(f"{message}: {left[0]}x{left[1]} and {right[0]}x{right[1]}")
        self.left = left
        self.right = right


class InvalidParameterError(MatbenchError, ValueError):
    """A size, block size, iteration count or sweep parameter is invalid."""


class OutOfRangeAccessError(MatbenchError, IndexError):
    """A matrix accessor was called with indices outside the matrix shape."""


def require_positive(name: str, value: int) -> int:
    """Return `value` as an int if it is a positive integer, else raise.

    Any integral type is accepted (including NumPy integers); bools and
    floats are not.

    Args:
        name: Parameter name used in the error message.
        value: Value to check.

    Returns:
        The value as a plain int.
    """
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")
    try:
        number = operator.index(value)
    except TypeError:
        raise InvalidParameterError(
            f"{name} must be a positive integer, got {value!r}"
        ) from None
    if number <= 0:
        raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")
    return number
