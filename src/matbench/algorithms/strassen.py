"""Strassen's recursive matrix multiplication, O(n^2.807)."""

from __future__ import annotations

from matbench.algorithms.naive import check_compatible, multiply_naive
from matbench.errors import DimensionMismatchError, require_positive
from matbench.matrix import Matrix

DEFAULT_THRESHOLD = 64


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def multiply_strassen(a: Matrix, b: Matrix, threshold: int = DEFAULT_THRESHOLD) -> Matrix:
    """Multiply two square matrices of equal size with Strassen's algorithm.

    Sizes at or below ``threshold``, and sizes that are not a power of two,
    are delegated to ``multiply_naive``.

    Raises:
        DimensionMismatchError: If the operands are not square or not
            compatible.
    """
    check_compatible(a, b)
    threshold = require_positive("threshold", threshold)
    if a.rows != a.cols or b.rows != b.cols:
        raise DimensionMismatchError("Strassen requires square matrices", a.shape, b.shape)

    n = a.rows
    if n <= threshold or not is_power_of_two(n):
        return multiply_naive(a, b)

    half = n // 2
    a11, a12, a21, a22 = a.quadrants(half)
    b11, b12, b21, b22 = b.quadrants(half)

    m1 = multiply_strassen(a11 + a22, b11 + b22, threshold)
    m2 = multiply_strassen(a21 + a22, b11, threshold)
    m3 = multiply_strassen(a11, b12 - b22, threshold)
    m4 = multiply_strassen(a22, b21 - b11, threshold)
    m5 = multiply_strassen(a11 + a12, b22, threshold)
    m6 = multiply_strassen(a21 - a11, b11 + b12, threshold)
    m7 = multiply_strassen(a12 - a22, b21 + b22, threshold)

    c11 = m1 + m4 - m5 + m7
    c12 = m3 + m5
    c21 = m2 + m4
    c22 = m1 + m3 - m2 + m6

    return Matrix.from_quadrants(c11, c12, c21, c22)
