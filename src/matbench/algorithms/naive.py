"""Reference O(n^3) matrix multiplication."""

from __future__ import annotations

from matbench.errors import DimensionMismatchError
from matbench.matrix import Matrix


def check_compatible(a: Matrix, b: Matrix) -> None:
    """Raise DimensionMismatchError unless ``a.cols == b.rows``."""
    if a.cols != b.rows:
        raise DimensionMismatchError(
            "Matrix dimensions don't match for multiplication", a.shape, b.shape
        )


def inner_products(
    a_data: list[float],
    b_data: list[float],
    k: int,
    n: int,
    row_start: int,
    row_stop: int,
) -> list[float]:
    """Compute rows [row_start, row_stop) of A x B as a flat list.

    Every cell uses a scalar accumulator starting at 0.0 and adds the terms
    in increasing contraction order, so any caller using this helper gets
    bit-identical results.
    """
    out: list[float] = []
    for i in range(row_start, row_stop):
        a_row = a_data[i * k : (i + 1) * k]
        for j in range(n):
            acc = 0.0
            t_offset = j
            for t in range(k):
                acc += a_row[t] * b_data[t_offset]
                t_offset += n
            out.append(acc)
    return out


def multiply_naive(a: Matrix, b: Matrix) -> Matrix:
    """Multiply with the plain i, j, k triple loop.

    This is the numerical reference for every other strategy.
    """
    check_compatible(a, b)
    values = inner_products(a.tolist(), b.tolist(), a.cols, b.cols, 0, a.rows)
    return Matrix.from_values(a.rows, b.cols, values)
