"""matbench: dense matrix multiplication strategies and their benchmark harness."""

from __future__ import annotations

from matbench.algorithms import (
    multiply_blocked,
    multiply_naive,
    multiply_parallel_blocked,
    multiply_parallel_rows,
    multiply_strassen,
)
from matbench.errors import (
    DimensionMismatchError,
    InvalidParameterError,
    MatbenchError,
    OutOfRangeAccessError,
)
from matbench.matrix import Matrix

__all__ = [
    "DimensionMismatchError",
    "InvalidParameterError",
    "MatbenchError",
    "Matrix",
    "OutOfRangeAccessError",
    "multiply_blocked",
    "multiply_naive",
    "multiply_parallel_blocked",
    "multiply_parallel_rows",
    "multiply_strassen",
]
