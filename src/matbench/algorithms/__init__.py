"""Matrix multiplication strategies.

Every strategy takes two matrices and returns a freshly allocated result;
operands are never modified.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from matbench.algorithms.blocked import (
    DEFAULT_BLOCK_SIZE,
    multiply_blocked,
    multiply_parallel_blocked,
)
from matbench.algorithms.naive import check_compatible, multiply_naive
from matbench.algorithms.parallel import (
    default_workers,
    multiply_parallel_rows,
    partition_evenly,
    partition_rows,
)
from matbench.algorithms.strassen import is_power_of_two, multiply_strassen
from matbench.matrix import Matrix

MultiplyFunc = Callable[[Matrix, Matrix], Matrix]

# Largest size at which the benchmark still runs Strassen.
STRASSEN_MAX_SIZE = 512


@dataclass(frozen=True)
class Strategy:
    """A named multiplication strategy bound to its tuning parameters.

    Attributes:
        name: Display name.
        multiply: Callable computing A x B.
    """

    name: str
    multiply: MultiplyFunc

    def __call__(self, a: Matrix, b: Matrix) -> Matrix:
        return self.multiply(a, b)


def strassen_applicable(size: int) -> bool:
    """Whether the benchmark includes Strassen for square matrices of ``size``."""
    return size <= STRASSEN_MAX_SIZE and is_power_of_two(size)


def build_strategies(
    size: int,
    block_size: int = DEFAULT_BLOCK_SIZE,
    workers: int | None = None,
) -> list[Strategy]:
    """Return the benchmarked strategies in run order.

    The first strategy is the baseline used for speedup figures.
    """
    strategies = [
        Strategy("Naive O(n³)", multiply_naive),
        Strategy(
            "Parallel Naive",
            lambda a, b: multiply_parallel_rows(a, b, workers=workers),
        ),
        Strategy(
            f"Blocked ({block_size})",
            lambda a, b: multiply_blocked(a, b, block_size),
        ),
        Strategy(
            "Parallel Blocked",
            lambda a, b: multiply_parallel_blocked(a, b, block_size, workers=workers),
        ),
    ]
    if strassen_applicable(size):
        strategies.append(Strategy("Strassen O(n^2.8)", multiply_strassen))
    return strategies


__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "STRASSEN_MAX_SIZE",
    "MultiplyFunc",
    "Strategy",
    "build_strategies",
    "check_compatible",
    "default_workers",
    "is_power_of_two",
    "multiply_blocked",
    "multiply_naive",
    "multiply_parallel_blocked",
    "multiply_parallel_rows",
    "multiply_strassen",
    "partition_evenly",
    "partition_rows",
    "strassen_applicable",
]
