"""Row-parallel matrix multiplication and the shared worker-pool helpers.

Parallel kernels never coordinate at runtime. The result rows are split into
disjoint contiguous ranges before any task is submitted and each task gets a
view over its own range only.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from matbench.algorithms.naive import check_compatible, inner_products
from matbench.errors import require_positive
from matbench.matrix import Matrix

logger = logging.getLogger(__name__)

RowRange = tuple[int, int]

# Task signature: (start_row, stop_row, band) where band is the exclusive
# flat view over result rows [start_row, stop_row).
BandTask = Callable[[int, int, np.ndarray], None]


def default_workers() -> int:
    return os.cpu_count() or 1


def partition_rows(rows: int, chunk: int) -> list[RowRange]:
    """Split [0, rows) into consecutive ranges of at most ``chunk`` rows.

    The last range is clamped to ``rows``. Ranges are pairwise disjoint and
    cover every row exactly once.
    """
    chunk = require_positive("chunk", chunk)
    ranges = [(start, min(start + chunk, rows)) for start in range(0, rows, chunk)]
    check_disjoint_cover(ranges, rows)
    return ranges


def partition_evenly(rows: int, parts: int) -> list[RowRange]:
    """Split [0, rows) into at most ``parts`` ranges of near-equal size."""
    parts = require_positive("parts", parts)
    if rows == 0:
        return []
    parts = min(parts, rows)
    base, extra = divmod(rows, parts)
    ranges = []
    start = 0
    for index in range(parts):
        stop = start + base + (1 if index < extra else 0)
        ranges.append((start, stop))
        start = stop
    check_disjoint_cover(ranges, rows)
    return ranges


def check_disjoint_cover(ranges: Sequence[RowRange], rows: int) -> None:
    """Assert that ranges tile [0, rows) in order without gaps or overlap."""
    expected = 0
    for start, stop in ranges:
        if start != expected or stop <= start or stop > rows:
            raise AssertionError(f"Row ranges {list(ranges)} do not tile [0, {rows})")
        expected = stop
    if expected != rows:
        raise AssertionError(f"Row ranges {list(ranges)} do not tile [0, {rows})")


def run_row_bands(
    result: Matrix,
    ranges: Sequence[RowRange],
    task: BandTask,
    workers: int | None = None,
) -> None:
    """Run ``task`` once per row range on a fixed-size thread pool.

    Each task receives the non-overlapping view of ``result`` for its range.
    The first task exception is re-raised after the pool shuts down.
    """
    if workers is None:
        workers = default_workers()
    workers = require_positive("workers", workers)
    logger.debug(
        "Dispatching %d row bands of a %dx%d result to %d workers",
        len(ranges),
        result.rows,
        result.cols,
        workers,
    )

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(task, start, stop, result.row_band(start, stop))
            for start, stop in ranges
        ]
        for future in futures:
            future.result()


def multiply_parallel_rows(a: Matrix, b: Matrix, workers: int | None = None) -> Matrix:
    """Multiply by distributing output row ranges across a worker pool.

    Args:
        a: Left operand (m x k).
        b: Right operand (k x n).
        workers: Pool size (default: number of CPUs).

    Returns:
        New m x n result, bit-identical to ``multiply_naive``.
    """
    check_compatible(a, b)
    result = Matrix.zeros(a.rows, b.cols)
    pool_size = workers if workers is not None else default_workers()
    ranges = partition_evenly(a.rows, require_positive("workers", pool_size))

    a_data = a.tolist()
    b_data = b.tolist()
    k = a.cols
    n = b.cols

    def compute_rows(start: int, stop: int, band: np.ndarray) -> None:
        band[:] = inner_products(a_data, b_data, k, n, start, stop)

    run_row_bands(result, ranges, compute_rows, pool_size)
    return result
