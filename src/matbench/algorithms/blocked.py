"""Cache-blocked matrix multiplication, sequential and parallel."""

from __future__ import annotations

import logging

import numpy as np

from matbench.algorithms.naive import check_compatible
from matbench.algorithms.parallel import partition_rows, run_row_bands
from matbench.errors import require_positive
from matbench.matrix import Matrix

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 64


def multiply_blocked(a: Matrix, b: Matrix, block_size: int = DEFAULT_BLOCK_SIZE) -> Matrix:
    """Multiply by visiting (ii, jj, kk) tiles of edge ``block_size``.

    Tile bounds are clamped to the matrix extents, so dimensions need not be
    multiples of the block size. Each result cell accumulates one partial sum
    per contraction tile on top of the value already stored.
    """
    check_compatible(a, b)
    block_size = require_positive("block_size", block_size)

    m, k, n = a.rows, a.cols, b.cols
    a_data = a.tolist()
    b_data = b.tolist()
    c_data = [0.0] * (m * n)

    for ii in range(0, m, block_size):
        i_end = min(ii + block_size, m)
        for jj in range(0, n, block_size):
            j_end = min(jj + block_size, n)
            for kk in range(0, k, block_size):
                k_end = min(kk + block_size, k)

                for i in range(ii, i_end):
                    a_offset = i * k
                    c_offset = i * n
                    for j in range(jj, j_end):
                        acc = c_data[c_offset + j]
                        for t in range(kk, k_end):
                            acc += a_data[a_offset + t] * b_data[t * n + j]
                        c_data[c_offset + j] = acc

    return Matrix.from_values(m, n, c_data)


def multiply_parallel_blocked(
    a: Matrix,
    b: Matrix,
    block_size: int = DEFAULT_BLOCK_SIZE,
    workers: int | None = None,
) -> Matrix:
    """Blocked multiply with tile rows distributed across a worker pool.

    Each task owns the result rows of one tile row, ``[ii, min(ii + block_size, m))``.
    For every column tile it sums all contraction tiles into a local
    ``block_size x block_size`` scratch buffer, then writes the finished tile
    into its own rows. Tile rows never overlap, so no locking is needed.
    """
    check_compatible(a, b)
    block_size = require_positive("block_size", block_size)

    m, k, n = a.rows, a.cols, b.cols
    # Tiles larger than the matrix only waste scratch space.
    block_size = min(block_size, max(m, n, k, 1))
    a_data = a.tolist()
    b_data = b.tolist()
    result = Matrix.zeros(m, n)
    tile_rows = partition_rows(m, block_size)
    logger.debug("Parallel blocked: %d tile rows of height %d", len(tile_rows), block_size)

    def compute_tile_row(ii: int, i_end: int, band: np.ndarray) -> None:
        for jj in range(0, n, block_size):
            j_end = min(jj + block_size, n)
            local = [0.0] * (block_size * block_size)

            for kk in range(0, k, block_size):
                k_end = min(kk + block_size, k)
                for i in range(ii, i_end):
                    a_offset = i * k
                    local_offset = (i - ii) * block_size - jj
                    for j in range(jj, j_end):
                        acc = local[local_offset + j]
                        for t in range(kk, k_end):
                            acc += a_data[a_offset + t] * b_data[t * n + j]
                        local[local_offset + j] = acc

            width = j_end - jj
            for i in range(i_end - ii):
                row_start = i * n + jj
                band[row_start : row_start + width] = local[
                    i * block_size : i * block_size + width
                ]

    run_row_bands(result, tile_rows, compute_tile_row, workers)
    return result
