"""Benchmark harness for the multiplication strategies.

Provides:
- Timing every strategy on the same seeded operands
- Throughput (GFLOPS) and speedup relative to the first strategy
- Optional cross-validation of each result against the baseline
- Scaling sweeps, block-size analysis and memory-pattern analysis
- Plain-text report tables
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from matbench.algorithms import (
    DEFAULT_BLOCK_SIZE,
    MultiplyFunc,
    Strategy,
    build_strategies,
    multiply_blocked,
    multiply_naive,
    multiply_parallel_rows,
)
from matbench.benchmark.stats import (
    BenchmarkStats,
    compute_gflops,
    compute_speedup,
    compute_stats,
    format_stats,
    run_until_stable,
)
from matbench.errors import InvalidParameterError, require_positive
from matbench.matrix import Matrix

logger = logging.getLogger(__name__)

SEED_A = 42
SEED_B = 84

DEFAULT_ITERATIONS = 3
DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_RUNS = 30

TECHNIQUE_BLOCK_SIZES = (32, 64, 128, 256)
MEMORY_BLOCK_SIZES = (16, 32, 64, 128)


@dataclass(frozen=True)
class BenchmarkResult:
    """Timing summary of one strategy.

    Attributes:
        name: Strategy name.
        average_time_seconds: Total time divided by the number of runs.
        gflops: 2*n^3 / (average_time * 1e9).
        speedup_vs_baseline: Baseline average time / this average time.
        stats: Statistics over every timed run.
        verified: Agreement with the baseline result, or None if not checked.
        max_error: Largest absolute difference from the baseline result.
    """

    name: str
    average_time_seconds: float
    gflops: float
    speedup_vs_baseline: float
    stats: BenchmarkStats
    verified: bool | None = None
    max_error: float = 0.0


@dataclass
class BenchmarkReport:
    """Results of benchmarking every strategy at one size.

    Attributes:
        label: Benchmark label (suite entry name or "<n>x<n>").
        size: Matrix edge length.
        iterations: Requested timed runs per strategy.
        block_size: Tile edge used by the blocked strategies.
        workers: Worker pool size (None for the default).
        results: One result per strategy, baseline first.
    """

    label: str
    size: int
    iterations: int
    block_size: int
    workers: int | None = None
    results: list[BenchmarkResult] = field(default_factory=list)

    @property
    def baseline(self) -> BenchmarkResult | None:
        return self.results[0] if self.results else None

    @property
    def discrepancies(self) -> list[BenchmarkResult]:
        return [r for r in self.results if r.verified is False]


@dataclass(frozen=True)
class ScalingRow:
    """Timings of the naive, parallel and blocked strategies at one size.

    ``error`` is set, and the timings are zero, when this size failed.
    """

    size: int
    naive_time: float = 0.0
    parallel_time: float = 0.0
    blocked_time: float = 0.0
    speedup: float = 0.0
    error: str | None = None


@dataclass(frozen=True)
class BlockSizeRow:
    """Blocked-multiply timing for one block size.

    Attributes:
        block_size: Tile edge length.
        seconds: Elapsed time of one multiply.
        gflops: Throughput.
        efficiency: Naive time / this time (memory analysis only).
    """

    block_size: int
    seconds: float
    gflops: float
    efficiency: float = 0.0


@dataclass(frozen=True)
class MemoryReport:
    """Naive (ijk) timing compared with blocked traversals."""

    size: int
    ijk_time: float
    blocks: list[BlockSizeRow]


@dataclass(frozen=True)
class BenchmarkProgress:
    """Progress callback information.

    Attributes:
        strategy: Strategy being timed.
        size: Matrix edge length.
        runs_completed: Timed runs finished for this strategy.
        total_runs: Runs expected (minimum in adaptive mode).
    """

    strategy: str
    size: int
    runs_completed: int
    total_runs: int


ProgressCallback = Callable[[BenchmarkProgress], None]


def generate_operands(size: int) -> tuple[Matrix, Matrix]:
    """Generate the two seeded size x size operands used by every benchmark."""
    size = require_positive("size", size)
    return Matrix.random(size, size, SEED_A), Matrix.random(size, size, SEED_B)


def time_multiply(multiply: MultiplyFunc, a: Matrix, b: Matrix) -> tuple[float, Matrix]:
    """Run one multiplication and return (elapsed seconds, result)."""
    start = time.perf_counter()
    result = multiply(a, b)
    return time.perf_counter() - start, result


def _time_strategy(
    strategy: Strategy,
    a: Matrix,
    b: Matrix,
    iterations: int,
    target_cv: float | None,
    max_runs: int,
    progress_callback: ProgressCallback | None,
) -> tuple[BenchmarkStats, Matrix]:
    """Time one strategy; return its stats and the result of the last run."""
    last: list[Matrix] = []
    runs = 0

    def measure() -> float:
        nonlocal runs
        elapsed, result = time_multiply(strategy, a, b)
        last[:] = [result]
        runs += 1
        logger.debug("%s %dx%d run %d: %.6fs", strategy.name, a.rows, a.cols, runs, elapsed)
        if progress_callback:
            progress_callback(
                BenchmarkProgress(
                    strategy=strategy.name,
                    size=a.rows,
                    runs_completed=runs,
                    total_runs=iterations,
                )
            )
        return elapsed

    if target_cv is None:
        stats = compute_stats([measure() for _ in range(iterations)])
    else:
        stats = run_until_stable(
            measure,
            min_runs=iterations,
            max_runs=max(max_runs, iterations),
            target_cv=target_cv,
        )
    return stats, last[0]


def benchmark_algorithms(
    size: int,
    iterations: int = DEFAULT_ITERATIONS,
    block_size: int = DEFAULT_BLOCK_SIZE,
    workers: int | None = None,
    verify: bool = False,
    tolerance: float = DEFAULT_TOLERANCE,
    target_cv: float | None = None,
    max_runs: int = DEFAULT_MAX_RUNS,
    label: str | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BenchmarkReport:
    """Benchmark every strategy on the same pair of random size x size matrices.

    Args:
        size: Matrix edge length.
        iterations: Timed runs per strategy (minimum runs in adaptive mode).
        block_size: Tile edge for the blocked strategies.
        workers: Worker pool size for the parallel strategies.
        verify: Compare every result with the baseline result.
        tolerance: Maximum absolute difference accepted by verification.
        target_cv: If set, keep timing until the CV reaches this value.
        max_runs: Upper bound on runs in adaptive mode.
        label: Name recorded in the report (default "<n>x<n>").
        progress_callback: Optional callback invoked after every run.

    Returns:
        Report with one result per strategy, baseline first.

    Raises:
        InvalidParameterError: If a parameter is not positive.
    """
    size = require_positive("size", size)
    iterations = require_positive("iterations", iterations)
    block_size = require_positive("block_size", block_size)
    if workers is not None:
        workers = require_positive("workers", workers)
    if target_cv is not None and target_cv <= 0:
        raise InvalidParameterError(f"target_cv must be positive, got {target_cv!r}")
    if tolerance < 0:
        raise InvalidParameterError(f"tolerance must not be negative, got {tolerance!r}")

    a, b = generate_operands(size)
    report = BenchmarkReport(
        label=label or f"{size}x{size}",
        size=size,
        iterations=iterations,
        block_size=block_size,
        workers=workers,
    )

    baseline_time: float | None = None
    baseline_result: Matrix | None = None

    for strategy in build_strategies(size, block_size=block_size, workers=workers):
        stats, result = _time_strategy(
            strategy, a, b, iterations, target_cv, max_runs, progress_callback
        )
        average = stats.mean

        if baseline_time is None:
            baseline_time = average
            baseline_result = result
            speedup = 1.0
        else:
            speedup = compute_speedup(baseline_time, average)

        verified: bool | None = None
        max_error = 0.0
        if verify and baseline_result is not None:
            max_error = result.max_abs_difference(baseline_result)
            verified = result.equals_within_tolerance(baseline_result, tolerance)
            if not verified:
                logger.warning(
                    "%s disagrees with baseline at size %d (max error %.3g > %.3g)",
                    strategy.name,
                    size,
                    max_error,
                    tolerance,
                )

        report.results.append(
            BenchmarkResult(
                name=strategy.name,
                average_time_seconds=average,
                gflops=compute_gflops(size, average),
                speedup_vs_baseline=speedup,
                stats=stats,
                verified=verified,
                max_error=max_error,
            )
        )

    return report


def sweep_sizes(start_size: int, end_size: int, factor: int) -> list[int]:
    """Return start, start*factor, ... up to and including end_size.

    Raises:
        InvalidParameterError: Unless all are positive, start <= end and
            factor > 1.
    """
    start_size = require_positive("start_size", start_size)
    end_size = require_positive("end_size", end_size)
    factor = require_positive("factor", factor)
    if start_size > end_size:
        raise InvalidParameterError(
            f"start_size ({start_size}) must not exceed end_size ({end_size})"
        )
    if factor < 2:
        raise InvalidParameterError(f"factor must be greater than 1, got {factor}")

    sizes = []
    size = start_size
    while size <= end_size:
        sizes.append(size)
        size *= factor
    return sizes


def analyze_scaling(
    start_size: int,
    end_size: int,
    factor: int,
    block_size: int = DEFAULT_BLOCK_SIZE,
    workers: int | None = None,
) -> list[ScalingRow]:
    """Time naive, parallel and blocked multiplication across growing sizes.

    A failure at one size is recorded in that size's row and the sweep
    continues with the next size.
    """
    sizes = sweep_sizes(start_size, end_size, factor)
    block_size = require_positive("block_size", block_size)

    rows: list[ScalingRow] = []
    for size in sizes:
        try:
            a, b = generate_operands(size)
            naive_time, _ = time_multiply(multiply_naive, a, b)
            parallel_time, _ = time_multiply(
                lambda x, y: multiply_parallel_rows(x, y, workers=workers), a, b
            )
            blocked_time, _ = time_multiply(
                lambda x, y: multiply_blocked(x, y, block_size), a, b
            )
        except Exception as e:
            logger.warning("Scaling run failed at size %d: %s", size, e, exc_info=True)
            rows.append(ScalingRow(size=size, error=str(e)))
            continue

        rows.append(
            ScalingRow(
                size=size,
                naive_time=naive_time,
                parallel_time=parallel_time,
                blocked_time=blocked_time,
                speedup=compute_speedup(naive_time, parallel_time),
            )
        )

    return rows


def analyze_block_sizes(
    size: int, block_sizes: Sequence[int] = TECHNIQUE_BLOCK_SIZES
) -> list[BlockSizeRow]:
    """Time blocked multiplication for every block size not above ``size``."""
    for bs in block_sizes:
        require_positive("block_size", bs)
    a, b = generate_operands(size)

    rows = []
    for bs in block_sizes:
        if bs > size:
            continue
        seconds, _ = time_multiply(lambda x, y: multiply_blocked(x, y, bs), a, b)
        rows.append(
            BlockSizeRow(block_size=bs, seconds=seconds, gflops=compute_gflops(size, seconds))
        )
    return rows


def analyze_memory_patterns(
    size: int, block_sizes: Sequence[int] = MEMORY_BLOCK_SIZES
) -> MemoryReport:
    """Compare the naive ijk traversal with blocked traversals.

    Only block sizes up to half the matrix size are timed.
    """
    for bs in block_sizes:
        require_positive("block_size", bs)
    a, b = generate_operands(size)

    ijk_time, _ = time_multiply(multiply_naive, a, b)
    blocks = []
    for bs in block_sizes:
        if bs > size // 2:
            continue
        seconds, _ = time_multiply(lambda x, y: multiply_blocked(x, y, bs), a, b)
        blocks.append(
            BlockSizeRow(
                block_size=bs,
                seconds=seconds,
                gflops=compute_gflops(size, seconds),
                efficiency=compute_speedup(ijk_time, seconds),
            )
        )
    return MemoryReport(size=size, ijk_time=ijk_time, blocks=blocks)


# Report formatting


def format_result_line(result: BenchmarkResult) -> str:
    line = (
        f"{result.name:<18} | {result.average_time_seconds:.3f}s | "
        f"{result.gflops:.2f} GFLOPS | {result.speedup_vs_baseline:.2f}x speedup"
    )
    if result.verified is True:
        line += " | ok"
    elif result.verified is False:
        line += f" | MISMATCH (max error {result.max_error:.3g})"
    return line


def format_result_detail(result: BenchmarkResult) -> str:
    """Format the timing spread of a result: stats, 95% CI and outlier count."""
    stats = result.stats
    low, high = stats.confidence_95
    return (
        f"{format_stats(stats)}, 95% CI [{low:.3f}s, {high:.3f}s], "
        f"{len(stats.outliers)} outlier(s)"
    )


def format_benchmark_table(report: BenchmarkReport) -> str:
    """Format a report as one line per strategy, under a header.

    Each strategy line is followed by its timing spread when individual
    timings are available.
    """
    lines = [
        "Matrix Multiplication Benchmark",
        f"Matrix size: {report.size}x{report.size}",
        f"Iterations: {report.iterations}",
        "=" * 70,
    ]
    for result in report.results:
        lines.append(format_result_line(result))
        if result.stats.runs:
            lines.append(f"    {format_result_detail(result)}")
    return "\n".join(lines)


def format_scaling_table(rows: Sequence[ScalingRow]) -> str:
    lines = [
        "Matrix Multiplication Scaling Analysis",
        "=" * 70,
        f"{'Size':<8} {'Naive (s)':<12} {'Parallel (s)':<14} {'Blocked (s)':<12} {'Speedup':<10}",
        "-" * 70,
    ]
    for row in rows:
        if row.error:
            lines.append(f"{row.size:<8} failed: {row.error}")
            continue
        lines.append(
            f"{row.size:<8} {row.naive_time:<12.3f} {row.parallel_time:<14.3f} "
            f"{row.blocked_time:<12.3f} {row.speedup:.2f}x"
        )
    return "\n".join(lines)


def format_block_size_table(size: int, rows: Sequence[BlockSizeRow]) -> str:
    lines = [f"Block Size Analysis ({size}x{size}):"]
    if not rows:
        lines.append("  no block size fits this matrix")
    for row in rows:
        lines.append(
            f"  Block size {row.block_size:<3}: {row.seconds:.3f}s ({row.gflops:.2f} GFLOPS)"
        )
    return "\n".join(lines)


def format_memory_table(report: MemoryReport) -> str:
    lines = [
        f"Memory Access Pattern Analysis ({report.size}x{report.size}):",
        f"  IJK order: {report.ijk_time:.3f}s (standard row-major)",
    ]
    for row in report.blocks:
        lines.append(
            f"  Block {row.block_size:<3}: {row.seconds:.3f}s ({row.efficiency:.2f}x efficiency)"
        )
    return "\n".join(lines)
