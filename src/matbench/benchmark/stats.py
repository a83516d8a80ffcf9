"""Timing statistics for multiplication benchmarks.

Provides:
- Summary statistics over repeated timings (mean, median, stddev, CV)
- Outlier detection using the IQR method
- 95% confidence interval for the mean
- Throughput (GFLOPS) and speedup helpers
- Adaptive timing until the coefficient of variation is low enough
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Callable
from dataclasses import dataclass, field

# Two-tailed 95% t critical values, keyed by sample size.
_T_VALUES_95 = {
    2: 12.706,
    3: 4.303,
    4: 3.182,
    5: 2.776,
    6: 2.571,
    7: 2.447,
    8: 2.365,
    9: 2.306,
    10: 2.262,
    15: 2.145,
    20: 2.093,
    30: 2.045,
    50: 2.009,
    100: 1.984,
}


@dataclass(frozen=True)
class BenchmarkStats:
    """Summary of the wall-clock timings of one strategy.

    Attributes:
        times: Raw timings in seconds, in run order.
        mean: Average time (total / runs), outliers included.
        median: Median time.
        stddev: Sample standard deviation.
        cv: Coefficient of variation (stddev / mean).
        min: Fastest run.
        max: Slowest run.
        outliers: Timings outside the 1.5 IQR fences.
        confidence_95: 95% confidence interval of the mean.
    """

    times: tuple[float, ...]
    mean: float
    median: float
    stddev: float
    cv: float
    min: float
    max: float
    outliers: tuple[float, ...] = field(default_factory=tuple)
    confidence_95: tuple[float, float] = field(default_factory=lambda: (0.0, 0.0))

    @property
    def runs(self) -> int:
        return len(self.times)

    @property
    def total(self) -> float:
        return sum(self.times)


def compute_quartiles(data: list[float]) -> tuple[float, float, float]:
    """Compute (Q1, median, Q3) using the median-of-halves method.

    With fewer than 4 values all three quartiles equal the median.
    """
    if len(data) < 4:
        med = statistics.median(data)
        return med, med, med

    ordered = sorted(data)
    half = len(ordered) // 2
    lower = ordered[:half]
    upper = ordered[half + len(ordered) % 2 :]
    return statistics.median(lower), statistics.median(ordered), statistics.median(upper)


def detect_outliers(data: list[float], factor: float = 1.5) -> list[float]:
    """Return values outside [Q1 - factor*IQR, Q3 + factor*IQR]."""
    if len(data) < 4:
        return []

    q1, _, q3 = compute_quartiles(data)
    iqr = q3 - q1
    low = q1 - factor * iqr
    high = q3 + factor * iqr
    return [x for x in data if x < low or x > high]


def compute_confidence_interval(data: list[float]) -> tuple[float, float]:
    """Compute the 95% confidence interval of the mean.

    Uses t critical values for small samples and the normal approximation
    from 100 samples on.
    """
    n = len(data)
    if n < 2:
        mean = data[0] if data else 0.0
        return mean, mean

    mean = statistics.mean(data)
    stderr = statistics.stdev(data) / math.sqrt(n)

    t = 1.96
    if n < 100:
        for size in sorted(_T_VALUES_95):
            if n <= size:
                t = _T_VALUES_95[size]
                break

    margin = t * stderr
    return mean - margin, mean + margin


def compute_stats(times: list[float]) -> BenchmarkStats:
    """Summarize a list of timings (seconds).

    The mean is the plain average over every run, matching the reported
    ``total_time / iterations``; outliers are only reported.
    """
    if not times:
        return BenchmarkStats(
            times=(),
            mean=0.0,
            median=0.0,
            stddev=0.0,
            cv=0.0,
            min=0.0,
            max=0.0,
        )

    mean = sum(times) / len(times)
    stddev = statistics.stdev(times) if len(times) > 1 else 0.0

    return BenchmarkStats(
        times=tuple(times),
        mean=mean,
        median=statistics.median(times),
        stddev=stddev,
        cv=stddev / mean if mean > 0 else 0.0,
        min=min(times),
        max=max(times),
        outliers=tuple(detect_outliers(times)),
        confidence_95=compute_confidence_interval(times),
    )


def compute_gflops(size: int, seconds: float) -> float:
    """Throughput of an n x n multiply: 2*n^3 floating-point operations.

    Returns 0.0 when ``seconds`` is not positive.
    """
    if seconds <= 0:
        return 0.0
    return (2.0 * size**3) / (seconds * 1e9)


def compute_speedup(baseline_seconds: float, seconds: float) -> float:
    """Ratio baseline / this; 0.0 when either time is not positive."""
    if baseline_seconds <= 0 or seconds <= 0:
        return 0.0
    return baseline_seconds / seconds


def run_until_stable(
    measure: Callable[[], float],
    min_runs: int = 3,
    max_runs: int = 30,
    target_cv: float = 0.05,
) -> BenchmarkStats:
    """Time ``measure`` until the CV drops to ``target_cv`` or ``max_runs``.

    Args:
        measure: Callable performing one run and returning its time in seconds.
        min_runs: Runs performed before the CV is first checked.
        max_runs: Upper bound on the number of runs.
        target_cv: Coefficient of variation to reach.

    Returns:
        Statistics over every run performed.
    """
    times = [measure() for _ in range(min_runs)]

    while len(times) < max_runs:
        mean = statistics.mean(times)
        stddev = statistics.stdev(times) if len(times) > 1 else 0.0
        if mean > 0 and stddev / mean <= target_cv:
            break
        times.append(measure())

    return compute_stats(times)


def format_stats(stats: BenchmarkStats) -> str:
    """Format as e.g. ``"0.123s +/- 0.004s (CV=3.25%, 5 runs)"``."""
    return (
        f"{stats.mean:.3f}s +/- {stats.stddev:.3f}s "
        f"(CV={stats.cv * 100:.2f}%, {stats.runs} runs)"
    )
