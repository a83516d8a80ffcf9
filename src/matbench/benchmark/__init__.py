"""Benchmark harness for the matrix multiplication strategies.

This package provides:
- Timing, throughput and speedup of every strategy on seeded operands
- Scaling sweeps, block-size and memory-pattern analyses
- YAML suite configuration
- SQLite-based result storage and comparison
"""

from __future__ import annotations

from matbench.benchmark.database import BenchmarkDatabase, Session
from matbench.benchmark.environment import EnvironmentInfo, detect_environment
from matbench.benchmark.harness import (
    BenchmarkReport,
    BenchmarkResult,
    ScalingRow,
    analyze_block_sizes,
    analyze_memory_patterns,
    analyze_scaling,
    benchmark_algorithms,
    sweep_sizes,
)
from matbench.benchmark.stats import BenchmarkStats, compute_stats, run_until_stable
from matbench.benchmark.suite import BenchmarkConfig, BenchmarkSuite, load_suite_config, run_suite

__all__ = [
    "BenchmarkConfig",
    "BenchmarkDatabase",
    "BenchmarkReport",
    "BenchmarkResult",
    "BenchmarkStats",
    "BenchmarkSuite",
    "EnvironmentInfo",
    "ScalingRow",
    "Session",
    "analyze_block_sizes",
    "analyze_memory_patterns",
    "analyze_scaling",
    "benchmark_algorithms",
    "compute_stats",
    "detect_environment",
    "load_suite_config",
    "run_suite",
    "run_until_stable",
    "sweep_sizes",
]
