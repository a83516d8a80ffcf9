"""Benchmark suite configuration.

A suite is a YAML file listing benchmark sizes and their parameters:

    name: default
    defaults:
      iterations: 3
      block_size: 64
      verify: true
    benchmarks:
      - name: small
        size: 64
      - name: large
        size: 256
        iterations: 1
        enabled: false
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from matbench.algorithms import DEFAULT_BLOCK_SIZE
from matbench.benchmark.harness import (
    DEFAULT_ITERATIONS,
    BenchmarkReport,
    ProgressCallback,
    benchmark_algorithms,
)
from matbench.errors import InvalidParameterError, require_positive

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkConfig:
    """Configuration for a single benchmark.

    Attributes:
        name: Benchmark identifier.
        size: Matrix edge length.
        iterations: Timed runs per strategy.
        block_size: Tile edge for the blocked strategies.
        workers: Worker pool size (None for one per CPU).
        verify: Cross-check every strategy against the baseline.
        enabled: Whether the benchmark is run.
    """

    name: str
    size: int
    iterations: int = DEFAULT_ITERATIONS
    block_size: int = DEFAULT_BLOCK_SIZE
    workers: int | None = None
    verify: bool = False
    enabled: bool = True


@dataclass
class BenchmarkSuite:
    """Collection of benchmark configurations."""

    name: str
    benchmarks: list[BenchmarkConfig]


@dataclass
class SuiteOutcome:
    """Reports of a suite run, plus the errors of the benchmarks that failed."""

    reports: list[BenchmarkReport] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


_FIELDS = ("size", "iterations", "block_size", "workers", "verify", "enabled")


def _require_bool(key: str, value: object) -> bool:
    # YAML strings such as "false" would otherwise be truthy.
    if not isinstance(value, bool):
        raise InvalidParameterError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_benchmark(entry: dict, defaults: dict, index: int) -> BenchmarkConfig:
    if not isinstance(entry, dict):
        raise InvalidParameterError(f"Benchmark #{index}: expected a mapping, got {entry!r}")
    name = str(entry.get("name") or f"benchmark-{index}")
    merged = {**defaults, **entry}

    unknown = set(entry) - {"name", *_FIELDS}
    if unknown:
        raise InvalidParameterError(
            f"Benchmark {name!r}: unknown keys {', '.join(sorted(unknown))}"
        )
    if "size" not in merged:
        raise InvalidParameterError(f"Benchmark {name!r}: missing 'size'")

    try:
        config = BenchmarkConfig(
            name=name,
            size=require_positive("size", merged["size"]),
            iterations=require_positive(
                "iterations", merged.get("iterations", DEFAULT_ITERATIONS)
            ),
            block_size=require_positive(
                "block_size", merged.get("block_size", DEFAULT_BLOCK_SIZE)
            ),
            workers=(
                require_positive("workers", merged["workers"])
                if merged.get("workers") is not None
                else None
            ),
            verify=_require_bool("verify", merged.get("verify", False)),
            enabled=_require_bool("enabled", merged.get("enabled", True)),
        )
    except InvalidParameterError as e:
        raise InvalidParameterError(f"Benchmark {name!r}: {e}") from e

    return config


def load_suite_config(config_path: Path | str) -> BenchmarkSuite:
    """Load a benchmark suite from YAML.

    Args:
        config_path: Path to the suite file.

    Returns:
        BenchmarkSuite configuration.

    Raises:
        InvalidParameterError: If the file is not valid YAML or an entry is
            malformed.
    """
    config_path = Path(config_path)
    with config_path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidParameterError(f"{config_path}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise InvalidParameterError(f"{config_path}: expected a mapping at top level")

    defaults = data.get("defaults") or {}
    unknown = set(defaults) - set(_FIELDS)
    if unknown:
        raise InvalidParameterError(
            f"{config_path}: unknown defaults {', '.join(sorted(unknown))}"
        )

    benchmarks = [
        _parse_benchmark(entry, defaults, index)
        for index, entry in enumerate(data.get("benchmarks") or [])
    ]

    return BenchmarkSuite(name=data.get("name", config_path.stem), benchmarks=benchmarks)


def run_suite(
    suite: BenchmarkSuite,
    benchmark_filter: str | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SuiteOutcome:
    """Run every enabled benchmark of a suite.

    A benchmark that fails is recorded in ``SuiteOutcome.errors`` and the
    remaining benchmarks still run.
    """
    outcome = SuiteOutcome()

    for config in suite.benchmarks:
        if not config.enabled:
            continue
        if benchmark_filter and config.name != benchmark_filter:
            continue

        logger.info("Running benchmark %s (%dx%d)", config.name, config.size, config.size)
        try:
            report = benchmark_algorithms(
                config.size,
                iterations=config.iterations,
                block_size=config.block_size,
                workers=config.workers,
                verify=config.verify,
                label=config.name,
                progress_callback=progress_callback,
            )
        except Exception as e:
            logger.warning("Benchmark %s failed: %s", config.name, e, exc_info=True)
            outcome.errors[config.name] = str(e)
            continue

        outcome.reports.append(report)

    return outcome
