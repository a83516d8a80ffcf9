"""Integration tests for matbench.benchmark.harness: real multiplies, end to end."""

from __future__ import annotations

import re

import pytest

from matbench.algorithms import Strategy, build_strategies
from matbench.benchmark import harness
from matbench.benchmark.harness import (
    BenchmarkProgress,
    BenchmarkResult,
    analyze_block_sizes,
    analyze_memory_patterns,
    analyze_scaling,
    benchmark_algorithms,
    format_benchmark_table,
    format_block_size_table,
    format_memory_table,
    format_result_detail,
    format_scaling_table,
    generate_operands,
    sweep_sizes,
)
from matbench.benchmark.stats import compute_stats
from matbench.errors import InvalidParameterError
from matbench.matrix import Matrix


class TestBenchmarkAlgorithms:
    """Tests for benchmark_algorithms."""

    def test_power_of_two_includes_strassen(self) -> None:
        report = benchmark_algorithms(8, iterations=2, verify=True)

        assert [r.name for r in report.results] == [
            "Naive O(n³)",
            "Parallel Naive",
            "Blocked (64)",
            "Parallel Blocked",
            "Strassen O(n^2.8)",
        ]
        assert all(r.verified is True for r in report.results)
        assert report.discrepancies == []

    def test_other_sizes_skip_strassen(self) -> None:
        report = benchmark_algorithms(12, iterations=1)
        assert len(report.results) == 4
        assert all(r.verified is None for r in report.results)

    def test_metrics(self) -> None:
        """Average, GFLOPS and speedup follow their definitions."""
        size = 16
        report = benchmark_algorithms(size, iterations=3, block_size=4, workers=2)
        baseline = report.results[0]

        assert baseline.speedup_vs_baseline == 1.0
        for result in report.results:
            assert result.stats.runs == 3
            assert result.average_time_seconds == pytest.approx(sum(result.stats.times) / 3)
            assert result.gflops == pytest.approx(
                2 * size**3 / (result.average_time_seconds * 1e9)
            )
            assert result.speedup_vs_baseline == pytest.approx(
                baseline.average_time_seconds / result.average_time_seconds
            )

    def test_report_metadata(self) -> None:
        report = benchmark_algorithms(4, iterations=1, block_size=2, workers=3, label="tiny")
        assert (report.label, report.size, report.iterations, report.block_size, report.workers) == (
            "tiny",
            4,
            1,
            2,
            3,
        )
        assert benchmark_algorithms(4, iterations=1).label == "4x4"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"size": 0},
            {"size": -1},
            {"size": 4, "iterations": 0},
            {"size": 4, "block_size": 0},
            {"size": 4, "workers": 0},
            {"size": 4, "target_cv": 0.0},
        ],
    )
    def test_invalid_parameters(self, kwargs: dict) -> None:
        with pytest.raises(InvalidParameterError):
            benchmark_algorithms(**kwargs)

    def test_progress_callback(self) -> None:
        events: list[BenchmarkProgress] = []
        benchmark_algorithms(4, iterations=2, progress_callback=events.append)

        assert len(events) == 5 * 2
        assert [e.runs_completed for e in events[:2]] == [1, 2]
        assert all(e.total_runs == 2 and e.size == 4 for e in events)

    def test_adaptive_runs(self) -> None:
        report = benchmark_algorithms(4, iterations=2, target_cv=1e-12, max_runs=4)
        for result in report.results:
            assert 2 <= result.stats.runs <= 4

    def test_discrepancy_is_reported(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A wrong strategy is flagged, not raised."""

        def with_broken(size: int, block_size: int, workers: int | None) -> list[Strategy]:
            strategies = build_strategies(size, block_size=block_size, workers=workers)
            broken = Strategy("Broken", lambda a, b: Matrix.zeros(a.rows, b.cols))
            return [*strategies, broken]

        monkeypatch.setattr(harness, "build_strategies", with_broken)
        report = benchmark_algorithms(6, iterations=1, verify=True)

        assert [r.name for r in report.discrepancies] == ["Broken"]
        assert report.discrepancies[0].max_error > 0


class TestScaling:
    """Tests for the scaling sweep."""

    def test_sweep_sizes(self) -> None:
        assert sweep_sizes(2, 8, 2) == [2, 4, 8]
        assert sweep_sizes(3, 30, 3) == [3, 9, 27]
        assert sweep_sizes(5, 5, 2) == [5]

    @pytest.mark.parametrize(
        ("start", "end", "factor"),
        [(8, 2, 2), (2, 8, 1), (0, 8, 2), (2, 0, 2), (2, 8, 0)],
    )
    def test_invalid_sweep(self, start: int, end: int, factor: int) -> None:
        with pytest.raises(InvalidParameterError):
            sweep_sizes(start, end, factor)

    def test_one_row_per_size(self) -> None:
        rows = analyze_scaling(2, 8, 2, workers=2)

        assert [row.size for row in rows] == [2, 4, 8]
        for row in rows:
            assert row.error is None
            assert row.naive_time > 0
            assert row.speedup == pytest.approx(row.naive_time / row.parallel_time)

    def test_failure_at_one_size(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A failing size is recorded and the sweep goes on."""
        real = harness.multiply_blocked

        def flaky(a: Matrix, b: Matrix, block_size: int) -> Matrix:
            if a.rows == 4:
                raise MemoryError("out of memory")
            return real(a, b, block_size)

        monkeypatch.setattr(harness, "multiply_blocked", flaky)
        rows = analyze_scaling(2, 8, 2)

        assert [row.size for row in rows] == [2, 4, 8]
        assert rows[1].error == "out of memory"
        assert rows[0].error is None and rows[2].error is None

        table = format_scaling_table(rows)
        assert "failed: out of memory" in table


class TestAnalyses:
    """Tests for the block-size and memory-pattern analyses."""

    def test_block_sizes_limited_to_size(self) -> None:
        rows = analyze_block_sizes(64)
        assert [row.block_size for row in rows] == [32, 64]
        assert all(row.gflops > 0 for row in rows)

    def test_block_sizes_none_fit(self) -> None:
        rows = analyze_block_sizes(8)
        assert rows == []
        assert "no block size fits" in format_block_size_table(8, rows)

    def test_memory_patterns(self) -> None:
        report = analyze_memory_patterns(40, block_sizes=(4, 16, 32))
        assert report.ijk_time > 0
        assert [row.block_size for row in report.blocks] == [4, 16]
        for row in report.blocks:
            assert row.efficiency == pytest.approx(report.ijk_time / row.seconds)
        assert "IJK order" in format_memory_table(report)


class TestFormatting:
    """Tests for report formatting."""

    def test_benchmark_table(self) -> None:
        report = benchmark_algorithms(4, iterations=1, verify=True)
        table = format_benchmark_table(report)
        lines = table.splitlines()

        assert "Matrix size: 4x4" in table
        strategy_lines = [line for line in lines if "GFLOPS" in line]
        assert len(strategy_lines) == 5
        for line in strategy_lines:
            assert re.search(r"\| \d+\.\d{3}s \| \d+\.\d{2} GFLOPS \| \d+\.\d{2}x speedup", line)
            assert line.endswith("| ok")

    def test_benchmark_table_shows_spread(self) -> None:
        """Each strategy line is followed by its run count, CV and outliers."""
        report = benchmark_algorithms(4, iterations=2, target_cv=0.5, max_runs=3)
        lines = format_benchmark_table(report).splitlines()

        detail_lines = [line for line in lines if "CV=" in line]
        assert len(detail_lines) == len(report.results)
        for line, result in zip(detail_lines, report.results):
            assert f"{result.stats.runs} runs" in line
            assert "95% CI" in line
            assert line.endswith("outlier(s)")

    def test_outliers_are_counted(self) -> None:
        stats = compute_stats([1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 10.0])
        result = BenchmarkResult(
            name="Naive O(n³)",
            average_time_seconds=stats.mean,
            gflops=0.0,
            speedup_vs_baseline=1.0,
            stats=stats,
        )
        assert stats.outliers == (10.0,)
        assert format_result_detail(result).endswith("1 outlier(s)")


class TestEndToEnd:
    """Identity-like input through every benchmarked strategy."""

    def test_identity_through_every_strategy(self) -> None:
        identity = Matrix.from_rows([[1.0, 0.0], [0.0, 1.0]])
        b = Matrix.from_rows([[5.0, 6.0], [7.0, 8.0]])
        for strategy in build_strategies(2, block_size=1, workers=2):
            assert strategy(identity, b).to_rows() == [[5.0, 6.0], [7.0, 8.0]], strategy.name

    def test_operands_are_seeded(self) -> None:
        a1, b1 = generate_operands(5)
        a2, b2 = generate_operands(5)
        assert a1 == a2
        assert b1 == b2
        assert a1 != b1
