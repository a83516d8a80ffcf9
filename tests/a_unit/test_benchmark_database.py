"""Unit tests for matbench.benchmark.database module."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from matbench.benchmark.database import BenchmarkDatabase, Session
from matbench.benchmark.environment import EnvironmentInfo, detect_environment
from matbench.benchmark.harness import BenchmarkReport, BenchmarkResult
from matbench.benchmark.stats import compute_stats


def make_result(name: str, times: list[float], speedup: float, verified: bool | None) -> BenchmarkResult:
    stats = compute_stats(times)
    return BenchmarkResult(
        name=name,
        average_time_seconds=stats.mean,
        gflops=1.5,
        speedup_vs_baseline=speedup,
        stats=stats,
        verified=verified,
        max_error=0.0 if verified is not False else 0.25,
    )


def make_session(scale: float = 1.0, description: str | None = "run") -> Session:
    report = BenchmarkReport(
        label="small",
        size=64,
        iterations=2,
        block_size=16,
        workers=4,
        results=[
            make_result("Naive O(n³)", [0.4 * scale, 0.6 * scale], 1.0, True),
            make_result("Blocked (16)", [0.2 * scale, 0.3 * scale], 2.0, False),
        ],
    )
    return Session(
        timestamp=datetime(2026, 1, 2, 3, 4, 5),
        description=description,
        git_commit="abc123",
        reports=[report],
        environment={"python": EnvironmentInfo(name="python", version="3.12.1", detail="CPython")},
    )


class TestBenchmarkDatabase:
    """Tests for BenchmarkDatabase."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            session_id = db.save_session(make_session())
            loaded = db.load_session(session_id)

        assert loaded is not None
        assert loaded.id == session_id
        assert loaded.timestamp == datetime(2026, 1, 2, 3, 4, 5)
        assert loaded.description == "run"
        assert loaded.git_commit == "abc123"
        assert loaded.environment["python"].version == "3.12.1"

        (report,) = loaded.reports
        assert (report.label, report.size, report.iterations, report.block_size, report.workers) == (
            "small",
            64,
            2,
            16,
            4,
        )
        naive, blocked = report.results
        assert naive.name == "Naive O(n³)"
        assert naive.average_time_seconds == pytest.approx(0.5)
        assert naive.stats.runs == 0  # individual timings are not stored
        assert naive.verified is True
        assert blocked.verified is False
        assert blocked.max_error == 0.25
        assert blocked.speedup_vs_baseline == 2.0

    def test_run_and_outlier_counts_stored(self, tmp_path: Path) -> None:
        session = make_session()
        session.reports[0].results.append(
            make_result("Strassen O(n^2.8)", [1.0] * 6 + [10.0], 0.5, None)
        )
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            db.save_session(session)
            assert db.conn is not None
            rows = db.conn.execute(
                "SELECT strategy, runs, outliers FROM results ORDER BY position"
            ).fetchall()

        assert rows == [
            ("Naive O(n³)", 2, 0),
            ("Blocked (16)", 2, 0),
            ("Strassen O(n^2.8)", 7, 1),
        ]

    def test_load_missing(self, tmp_path: Path) -> None:
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            assert db.load_session(42) is None

    def test_list_and_latest(self, tmp_path: Path) -> None:
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            assert db.get_latest_session_id() is None
            first = db.save_session(make_session(description="first"))
            second = db.save_session(make_session(description="second"))
            sessions = db.list_sessions()
            latest = db.get_latest_session_id()

        assert latest == second
        assert [s[0] for s in sessions] == [second, first]
        assert sessions[0][2] == "second"

    def test_compare_sessions(self, tmp_path: Path) -> None:
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            id1 = db.save_session(make_session(scale=1.0))
            id2 = db.save_session(make_session(scale=0.5))
            comparison = db.compare_sessions(id1, id2)

        mean1, mean2, ratio = comparison["small"]["Naive O(n³)"]
        assert mean1 == pytest.approx(0.5)
        assert mean2 == pytest.approx(0.25)
        assert ratio == pytest.approx(0.5)

    def test_compare_missing_session(self, tmp_path: Path) -> None:
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            id1 = db.save_session(make_session())
            assert db.compare_sessions(id1, 999) == {}

    def test_requires_open(self, tmp_path: Path) -> None:
        db = BenchmarkDatabase(tmp_path / "results.db")
        with pytest.raises(RuntimeError, match="not open"):
            db.list_sessions()

    def test_environment_round_trip(self, tmp_path: Path) -> None:
        session = make_session()
        session.environment = detect_environment()
        with BenchmarkDatabase(tmp_path / "results.db") as db:
            loaded = db.load_session(db.save_session(session))

        assert loaded is not None
        assert set(loaded.environment) == {"python", "numpy", "platform", "cpu"}
