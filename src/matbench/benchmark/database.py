"""SQLite database for benchmark results storage.

Stores benchmark sessions (one or more reports plus the environment they ran
in) and compares sessions strategy by strategy.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from matbench.benchmark.environment import EnvironmentInfo, get_git_commit
from matbench.benchmark.harness import BenchmarkReport, BenchmarkResult
from matbench.benchmark.stats import BenchmarkStats

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A benchmark session containing one report per benchmarked size.

    Attributes:
        id: Session ID (None until saved).
        timestamp: When the session was created.
        description: Optional description.
        git_commit: Git commit hash at time of run.
        reports: Benchmark reports.
        environment: Environment facts keyed by name.
    """

    timestamp: datetime
    description: str | None
    git_commit: str | None
    reports: list[BenchmarkReport]
    environment: dict[str, EnvironmentInfo]
    id: int | None = None


class BenchmarkDatabase:
    """SQLite database for benchmark sessions."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.conn: sqlite3.Connection | None = None

    def __enter__(self) -> BenchmarkDatabase:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """Open database and initialize schema."""
        self.conn = sqlite3.connect(self.db_path)
        self._init_schema()

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def _cursor(self) -> sqlite3.Cursor:
        if not self.conn:
            raise RuntimeError("Database not open")
        return self.conn.cursor()

    def _init_schema(self) -> None:
        cursor = self._cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY,
                timestamp TEXT NOT NULL,
                description TEXT,
                git_commit TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reports (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL,
                label TEXT NOT NULL,
                size INTEGER NOT NULL,
                iterations INTEGER NOT NULL,
                block_size INTEGER NOT NULL,
                workers INTEGER,
                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS results (
                id INTEGER PRIMARY KEY,
                report_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                strategy TEXT NOT NULL,
                mean_s REAL,
                median_s REAL,
                stddev_s REAL,
                cv REAL,
                ci_lower REAL,
                ci_upper REAL,
                min_s REAL,
                max_s REAL,
                runs INTEGER,
                outliers INTEGER,
                gflops REAL,
                speedup REAL,
                verified INTEGER,
                max_error REAL,
                FOREIGN KEY (report_id) REFERENCES reports(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS environment (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                version TEXT,
                detail TEXT,
                FOREIGN KEY (session_id) REFERENCES sessions(id)
            )
        """)

        cursor.connection.commit()

    def save_session(self, session: Session) -> int:
        """Save a benchmark session to the database.

        Args:
            session: Session to save.

        Returns:
            Session ID.
        """
        cursor = self._cursor()
        git_commit = session.git_commit or get_git_commit()

        cursor.execute(
            "INSERT INTO sessions (timestamp, description, git_commit) VALUES (?, ?, ?)",
            (session.timestamp.isoformat(), session.description, git_commit),
        )
        session_id = cursor.lastrowid
        if session_id is None:
            raise RuntimeError("Failed to get session ID")

        for report in session.reports:
            cursor.execute(
                """
                INSERT INTO reports (session_id, label, size, iterations, block_size, workers)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    report.label,
                    report.size,
                    report.iterations,
                    report.block_size,
                    report.workers,
                ),
            )
            report_id = cursor.lastrowid

            for position, result in enumerate(report.results):
                stats = result.stats
                cursor.execute(
                    """
                    INSERT INTO results (
                        report_id, position, strategy,
                        mean_s, median_s, stddev_s, cv, ci_lower, ci_upper,
                        min_s, max_s, runs, outliers, gflops, speedup, verified, max_error
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        report_id,
                        position,
                        result.name,
                        stats.mean,
                        stats.median,
                        stats.stddev,
                        stats.cv,
                        stats.confidence_95[0],
                        stats.confidence_95[1],
                        stats.min,
                        stats.max,
                        stats.runs,
                        len(stats.outliers),
                        result.gflops,
                        result.speedup_vs_baseline,
                        None if result.verified is None else int(result.verified),
                        result.max_error,
                    ),
                )

        for info in session.environment.values():
            cursor.execute(
                "INSERT INTO environment (session_id, name, version, detail) VALUES (?, ?, ?, ?)",
                (session_id, info.name, info.version, info.detail),
            )

        cursor.connection.commit()
        logger.info("Saved session #%d with %d report(s)", session_id, len(session.reports))
        return session_id

    def _load_results(self, report_id: int) -> list[BenchmarkResult]:
        cursor = self._cursor()
        cursor.execute(
            """
            SELECT strategy, mean_s, median_s, stddev_s, cv, ci_lower, ci_upper,
                   min_s, max_s, runs, gflops, speedup, verified, max_error
            FROM results WHERE report_id = ? ORDER BY position
            """,
            (report_id,),
        )

        results = []
        for row in cursor.fetchall():
            stats = BenchmarkStats(
                times=(),  # Individual timings are not stored
                mean=row[1],
                median=row[2],
                stddev=row[3],
                cv=row[4],
                min=row[7],
                max=row[8],
                confidence_95=(row[5], row[6]),
            )
            results.append(
                BenchmarkResult(
                    name=row[0],
                    average_time_seconds=row[1],
                    gflops=row[10],
                    speedup_vs_baseline=row[11],
                    stats=stats,
                    verified=None if row[12] is None else bool(row[12]),
                    max_error=row[13] or 0.0,
                )
            )
        return results

    def load_session(self, session_id: int) -> Session | None:
        """Load a session from the database.

        Args:
            session_id: ID of session to load.

        Returns:
            Session or None if not found.
        """
        cursor = self._cursor()
        cursor.execute(
            "SELECT timestamp, description, git_commit FROM sessions WHERE id = ?",
            (session_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        timestamp, description, git_commit = row

        cursor.execute(
            """
            SELECT id, label, size, iterations, block_size, workers
            FROM reports WHERE session_id = ? ORDER BY id
            """,
            (session_id,),
        )
        reports = [
            BenchmarkReport(
                label=label,
                size=size,
                iterations=iterations,
                block_size=block_size,
                workers=workers,
                results=self._load_results(report_id),
            )
            for report_id, label, size, iterations, block_size, workers in cursor.fetchall()
        ]

        cursor.execute(
            "SELECT name, version, detail FROM environment WHERE session_id = ?",
            (session_id,),
        )
        environment = {
            name: EnvironmentInfo(name=name, version=version or "", detail=detail)
            for name, version, detail in cursor.fetchall()
        }

        return Session(
            id=session_id,
            timestamp=datetime.fromisoformat(timestamp),
            description=description,
            git_commit=git_commit,
            reports=reports,
            environment=environment,
        )

    def list_sessions(self) -> list[tuple[int, datetime, str | None, str | None]]:
        """List all sessions, newest first.

        Returns:
            List of (id, timestamp, description, git_commit) tuples.
        """
        cursor = self._cursor()
        cursor.execute(
            "SELECT id, timestamp, description, git_commit FROM sessions ORDER BY id DESC"
        )
        return [
            (row[0], datetime.fromisoformat(row[1]), row[2], row[3])
            for row in cursor.fetchall()
        ]

    def get_latest_session_id(self) -> int | None:
        cursor = self._cursor()
        cursor.execute("SELECT MAX(id) FROM sessions")
        row = cursor.fetchone()
        return row[0] if row and row[0] else None

    def compare_sessions(
        self, id1: int, id2: int
    ) -> dict[str, dict[str, tuple[float, float, float]]]:
        """Compare the average times of two sessions.

        Returns:
            Mapping of report label to strategy to (mean1_s, mean2_s, ratio),
            where ratio is mean2 / mean1 (0.0 when missing from session 2).
        """
        session1 = self.load_session(id1)
        session2 = self.load_session(id2)

        if not session1 or not session2:
            return {}

        s2_lookup: dict[tuple[str, str], float] = {}
        for report in session2.reports:
            for result in report.results:
                s2_lookup[report.label, result.name] = result.average_time_seconds

        comparison: dict[str, dict[str, tuple[float, float, float]]] = {}
        for report in session1.reports:
            by_strategy = comparison.setdefault(report.label, {})
            for result in report.results:
                mean1 = result.average_time_seconds
                mean2 = s2_lookup.get((report.label, result.name), 0.0)
                ratio = mean2 / mean1 if mean1 > 0 else 0.0
                by_strategy[result.name] = (mean1, mean2, ratio)

        return comparison
