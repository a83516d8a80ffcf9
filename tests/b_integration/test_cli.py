"""Integration tests for the matbench command line."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from matbench.cli import create_parser, main


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """setup_logging reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    """Tests for argument parsing defaults."""

    def test_benchmark_defaults(self) -> None:
        args = create_parser().parse_args(["benchmark"])
        assert args.size == 512
        assert args.iterations == 3
        assert args.block_size == 64

    def test_scaling_defaults(self) -> None:
        args = create_parser().parse_args(["scaling"])
        assert (args.start_size, args.end_size, args.factor) == (64, 1024, 2)


class TestCommands:
    """Tests running the subcommands on small sizes."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 0
        assert "usage: matbench" in capsys.readouterr().out

    def test_benchmark(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["benchmark", "8", "--iterations", "1", "--verify", "--quiet"]) == 0
        out = capsys.readouterr().out
        assert "Naive O(n³)" in out
        assert "Strassen O(n^2.8)" in out
        assert "GFLOPS" in out

    def test_benchmark_invalid_size(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["benchmark", "0", "--quiet"]) == 1
        assert "Error: size must be a positive integer" in capsys.readouterr().out

    def test_scaling(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["scaling", "--start-size", "2", "--end-size", "8", "--factor", "2"]) == 0
        out = capsys.readouterr().out
        sizes = [line.split()[0] for line in out.splitlines() if line[:1].isdigit()]
        assert sizes == ["2", "4", "8"]

    def test_scaling_invalid(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["scaling", "--start-size", "8", "--end-size", "2"]) == 1
        assert "must not exceed" in capsys.readouterr().out

    def test_techniques(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["techniques", "32"]) == 0
        assert "Block size 32" in capsys.readouterr().out

    def test_memory(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["memory", "32"]) == 0
        out = capsys.readouterr().out
        assert "IJK order" in out
        assert "Block 16" in out

    def test_suite(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        suite_path = tmp_path / "suite.yaml"
        suite_path.write_text(
            "name: t\nbenchmarks:\n  - {name: tiny, size: 4, iterations: 1, verify: true}\n"
        )
        assert main(["suite", str(suite_path), "--quiet"]) == 0
        out = capsys.readouterr().out
        assert "Suite: t" in out
        assert "[tiny]" in out

    def test_suite_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["suite", str(tmp_path / "nope.yaml")]) == 1
        assert "not found" in capsys.readouterr().out


class TestSessions:
    """Tests for saving, listing and comparing sessions."""

    def test_list_without_database(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--db", str(tmp_path / "none.db"), "list"]) == 0
        assert "No benchmark database found." in capsys.readouterr().out

    def test_save_list_compare(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = str(tmp_path / "results.db")
        for description in ("first", "second"):
            code = main(
                ["--db", db, "benchmark", "4", "--iterations", "1", "--quiet", "--save", "-d", description]
            )
            assert code == 0
        assert "Results saved to session #2" in capsys.readouterr().out

        assert main(["--db", db, "list"]) == 0
        out = capsys.readouterr().out
        assert "Total: 2 session(s)" in out
        assert "second" in out

        assert main(["--db", db, "compare", "1"]) == 0
        out = capsys.readouterr().out
        assert "Naive O(n³)" in out
        assert "#1" in out and "#2" in out

    def test_compare_unknown_session(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = str(tmp_path / "results.db")
        main(["--db", db, "benchmark", "2", "--iterations", "1", "--quiet", "--save"])
        capsys.readouterr()
        assert main(["--db", db, "compare", "1", "7"]) == 1
        assert "Session #7 not found" in capsys.readouterr().out
