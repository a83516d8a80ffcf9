"""Command-line interface for matbench.

Provides the `matbench` command with subcommands for:
- Benchmarking every strategy at one size
- Scaling analysis across sizes
- Block-size and memory-pattern analyses
- Running a YAML suite
- Listing and comparing saved sessions
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from matbench.benchmark.database import BenchmarkDatabase, Session
from matbench.benchmark.environment import describe_environment, detect_environment
from matbench.benchmark.harness import (
    BenchmarkProgress,
    BenchmarkReport,
    analyze_block_sizes,
    analyze_memory_patterns,
    analyze_scaling,
    benchmark_algorithms,
    format_benchmark_table,
    format_block_size_table,
    format_memory_table,
    format_scaling_table,
)
from matbench.benchmark.suite import load_suite_config, run_suite
from matbench.errors import MatbenchError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("matbench_results.db")

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] %(message)s"


def setup_logging(level_name: str = "WARNING") -> None:
    """Configure the root logger to write to stderr at the given level."""
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _progress(p: BenchmarkProgress) -> None:
    print(
        f"  [{p.strategy}] run {p.runs_completed}/{p.total_runs}...",
        end="\r",
        flush=True,
    )


def _save_reports(args: argparse.Namespace, reports: list[BenchmarkReport]) -> None:
    db_path = Path(args.db) if args.db else DEFAULT_DB_PATH
    session = Session(
        timestamp=datetime.now(),
        description=args.description,
        git_commit=None,
        reports=reports,
        environment=detect_environment(),
    )
    with BenchmarkDatabase(db_path) as db:
        session_id = db.save_session(session)
    print(f"\nResults saved to session #{session_id}")


def cmd_benchmark(args: argparse.Namespace) -> int:
    """Benchmark every strategy at one size."""
    try:
        report = benchmark_algorithms(
            args.size,
            iterations=args.iterations,
            block_size=args.block_size,
            workers=args.workers,
            verify=args.verify,
            target_cv=args.cv_target,
            progress_callback=None if args.quiet else _progress,
        )
    except MatbenchError as e:
        print(f"Error: {e}")
        return 1

    # Clear progress line
    print(" " * 60, end="\r")
    print(format_benchmark_table(report))

    if args.save:
        _save_reports(args, [report])

    return 1 if report.discrepancies else 0


def cmd_scaling(args: argparse.Namespace) -> int:
    """Compare strategies across geometrically growing sizes."""
    print(f"Size range: {args.start_size} to {args.end_size}, factor: {args.factor}")
    try:
        rows = analyze_scaling(
            args.start_size,
            args.end_size,
            args.factor,
            block_size=args.block_size,
            workers=args.workers,
        )
    except MatbenchError as e:
        print(f"Error: {e}")
        return 1

    print(format_scaling_table(rows))
    return 0


def cmd_techniques(args: argparse.Namespace) -> int:
    """Compare block sizes."""
    try:
        rows = analyze_block_sizes(args.size)
    except MatbenchError as e:
        print(f"Error: {e}")
        return 1

    print(format_block_size_table(args.size, rows))
    return 0


def cmd_memory(args: argparse.Namespace) -> int:
    """Compare the naive traversal with blocked traversals."""
    try:
        report = analyze_memory_patterns(args.size)
    except MatbenchError as e:
        print(f"Error: {e}")
        return 1

    print(format_memory_table(report))
    return 0


def cmd_suite(args: argparse.Namespace) -> int:
    """Run a YAML suite."""
    suite_path = Path(args.path)
    if not suite_path.exists():
        print(f"Error: Suite configuration not found: {suite_path}")
        return 1

    try:
        suite = load_suite_config(suite_path)
    except (MatbenchError, OSError) as e:
        print(f"Error loading suite configuration: {e}")
        return 1

    print(f"Suite: {suite.name}")
    print("Environment:")
    print(describe_environment(detect_environment()))
    print()

    outcome = run_suite(
        suite,
        benchmark_filter=args.benchmark,
        progress_callback=None if args.quiet else _progress,
    )
    print(" " * 60, end="\r")

    for report in outcome.reports:
        print(f"\n[{report.label}]")
        print(format_benchmark_table(report))
    for name, error in outcome.errors.items():
        print(f"\n[{name}] failed: {error}")

    if args.save and outcome.reports:
        _save_reports(args, outcome.reports)

    return 1 if outcome.errors else 0


def cmd_list(args: argparse.Namespace) -> int:
    """List saved sessions."""
    db_path = Path(args.db) if args.db else DEFAULT_DB_PATH

    if not db_path.exists():
        print("No benchmark database found.")
        return 0

    with BenchmarkDatabase(db_path) as db:
        sessions = db.list_sessions()

    if not sessions:
        print("No benchmark sessions recorded yet.")
        return 0

    print("Saved Benchmark Sessions")
    print("=" * 80)
    print(f"{'ID':>5} {'Date':>20} {'Commit':>12} Description")
    print("-" * 80)
    for session_id, timestamp, description, git_commit in sessions:
        date_str = timestamp.strftime("%Y-%m-%d %H:%M")
        commit = git_commit[:12] if git_commit else "-"
        print(f"{session_id:>5} {date_str:>20} {commit:>12} {description or ''}")
    print("-" * 80)
    print(f"Total: {len(sessions)} session(s)")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two saved sessions."""
    db_path = Path(args.db) if args.db else DEFAULT_DB_PATH

    if not db_path.exists():
        print("No benchmark database found.")
        return 1

    with BenchmarkDatabase(db_path) as db:
        id1 = args.id1
        id2 = args.id2
        if id2 is None:
            id2 = db.get_latest_session_id()
            if id2 is None:
                print("No sessions to compare with.")
                return 1
            if id1 == id2:
                print("Only one session exists.")
                return 1

        for session_id in (id1, id2):
            if db.load_session(session_id) is None:
                print(f"Error: Session #{session_id} not found.")
                return 1

        comparison = db.compare_sessions(id1, id2)

    print(
        f"{'Benchmark':<12} {'Strategy':<20} {'#' + str(id1):>10} "
        f"{'#' + str(id2):>10} {'Ratio':>8} {'Change':>14}"
    )
    print("-" * 80)
    for label, strategies in sorted(comparison.items()):
        for strategy, (mean1, mean2, ratio) in strategies.items():
            mean2_str = f"{mean2:.3f}s" if mean2 > 0 else "-"
            ratio_str = f"{ratio:.2f}x" if ratio > 0 else "-"
            if ratio > 0:
                pct = (ratio - 1) * 100
                if pct < -5:
                    change = f"{pct:.1f}% BETTER"
                elif pct > 5:
                    change = f"+{pct:.1f}% WORSE"
                else:
                    change = "~same"
            else:
                change = "-"
            print(
                f"{label:<12} {strategy:<20} {mean1:>9.3f}s "
                f"{mean2_str:>10} {ratio_str:>8} {change:>14}"
            )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="matbench",
        description="Matrix multiplication benchmarks: from naive to optimized",
    )
    parser.add_argument(
        "--db",
        help=f"Path to benchmark database (default: {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # benchmark command
    bench_parser = subparsers.add_parser(
        "benchmark", help="Benchmark different matrix multiplication algorithms"
    )
    bench_parser.add_argument(
        "size", type=int, nargs="?", default=512, help="Matrix size NxN (default: 512)"
    )
    bench_parser.add_argument(
        "--iterations", type=int, default=3, help="Timed runs per strategy (default: 3)"
    )
    bench_parser.add_argument(
        "--block-size", type=int, default=64, help="Tile edge length (default: 64)"
    )
    bench_parser.add_argument(
        "--workers", type=int, help="Worker pool size (default: one per CPU)"
    )
    bench_parser.add_argument(
        "--verify", action="store_true", help="Check every result against the naive one"
    )
    bench_parser.add_argument(
        "--cv-target",
        type=float,
        help="Keep timing until this coefficient of variation is reached",
    )
    bench_parser.add_argument("--save", action="store_true", help="Save results to database")
    bench_parser.add_argument("-d", "--description", help="Description for this run")
    bench_parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    bench_parser.set_defaults(func=cmd_benchmark)

    # scaling command
    scaling_parser = subparsers.add_parser(
        "scaling", help="Compare algorithm complexities across sizes"
    )
    scaling_parser.add_argument("--start-size", type=int, default=64)
    scaling_parser.add_argument("--end-size", type=int, default=1024)
    scaling_parser.add_argument(
        "--factor", type=int, default=2, help="Size multiplier for each step"
    )
    scaling_parser.add_argument("--block-size", type=int, default=64)
    scaling_parser.add_argument("--workers", type=int)
    scaling_parser.set_defaults(func=cmd_scaling)

    # techniques command
    techniques_parser = subparsers.add_parser(
        "techniques", help="Demonstrate the effect of the block size"
    )
    techniques_parser.add_argument("size", type=int, nargs="?", default=256)
    techniques_parser.set_defaults(func=cmd_techniques)

    # memory command
    memory_parser = subparsers.add_parser("memory", help="Memory access pattern analysis")
    memory_parser.add_argument("size", type=int, nargs="?", default=512)
    memory_parser.set_defaults(func=cmd_memory)

    # suite command
    suite_parser = subparsers.add_parser("suite", help="Run a YAML benchmark suite")
    suite_parser.add_argument("path", help="Path to suite.yaml")
    suite_parser.add_argument("--benchmark", help="Run only the named benchmark")
    suite_parser.add_argument("--save", action="store_true", help="Save results to database")
    suite_parser.add_argument("-d", "--description", help="Description for this run")
    suite_parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    suite_parser.set_defaults(func=cmd_suite)

    # list command
    list_parser = subparsers.add_parser("list", help="List saved sessions")
    list_parser.set_defaults(func=cmd_list)

    # compare command
    compare_parser = subparsers.add_parser("compare", help="Compare two sessions")
    compare_parser.add_argument("id1", type=int, help="First session ID")
    compare_parser.add_argument(
        "id2", type=int, nargs="?", help="Second session ID (default: latest)"
    )
    compare_parser.set_defaults(func=cmd_compare)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    logger.debug("Command: %s", args.command)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
