"""Description of the host a benchmark ran on.

Recorded with every saved session so that timings from different machines
or interpreters are not compared blindly.
"""

from __future__ import annotations

import os
import platform
import subprocess
import sysconfig
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class EnvironmentInfo:
    """One fact about the benchmark environment.

    Attributes:
        name: Identifier ("python", "numpy", "platform", "cpu").
        version: Version string or count.
        detail: Free-form detail (implementation, machine, ...).
    """

    name: str
    version: str
    detail: str | None = None


def detect_python() -> EnvironmentInfo:
    """Describe the running interpreter, including free-threading."""
    gil_disabled = bool(sysconfig.get_config_var("Py_GIL_DISABLED"))
    detail = platform.python_implementation()
    if gil_disabled:
        detail += " (free-threaded)"
    return EnvironmentInfo(name="python", version=platform.python_version(), detail=detail)


def detect_numpy() -> EnvironmentInfo:
    return EnvironmentInfo(name="numpy", version=np.__version__)


def detect_platform() -> EnvironmentInfo:
    return EnvironmentInfo(
        name="platform",
        version=platform.release(),
        detail=f"{platform.system()} {platform.machine()}",
    )


def detect_cpu() -> EnvironmentInfo:
    return EnvironmentInfo(
        name="cpu",
        version=str(os.cpu_count() or 1),
        detail=platform.processor() or None,
    )


def detect_environment() -> dict[str, EnvironmentInfo]:
    """Detect every environment fact, keyed by name."""
    infos = [detect_python(), detect_numpy(), detect_platform(), detect_cpu()]
    return {info.name: info for info in infos}


def get_git_commit() -> str | None:
    """Return the short hash of the current git commit, if any."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()[:12]
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        pass
    return None


def describe_environment(environment: dict[str, EnvironmentInfo]) -> str:
    """Render environment facts as ``name version (detail)`` lines."""
    lines = []
    for info in environment.values():
        line = f"  {info.name:<10} {info.version}"
        if info.detail:
            line += f" ({info.detail})"
        lines.append(line)
    return "\n".join(lines)
