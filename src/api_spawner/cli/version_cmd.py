"""api-spawner version -- print version and build information."""

from __future__ import annotations

import os
import platform
import sys

import typer

from api_spawner import __version__

GIT_COMMIT_ENV = "GIT_COMMIT"
BUILD_TIME_ENV = "BUILD_TIME"


def build_info() -> dict[str, str]:
    """Version details; build fields come from the environment set at release time."""
    commit = os.environ.get(GIT_COMMIT_ENV, "unknown")
    return {
        "version": __version__,
        "python": platform.python_version(),
        "platform": f"{sys.platform}-{platform.machine()}",
        "commit": commit,
        "build_time": os.environ.get(BUILD_TIME_ENV, "unknown"),
        "environment": "development" if commit == "unknown" else "production",
    }


def version() -> None:
    """Show version information."""
    info = build_info()
    typer.echo(f"api-spawner {info['version']}")
    typer.echo(f"  Python:      {info['python']}")
    typer.echo(f"  Platform:    {info['platform']}")
    typer.echo(f"  Commit:      {info['commit']}")
    typer.echo(f"  Build time:  {info['build_time']}")
    typer.echo(f"  Environment: {info['environment']}")
