"""Package virtual filesystem layout: <home>/vfs/<package>/pkg/scripts/<path>."""

from __future__ import annotations

from pathlib import Path


def package_dir(home: str | Path, package_id: str) -> Path:
    """Root of a package; the working directory while one of its scripts runs."""
    return Path(home) / "vfs" / package_id / "pkg"


def script_path(home: str | Path, package_id: str, path: str) -> Path:
    """Resolve a path relative to the package's `scripts` directory."""
    return package_dir(home, package_id) / "scripts" / path
