"""Pytest hooks and fixtures."""

from pathlib import Path

import pytest

from pybridge.runtime_image import default_runtime_image_path


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_runtime_image: needs the downloaded python.wasm runtime image",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_runtime_image tests until `pybridge fetch-runtime` has run."""
    if default_runtime_image_path().is_file():
        return
    skip = pytest.mark.skip(reason="Runtime image not fetched (run `pybridge fetch-runtime`)")
    for item in items:
        if "requires_runtime_image" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def make_package(tmp_path: Path):
    """Create files under <home>/vfs/<package>/pkg/scripts and return the home dir."""

    def _make(package_id: str, files: dict[str, str]) -> Path:
        scripts = tmp_path / "vfs" / package_id / "pkg" / "scripts"
        scripts.mkdir(parents=True, exist_ok=True)
        for name, content in files.items():
            target = scripts / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return tmp_path

    return _make
