"""Sandbox runtime image: one-time download and cached load of python.wasm."""

from __future__ import annotations

import functools
from pathlib import Path

import httpx
from loguru import logger

from pybridge.utils.exceptions import RuntimeImageError

RUNTIME_IMAGE_FILE_NAME = "python-3.12.0.wasm"
RUNTIME_IMAGE_URL = (
    "https://github.com/vmware-labs/webassembly-language-runtimes/releases/download/"
    f"python%2F3.12.0%2B20231211-040d5a6/{RUNTIME_IMAGE_FILE_NAME}"
)


def default_runtime_image_path() -> Path:
    """Where `fetch-runtime` stores the image by default (the package's assets dir)."""
    return Path(__file__).resolve().parent / "assets" / RUNTIME_IMAGE_FILE_NAME


def fetch_runtime_image(
    dest: str | Path | None = None,
    url: str = RUNTIME_IMAGE_URL,
    client: httpx.Client | None = None,
    timeout: float = 120.0,
) -> Path:
    """Download the runtime image to dest unless it is already there."""
    path = Path(dest).expanduser() if dest else default_runtime_image_path()
    if path.exists():
        logger.info("Runtime image already present at {}", path)
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    owns_client = client is None
    http = client or httpx.Client(follow_redirects=True, timeout=timeout)
    try:
        logger.info("Fetching runtime image from {}", url)
        response = http.get(url)
        if response.status_code >= 400:
            raise RuntimeImageError(
                f"couldn't get {RUNTIME_IMAGE_FILE_NAME}: HTTP {response.status_code}",
                path=str(path),
            )
        content = response.content
    except httpx.HTTPError as e:
        raise RuntimeImageError(f"couldn't get {RUNTIME_IMAGE_FILE_NAME}: {e}", path=str(path)) from e
    finally:
        if owns_client:
            http.close()
    partial = path.with_suffix(path.suffix + ".part")
    partial.write_bytes(content)
    partial.replace(path)
    logger.info("Saved runtime image ({} bytes) to {}", len(content), path)
    return path


@functools.lru_cache(maxsize=4)
def _read_image(path: str) -> bytes:
    return Path(path).read_bytes()


def load_runtime_image(path: str | Path | None = None) -> bytes:
    """Return the image bytes, read from disk once per path."""
    resolved = Path(path).expanduser().resolve() if path else default_runtime_image_path()
    if not resolved.is_file():
        raise RuntimeImageError(
            f"runtime image not found at {resolved}; run `pybridge fetch-runtime` first",
            path=str(resolved),
        )
    return _read_image(str(resolved))
