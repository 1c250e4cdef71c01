"""Best-effort dependency installation from a requirements file."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from loguru import logger

DEFAULT_INSTALLER_COMMAND: tuple[str, ...] = ("pip3", "install")

InstallerRunner = Callable[[Sequence[str]], Awaitable[tuple[int, str, str]]]


def parse_requirements(text: str) -> list[str]:
    """Return package specifiers in file order, skipping blank and comment lines."""
    specifiers: list[str] = []
    for line in text.splitlines():
        spec = line.strip()
        if not spec or spec.startswith("#"):
            continue
        specifiers.append(spec)
    return specifiers


async def run_installer(command: Sequence[str]) -> tuple[int, str, str]:
    """Run one installer command. Returns (returncode, stdout, stderr)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError) as e:
        return 127, "", f"{command[0]}: {e}"
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


async def install_requirements(
    requirements_path: str | Path,
    installer_command: Sequence[str] = DEFAULT_INSTALLER_COMMAND,
    runner: InstallerRunner = run_installer,
) -> list[str]:
    """
    Install every specifier listed in requirements_path, one installer call each.

    A failing install is logged and skipped. Returns the specifiers that
    installed successfully. A missing requirements file raises FileNotFoundError.
    """
    contents = await asyncio.to_thread(Path(requirements_path).read_text, encoding="utf-8")
    installed: list[str] = []
    for spec in parse_requirements(contents):
        code, stdout, stderr = await runner([*installer_command, spec])
        if code == 0:
            logger.info("Successfully installed: {}", spec)
            logger.debug("installer output for {}: {}", spec, stdout[-2000:])
            installed.append(spec)
        else:
            logger.warning("Error installing {} (exit {}): {}", spec, code, stderr[-2000:].strip())
    return installed
