"""Assemble executors, dispatcher and loop, and run the worker against the host."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import websockets
from loguru import logger
from websockets.exceptions import WebSocketException

from pybridge.bridge.dispatcher import Dispatcher
from pybridge.bridge.loop import ControlChannelLoop
from pybridge.config.schema import BridgeConfig
from pybridge.executors import NativeExecutor, SandboxedExecutor
from pybridge.protocol.types import Run, RunScript
from pybridge.utils.exceptions import TransportError


def build_dispatcher(config: BridgeConfig, outbound: asyncio.Queue[bytes]) -> Dispatcher:
    """RunScript goes to the embedded interpreter, legacy Run to the WASI sandbox."""
    executors = {
        RunScript: NativeExecutor(
            home=config.native.home,
            installer_command=config.native.installer_command,
        ),
        Run: SandboxedExecutor(image_path=config.sandbox.runtime_image or None),
    }
    return Dispatcher(executors, outbound)


async def run_worker(config: BridgeConfig, connect: Callable[..., Any] = websockets.connect) -> None:
    """
    Connect to the host's control endpoint and serve until the channel fails.

    Always ends by raising: TransportError when the handshake fails or the
    channel breaks, ProtocolError on a malformed frame.
    """
    url = config.url
    outbound: asyncio.Queue[bytes] = asyncio.Queue(maxsize=config.worker.outbound_capacity)
    dispatcher = build_dispatcher(config, outbound)
    logger.info("Connecting to {}", url)
    try:
        ws = await connect(url, max_size=None)
    except (OSError, asyncio.TimeoutError, WebSocketException) as e:
        raise TransportError(f"Failed to connect: {e}", url=url) from e
    logger.info("Connected to {}", url)
    try:
        await ControlChannelLoop(ws, dispatcher, outbound, url=url).run()
    finally:
        await ws.close()
