"""Control-channel event loop: one websocket, inbound frames and outbound results."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from pybridge.bridge.dispatcher import Dispatcher
from pybridge.utils.exceptions import ChannelClosedError, ProtocolError, TransportError


class ControlChannelLoop:
    """
    Multiplex one open websocket between inbound frames and queued results.

    Each iteration handles exactly one ready source. Inbound frames go to the
    dispatcher in arrival order; results are written back as binary messages in
    completion order. Any receive failure or close ends the loop with an
    exception: there is no reconnect, the host restarts the worker.
    """

    def __init__(self, ws: Any, dispatcher: Dispatcher, outbound: asyncio.Queue[bytes], url: str = ""):
        self._ws = ws
        self._dispatcher = dispatcher
        self._outbound = outbound
        self.url = url

    async def run(self) -> None:
        recv_task: asyncio.Future[Any] | None = None
        result_task: asyncio.Future[bytes] | None = None
        try:
            while True:
                if recv_task is None:
                    recv_task = asyncio.ensure_future(self._ws.recv())
                if result_task is None:
                    result_task = asyncio.ensure_future(self._outbound.get())
                done, _ = await asyncio.wait({recv_task, result_task}, return_when=asyncio.FIRST_COMPLETED)
                if recv_task in done:
                    finished, recv_task = recv_task, None
                    self._dispatcher.dispatch(self._received(finished))
                else:
                    finished, result_task = result_task, None
                    await self._send(finished.result())
        finally:
            for task in (recv_task, result_task):
                if task is not None and not task.done():
                    task.cancel()

    def _received(self, task: asyncio.Future[Any]) -> bytes:
        try:
            message = task.result()
        except ConnectionClosed as e:
            logger.error("Server closed the connection: {}", e)
            raise ChannelClosedError(f"Server closed the connection ({e})", url=self.url) from e
        except (OSError, WebSocketException) as e:
            logger.error("Error in receiving message: {}", e)
            raise TransportError(f"Error in receiving message: {e}", url=self.url) from e
        if isinstance(message, str):
            raise ProtocolError("unexpected text message on the control channel", code="UNEXPECTED_KIND")
        logger.debug("got request ({} bytes)", len(message))
        return bytes(message)

    async def _send(self, data: bytes) -> None:
        try:
            await self._ws.send(data)
        except (OSError, WebSocketException) as e:
            logger.error("Error in sending message: {}", e)
            return
        logger.debug("sent result ({} bytes)", len(data))
