"""Host-side relay: owns the worker's channel id and forwards run requests to it.

The host's HTTP server reports channel events (open, close, push) to the relay;
the relay pushes frames back through an injected coroutine, so it runs against
any transport.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from pybridge.protocol.codec import decode_response, encode_request
from pybridge.protocol.types import Message, MessageKind, PushFrame, Run
from pybridge.utils.exceptions import ChannelClosedError, ProtocolError

PushFn = Callable[[PushFrame], Awaitable[None]]


def _request_payload(message: Message) -> bytes:
    """Legacy `Run` source is relayed as-is; structured requests are enveloped."""
    if isinstance(message.body, Run):
        return message.blob or b""
    return encode_request(message)


@dataclass(slots=True, frozen=True)
class Connection:
    """The single live control channel."""

    channel_id: int


class HostRelay:
    """
    Track the one open channel and run requests over it one at a time.

    `run` pushes the request on the current channel and waits for the next
    binary push from the worker, so only a single request is in flight.
    """

    def __init__(self, node_name: str, push: PushFn):
        self.node_name = node_name
        self._push = push
        self.connection: Connection | None = None
        self._waiter: asyncio.Future[Message] | None = None
        self._lock = asyncio.Lock()

    def is_expected_channel_id(self, channel_id: int) -> bool:
        if self.connection is None:
            raise ProtocolError("no open channel", code="NO_CONNECTION", details={"channel_id": channel_id})
        return channel_id == self.connection.channel_id

    def _validate(self, channel_id: int) -> None:
        if not self.is_expected_channel_id(channel_id):
            assert self.connection is not None
            raise ProtocolError(
                f"frame for channel {channel_id}, open channel is {self.connection.channel_id}",
                code="CHANNEL_MISMATCH",
                details={"channel_id": channel_id, "expected": self.connection.channel_id},
            )

    async def on_open(self, channel_id: int) -> None:
        """Record the new channel and greet the worker with this node's name."""
        self.connection = Connection(channel_id=channel_id)
        logger.info("worker channel {} opened", channel_id)
        await self._push(PushFrame(id=channel_id, kind=MessageKind.TEXT, payload=self.node_name.encode("utf-8")))

    def on_close(self, channel_id: int) -> None:
        self._validate(channel_id)
        self.connection = None
        logger.info("worker channel {} closed", channel_id)
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_exception(ChannelClosedError(f"channel {channel_id} closed before reply"))

    def on_push(self, frame: PushFrame) -> Message:
        """Accept a reply pushed by the worker; resolves the request in flight."""
        self._validate(frame.id)
        if frame.kind is not MessageKind.BINARY:
            raise ProtocolError(f"unexpected {frame.kind.value} push from worker", code="UNEXPECTED_KIND")
        reply = decode_response(frame.payload)
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(reply)
        else:
            logger.warning("reply on channel {} with no request in flight", frame.id)
        return reply

    async def run(self, message: Message) -> Message:
        """Send one request to the worker and wait for its reply."""
        async with self._lock:
            if self.connection is None:
                raise ProtocolError("no open channel", code="NO_CONNECTION")
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                frame = PushFrame(
                    id=self.connection.channel_id,
                    kind=MessageKind.BINARY,
                    payload=_request_payload(message),
                )
                await self._push(frame)
                return await self._waiter
            finally:
                self._waiter = None
