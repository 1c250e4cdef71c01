"""Route inbound push frames to an executor and queue the encoded reply."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

from loguru import logger

from pybridge.executors.base import ScriptExecutor
from pybridge.protocol.codec import decode_frame, decode_request, encode_frame, encode_response, success_tag_for
from pybridge.protocol.types import Err, Message, MessageKind, PushFrame, Run
from pybridge.utils.exceptions import ChannelClosedError, DecodeError, ProtocolError, format_execution_error


class Dispatcher:
    """
    Decode one frame, pick the executor registered for its request type and
    spawn the invocation as an independent task. A payload that is not a
    request envelope is legacy raw source and goes to the `Run` executor.

    `dispatch` never waits for the invocation. Finished tasks put their reply on
    the bounded outbound queue; when it is full the finishing task waits there,
    never the caller.
    """

    def __init__(self, executors: Mapping[type, ScriptExecutor], outbound: asyncio.Queue[bytes]):
        self._executors = dict(executors)
        self._outbound = outbound
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of invocations spawned and not yet queued."""
        return len(self._pending)

    def dispatch(self, raw: bytes) -> asyncio.Task[None]:
        """Hand one binary channel message off. Raises ProtocolError on a bad frame."""
        frame = decode_frame(raw)
        if frame.kind is MessageKind.CLOSE:
            raise ChannelClosedError(f"close frame received for channel {frame.id}")
        if frame.kind is not MessageKind.BINARY:
            raise ProtocolError(
                f"unexpected {frame.kind.value} push frame; only Binary is accepted",
                code="UNEXPECTED_KIND",
                details={"channel_id": frame.id},
            )
        message = self._request_message(frame)
        executor = self._executors.get(type(message.body))
        if executor is None:
            raise ProtocolError(f"no executor for {type(message.body).__name__} requests")
        logger.debug("dispatching {} to {} executor", type(message.body).__name__, executor.executor_id)
        task = asyncio.create_task(self._execute(frame, executor, message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    def _request_message(frame: PushFrame) -> Message:
        """Structured envelope, or legacy raw source when the payload is not one."""
        try:
            return decode_request(frame.payload)
        except DecodeError:
            logger.debug("channel {}: payload is not an envelope, running it as source", frame.id)
            return Message(body=Run(), blob=frame.payload)

    async def _execute(self, frame: PushFrame, executor: ScriptExecutor, message: Message) -> None:
        try:
            reply = await executor.execute(message)
        except Exception as e:
            logger.exception("{} executor escaped its error boundary", executor.executor_id)
            reply = Message(body=Err(error=format_execution_error(e)))
        payload = encode_response(reply, success_tag_for(message.body))
        await self._outbound.put(encode_frame(PushFrame(id=frame.id, kind=frame.kind, payload=payload)))

    async def drain(self) -> None:
        """Wait until every spawned invocation has queued its reply."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
