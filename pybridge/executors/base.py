"""Abstract interface and error boundary for script executors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from loguru import logger

from pybridge.protocol.types import Err, Message, Ok, Request
from pybridge.utils.exceptions import format_execution_error


class ScriptExecutor(ABC):
    """
    One way of running code for a request: "run this payload, get bytes back".

    Subclasses implement `run`, raising on request-level failure. `execute` is the
    error boundary: it never raises, turning every failure into an Err response.
    """

    @property
    @abstractmethod
    def executor_id(self) -> str:
        """Unique executor identifier, e.g. 'native'."""
        pass

    @abstractmethod
    async def run(self, request: Request, blob: bytes | None) -> bytes:
        """Run a single invocation and return its output bytes."""
        pass

    async def execute(self, message: Message) -> Message:
        """Run the request in `message` and wrap the outcome as a response message."""
        try:
            output = await self.run(message.body, message.blob)
        except Exception as e:
            error = format_execution_error(e)
            logger.warning("{} executor failed: {}", self.executor_id, error)
            return Message(body=Err(error=error))
        return Message(body=Ok(), blob=output)
