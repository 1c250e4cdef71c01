"""Envelope and frame models shared by the worker and the host relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class MessageKind(str, Enum):
    """Websocket message kind carried on every push frame."""

    TEXT = "Text"
    BINARY = "Binary"
    CLOSE = "Close"


@dataclass(slots=True, frozen=True)
class RunScript:
    """Call `func` from a script inside a package's `scripts` directory."""

    package_id: str
    requirements: str  # requirements.txt, relative to the package's scripts dir
    script: str
    func: str
    args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class Run:
    """Legacy direct-code request: the blob is the source to execute.

    A bare push frame whose payload is not a request envelope means the same
    thing, with the whole payload as the source.
    """


@dataclass(slots=True, frozen=True)
class Ok:
    """Success; the output travels in the message blob.

    On the wire it carries the tag of the request it answers.
    """


@dataclass(slots=True, frozen=True)
class Err:
    """Failure with a human-readable diagnostic."""

    error: str


Request = Union[RunScript, Run]
Response = Union[Ok, Err]


@dataclass(slots=True, frozen=True)
class Message:
    """A request or response body plus its side-channel blob."""

    body: Request | Response
    blob: bytes | None = None


@dataclass(slots=True, frozen=True)
class PushFrame:
    """Outer transport frame: channel id, message kind and opaque payload."""

    id: int
    kind: MessageKind
    payload: bytes = b""
