"""msgpack (de)serialization of bridge envelopes and push frames.

Enums are externally tagged: a unit variant is its bare tag string, a variant
with fields is a one-entry map from tag to its field array (or single value).

A success response has no tag of its own on the wire: it is named after the
request it answers, "RunScript" for structured calls and "Run" for legacy
source. Both decode to `Ok`.
"""

from __future__ import annotations

from typing import Any

import msgpack

from pybridge.protocol.types import Err, Message, MessageKind, Ok, PushFrame, Request, Response, Run, RunScript
from pybridge.utils.exceptions import DecodeError

PUSH_DATA_TAG = "WebSocketExtPushData"
SUCCESS_TAGS = ("RunScript", "Run")


def _pack(value: Any) -> bytes:
    return msgpack.packb(value, use_bin_type=True)


def _unpack(data: bytes, what: str) -> Any:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(f"{what}: expected bytes, got {type(data).__name__}", what=what)
    try:
        return msgpack.unpackb(bytes(data), raw=False, strict_map_key=True)
    except Exception as exc:
        raise DecodeError(f"{what}: invalid msgpack ({exc})", what=what) from exc


def _split_tag(value: Any, what: str) -> tuple[str, Any]:
    if isinstance(value, str):
        return value, None
    if isinstance(value, dict) and len(value) == 1:
        tag, content = next(iter(value.items()))
        if isinstance(tag, str):
            return tag, content
    raise DecodeError(f"{what}: expected a tagged variant, got {type(value).__name__}", what=what)


def _fields(content: Any, count: int, what: str) -> list[Any]:
    if not isinstance(content, list) or len(content) != count:
        raise DecodeError(f"{what}: expected {count} fields", what=what)
    return content


def _str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"{what}: expected str, got {type(value).__name__}", what=what)
    return value


def _bytes(value: Any, what: str) -> bytes:
    if isinstance(value, bytes):
        return value
    # serde encodes Vec<u8> as an array of ints unless told otherwise
    if isinstance(value, list) and all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b < 256 for b in value):
        return bytes(value)
    raise DecodeError(f"{what}: expected bytes, got {type(value).__name__}", what=what)


def _encode_body(body: Request | Response, success_tag: str = "RunScript") -> Any:
    if isinstance(body, RunScript):
        return {"RunScript": [body.package_id, body.requirements, body.script, body.func, list(body.args)]}
    if isinstance(body, Run):
        return "Run"
    if isinstance(body, Ok):
        return success_tag
    if isinstance(body, Err):
        return {"Err": body.error}
    raise TypeError(f"not an envelope body: {body!r}")


def _decode_request_body(value: Any) -> Request:
    tag, content = _split_tag(value, "request")
    if tag == "Run" and content is None:
        return Run()
    if tag == "RunScript":
        package_id, requirements, script, func, args = _fields(content, 5, "RunScript")
        if not isinstance(args, list):
            raise DecodeError("RunScript.args: expected array", what="RunScript")
        return RunScript(
            package_id=_str(package_id, "RunScript.package_id"),
            requirements=_str(requirements, "RunScript.requirements"),
            script=_str(script, "RunScript.script"),
            func=_str(func, "RunScript.func"),
            args=tuple(_str(arg, "RunScript.args") for arg in args),
        )
    raise DecodeError(f"unknown request tag: {tag!r}", what="request")


def _decode_response_body(value: Any) -> Response:
    tag, content = _split_tag(value, "response")
    if tag in SUCCESS_TAGS and content is None:
        return Ok()
    if tag == "Err":
        return Err(error=_str(content, "Err"))
    raise DecodeError(f"unknown response tag: {tag!r}", what="response")


def _encode_message(message: Message, success_tag: str = "RunScript") -> bytes:
    return _pack([_encode_body(message.body, success_tag), message.blob])


def _decode_message(data: bytes, what: str) -> tuple[Any, bytes | None]:
    body, blob = _fields(_unpack(data, what), 2, what)
    return body, None if blob is None else _bytes(blob, f"{what}.blob")


def encode_request(message: Message) -> bytes:
    """Encode a request message; the body must be RunScript or Run."""
    if not isinstance(message.body, (RunScript, Run)):
        raise TypeError(f"not a request body: {message.body!r}")
    return _encode_message(message)


def decode_request(data: bytes) -> Message:
    body, blob = _decode_message(data, "request message")
    return Message(body=_decode_request_body(body), blob=blob)


def encode_response(message: Message, success_tag: str = "RunScript") -> bytes:
    """Encode a response message; the body must be Ok or Err.

    `success_tag` names an Ok body on the wire and must be one of SUCCESS_TAGS.
    """
    if not isinstance(message.body, (Ok, Err)):
        raise TypeError(f"not a response body: {message.body!r}")
    if success_tag not in SUCCESS_TAGS:
        raise ValueError(f"unknown success tag: {success_tag!r}")
    return _encode_message(message, success_tag)


def success_tag_for(request: Request) -> str:
    """Wire tag of a successful reply to `request`."""
    return "Run" if isinstance(request, Run) else "RunScript"


def decode_response(data: bytes) -> Message:
    body, blob = _decode_message(data, "response message")
    return Message(body=_decode_response_body(body), blob=blob)


def encode_frame(frame: PushFrame) -> bytes:
    return _pack({PUSH_DATA_TAG: [frame.id, frame.kind.value, bytes(frame.payload)]})


def decode_frame(data: bytes) -> PushFrame:
    tag, content = _split_tag(_unpack(data, "push frame"), "push frame")
    if tag != PUSH_DATA_TAG:
        raise DecodeError(f"unexpected action: {tag!r}", what="push frame")
    channel_id, kind, payload = _fields(content, 3, "push frame")
    if not isinstance(channel_id, int) or isinstance(channel_id, bool) or channel_id < 0:
        raise DecodeError("push frame id: expected unsigned int", what="push frame")
    try:
        message_kind = MessageKind(_str(kind, "push frame kind"))
    except ValueError as exc:
        raise DecodeError(f"unknown message kind: {kind!r}", what="push frame") from exc
    return PushFrame(id=channel_id, kind=message_kind, payload=_bytes(payload, "push frame payload"))
