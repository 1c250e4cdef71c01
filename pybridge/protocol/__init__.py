"""Bridge wire protocol: envelope types and the msgpack codec."""

from .codec import (
    SUCCESS_TAGS,
    decode_frame,
    decode_request,
    decode_response,
    encode_frame,
    encode_request,
    encode_response,
    success_tag_for,
)
from .types import Err, Message, MessageKind, Ok, PushFrame, Request, Response, Run, RunScript

__all__ = [
    "SUCCESS_TAGS",
    "Err",
    "Message",
    "MessageKind",
    "Ok",
    "PushFrame",
    "Request",
    "Response",
    "Run",
    "RunScript",
    "decode_frame",
    "decode_request",
    "decode_response",
    "encode_frame",
    "encode_request",
    "encode_response",
    "success_tag_for",
]
