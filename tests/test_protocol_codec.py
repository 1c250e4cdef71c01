"""Tests for pybridge.protocol codec: envelopes and push frames."""

from __future__ import annotations

import msgpack
import pytest

from pybridge.protocol import (
    Err,
    Message,
    MessageKind,
    Ok,
    PushFrame,
    Run,
    RunScript,
    decode_frame,
    decode_request,
    decode_response,
    encode_frame,
    encode_request,
    encode_response,
    success_tag_for,
)
from pybridge.utils.exceptions import DecodeError, ProtocolError


REQUESTS = [
    Message(body=RunScript("app:pkg:node.os", "requirements.txt", "main.py", "greet", ("world",))),
    Message(body=RunScript("p", "", "s.py", "f", ())),
    Message(body=RunScript("p", "r.txt", "s.py", "f", ("a", "", "ünïcode"))),
    Message(body=Run(), blob=b"print('hello')"),
    Message(body=Run()),
]

RESPONSES = [
    Message(body=Ok(), blob=b"hello"),
    Message(body=Ok(), blob=b""),
    Message(body=Ok()),
    Message(body=Err(error="NameError: name 'x' is not defined")),
]


@pytest.mark.parametrize("message", REQUESTS)
def test_request_round_trip(message: Message) -> None:
    assert decode_request(encode_request(message)) == message


@pytest.mark.parametrize("message", RESPONSES)
def test_response_round_trip(message: Message) -> None:
    assert decode_response(encode_response(message)) == message


def test_frame_round_trip_for_each_kind() -> None:
    for kind in MessageKind:
        frame = PushFrame(id=7, kind=kind, payload=b"\x00\x01payload")
        assert decode_frame(encode_frame(frame)) == frame


def test_frame_layout_is_externally_tagged() -> None:
    raw = encode_frame(PushFrame(id=3, kind=MessageKind.BINARY, payload=b"abc"))
    assert msgpack.unpackb(raw, raw=False) == {"WebSocketExtPushData": [3, "Binary", b"abc"]}


def test_run_script_layout() -> None:
    raw = encode_request(Message(body=RunScript("p", "r.txt", "s.py", "f", ("x",))))
    assert msgpack.unpackb(raw, raw=False) == [{"RunScript": ["p", "r.txt", "s.py", "f", ["x"]]}, None]


def test_frame_payload_accepts_int_array() -> None:
    raw = msgpack.packb({"WebSocketExtPushData": [1, "Binary", [104, 105]]}, use_bin_type=True)
    assert decode_frame(raw).payload == b"hi"


def test_truncated_bytes_raise_decode_error() -> None:
    raw = encode_request(REQUESTS[0])
    for cut in range(len(raw)):
        with pytest.raises(DecodeError):
            decode_request(raw[:cut])


def test_truncated_frame_raises_decode_error() -> None:
    raw = encode_frame(PushFrame(id=1, kind=MessageKind.BINARY, payload=b"xyz"))
    for cut in range(len(raw)):
        with pytest.raises(DecodeError):
            decode_frame(raw[:cut])


@pytest.mark.parametrize(
    "value",
    [
        [{"Unknown": []}, None],
        ["RunScript", None],
        [{"RunScript": ["p", "r", "s", "f"]}, None],
        [{"RunScript": ["p", "r", "s", 5, []]}, None],
        [{"RunScript": ["p", "r", "s", "f", "not-a-list"]}, None],
        [{"RunScript": ["p", "r", "s", "f", [1]]}, None],
        ["Run", "text-blob"],
        ["Run"],
        {"Run": None},
        42,
    ],
)
def test_malformed_request_raises_decode_error(value) -> None:
    with pytest.raises(DecodeError):
        decode_request(msgpack.packb(value, use_bin_type=True))


def test_structured_request_is_not_a_response() -> None:
    raw = encode_request(Message(body=RunScript("p", "", "s.py", "f", ())))
    with pytest.raises(DecodeError):
        decode_response(raw)


def test_unknown_kind_and_action_raise_decode_error() -> None:
    with pytest.raises(DecodeError):
        decode_frame(msgpack.packb({"WebSocketExtPushData": [1, "Ping", b""]}, use_bin_type=True))
    with pytest.raises(DecodeError):
        decode_frame(msgpack.packb({"WebSocketPush": [1, "Binary", b""]}, use_bin_type=True))
    with pytest.raises(DecodeError):
        decode_frame(msgpack.packb({"WebSocketExtPushData": [-1, "Binary", b""]}, use_bin_type=True))


def test_trailing_bytes_raise_decode_error() -> None:
    raw = encode_response(RESPONSES[0]) + b"\x00"
    with pytest.raises(DecodeError):
        decode_response(raw)


def test_decode_error_is_protocol_error() -> None:
    with pytest.raises(ProtocolError):
        decode_frame(b"")


def test_encode_rejects_wrong_direction() -> None:
    with pytest.raises(TypeError):
        encode_request(Message(body=Ok()))
    with pytest.raises(TypeError):
        encode_response(Message(body=Run()))
    with pytest.raises(ValueError):
        encode_response(Message(body=Ok()), success_tag="Ok")


def test_success_is_tagged_after_the_request_it_answers() -> None:
    structured = encode_response(Message(body=Ok(), blob=b"out"), success_tag_for(RunScript("p", "", "s", "f", ())))
    legacy = encode_response(Message(body=Ok(), blob=b"out"), success_tag_for(Run()))
    assert msgpack.unpackb(structured, raw=False) == ["RunScript", b"out"]
    assert msgpack.unpackb(legacy, raw=False) == ["Run", b"out"]
    assert decode_response(structured) == decode_response(legacy) == Message(body=Ok(), blob=b"out")


def test_failure_layout() -> None:
    raw = encode_response(Message(body=Err(error="boom")))
    assert msgpack.unpackb(raw, raw=False) == [{"Err": "boom"}, None]
    with pytest.raises(DecodeError):
        decode_response(msgpack.packb(["Ok", None], use_bin_type=True))
