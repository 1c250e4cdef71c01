"""Tests for pybridge.relay host-side channel tracking."""

from __future__ import annotations

import asyncio

import pytest

from pybridge.protocol import (
    Err,
    Message,
    MessageKind,
    Ok,
    PushFrame,
    Run,
    RunScript,
    decode_request,
    encode_response,
)
from pybridge.relay import Connection, HostRelay
from pybridge.utils.exceptions import ChannelClosedError, ProtocolError


class _Pushed:
    def __init__(self):
        self.frames: list[PushFrame] = []
        self.event = asyncio.Event()

    async def __call__(self, frame: PushFrame) -> None:
        self.frames.append(frame)
        self.event.set()

    async def next_binary(self) -> PushFrame:
        while True:
            for frame in self.frames:
                if frame.kind is MessageKind.BINARY:
                    self.frames.remove(frame)
                    return frame
            self.event.clear()
            await asyncio.wait_for(self.event.wait(), timeout=2)


def _reply(channel_id: int, message: Message) -> PushFrame:
    return PushFrame(id=channel_id, kind=MessageKind.BINARY, payload=encode_response(message))


@pytest.mark.asyncio
async def test_open_records_channel_and_greets_with_node_name():
    pushed = _Pushed()
    relay = HostRelay("node.os", pushed)
    await relay.on_open(7)
    assert relay.connection == Connection(channel_id=7)
    assert pushed.frames == [PushFrame(id=7, kind=MessageKind.TEXT, payload=b"node.os")]


@pytest.mark.asyncio
async def test_events_without_open_channel_are_rejected():
    relay = HostRelay("node.os", _Pushed())
    with pytest.raises(ProtocolError) as exc_info:
        relay.on_push(_reply(1, Message(body=Ok())))
    assert exc_info.value.code == "NO_CONNECTION"
    with pytest.raises(ProtocolError):
        relay.on_close(1)
    with pytest.raises(ProtocolError) as exc_info:
        await relay.run(Message(body=Run(), blob=b"print(1)"))
    assert exc_info.value.code == "NO_CONNECTION"


@pytest.mark.asyncio
async def test_mismatched_channel_id_leaves_state_unchanged():
    relay = HostRelay("node.os", _Pushed())
    await relay.on_open(7)
    assert relay.is_expected_channel_id(7)
    assert not relay.is_expected_channel_id(8)
    with pytest.raises(ProtocolError) as exc_info:
        relay.on_close(8)
    assert exc_info.value.code == "CHANNEL_MISMATCH"
    with pytest.raises(ProtocolError):
        relay.on_push(_reply(8, Message(body=Ok())))
    assert relay.connection == Connection(channel_id=7)


@pytest.mark.asyncio
async def test_run_pushes_request_and_returns_the_reply():
    pushed = _Pushed()
    relay = HostRelay("node.os", pushed)
    await relay.on_open(3)
    request = Message(body=RunScript("p", "", "s.py", "greet", ("world",)))
    task = asyncio.create_task(relay.run(request))

    frame = await pushed.next_binary()
    assert frame.id == 3
    assert decode_request(frame.payload) == request

    reply = relay.on_push(_reply(3, Message(body=Ok(), blob=b"Hello, world!")))
    assert reply.blob == b"Hello, world!"
    assert await asyncio.wait_for(task, timeout=2) == reply


@pytest.mark.asyncio
async def test_requests_are_sent_one_at_a_time():
    pushed = _Pushed()
    relay = HostRelay("node.os", pushed)
    await relay.on_open(3)
    first = asyncio.create_task(relay.run(Message(body=Run(), blob=b"a")))
    second = asyncio.create_task(relay.run(Message(body=Run(), blob=b"b")))

    frame = await pushed.next_binary()
    assert frame.payload == b"a"
    await asyncio.sleep(0.01)
    assert not any(f.kind is MessageKind.BINARY for f in pushed.frames)

    relay.on_push(_reply(3, Message(body=Ok(), blob=b"A")))
    frame = await pushed.next_binary()
    assert frame.payload == b"b"
    relay.on_push(_reply(3, Message(body=Err(error="NameError: b"))))

    assert (await first).blob == b"A"
    assert (await second).body == Err(error="NameError: b")


@pytest.mark.asyncio
async def test_close_fails_the_request_in_flight():
    pushed = _Pushed()
    relay = HostRelay("node.os", pushed)
    await relay.on_open(3)
    task = asyncio.create_task(relay.run(Message(body=Run(), blob=b"x")))
    await pushed.next_binary()
    relay.on_close(3)
    assert relay.connection is None
    with pytest.raises(ChannelClosedError):
        await asyncio.wait_for(task, timeout=2)


@pytest.mark.asyncio
async def test_unsolicited_reply_is_returned_without_a_waiter():
    relay = HostRelay("node.os", _Pushed())
    await relay.on_open(3)
    reply = relay.on_push(_reply(3, Message(body=Ok(), blob=b"late")))
    assert reply.blob == b"late"


@pytest.mark.asyncio
async def test_text_push_from_worker_is_rejected():
    relay = HostRelay("node.os", _Pushed())
    await relay.on_open(3)
    with pytest.raises(ProtocolError) as exc_info:
        relay.on_push(PushFrame(id=3, kind=MessageKind.TEXT, payload=b"hi"))
    assert exc_info.value.code == "UNEXPECTED_KIND"


@pytest.mark.asyncio
async def test_legacy_source_is_pushed_without_an_envelope():
    pushed = _Pushed()
    relay = HostRelay("node.os", pushed)
    await relay.on_open(3)
    task = asyncio.create_task(relay.run(Message(body=Run(), blob=b"print('hello')")))
    frame = await pushed.next_binary()
    assert frame == PushFrame(id=3, kind=MessageKind.BINARY, payload=b"print('hello')")
    relay.on_push(PushFrame(id=3, kind=MessageKind.BINARY, payload=encode_response(Message(body=Ok(), blob=b"hello\n"), "Run")))
    assert await asyncio.wait_for(task, timeout=2) == Message(body=Ok(), blob=b"hello\n")
