import asyncio
import json

import pytest

from reviewkit.broadcast import CONNECTED_MESSAGE, BroadcastHub, format_frame


class RecordingSink:
    def __init__(self):
        self.frames = []

    def send(self, frame):
        self.frames.append(frame)


class BrokenSink(RecordingSink):
    def __init__(self):
        super().__init__()
        self.broken = False

    def send(self, frame):
        if self.broken:
            raise BrokenPipeError("client went away")
        super().send(frame)


def test_format_frame():
    assert format_frame({"a": 1}) == 'data: {"a": 1}\n\n'
    assert format_frame({"a": 1}, "review_started") == 'event: review_started\ndata: {"a": 1}\n\n'


def test_connect_sends_acknowledgement():
    hub = BroadcastHub()
    sink = RecordingSink()

    hub.connect(sink)

    assert sink.frames == [f"data: {json.dumps(CONNECTED_MESSAGE)}\n\n"]
    assert len(hub) == 1


def test_broadcast_reaches_every_client():
    hub = BroadcastHub()
    sinks = [RecordingSink() for _ in range(3)]
    for sink in sinks:
        hub.connect(sink)

    delivered = hub.broadcast("review_started", {"file": "app.js"})

    assert delivered == 3
    for sink in sinks:
        assert sink.frames[-1] == 'event: review_started\ndata: {"file": "app.js"}\n\n'


def test_disconnect_is_idempotent():
    hub = BroadcastHub()
    kept, dropped = RecordingSink(), RecordingSink()
    hub.connect(kept)
    handle = hub.connect(dropped)

    assert hub.disconnect(handle) is True
    assert hub.disconnect(handle) is False
    assert hub.broadcast("push_detected", {}) == 1
    assert len(dropped.frames) == 1
    assert len(kept.frames) == 2


def test_failing_client_is_evicted():
    hub = BroadcastHub()
    healthy, broken = RecordingSink(), BrokenSink()
    hub.connect(healthy)
    hub.connect(broken)
    broken.broken = True

    assert hub.broadcast("review_completed", {"ok": True}) == 1
    assert len(hub) == 1
    assert hub.broadcast("review_completed", {"ok": True}) == 1
    assert len(healthy.frames) == 3


def test_stream_yields_frames_until_disconnect():
    hub = BroadcastHub()

    async def consume():
        handle = hub.connect()
        hub.broadcast("issue_created", {"number": 7})
        hub.disconnect(handle)
        return [frame async for frame in hub.stream(handle)]

    frames = asyncio.run(consume())

    assert frames == [
        'data: {"message": "Connected to review server"}\n\n',
        'event: issue_created\ndata: {"number": 7}\n\n',
    ]
    assert len(hub) == 0


def test_client_failing_acknowledgement_is_not_registered():
    hub = BroadcastHub()
    sink = BrokenSink()
    sink.broken = True

    with pytest.raises(BrokenPipeError):
        hub.connect(sink)

    assert len(hub) == 0
    assert hub.broadcast("review_started", {}) == 0
