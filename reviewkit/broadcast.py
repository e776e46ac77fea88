"""Server-Sent-Events fan-out to connected observers."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

CONNECTED_MESSAGE = {"message": "Connected to review server"}

REVIEW_STARTED = "review_started"
REVIEW_COMPLETED = "review_completed"
REVIEW_ERROR = "review_error"
PR_REVIEW_STARTED = "pr_review_started"
PR_REVIEW_COMPLETED = "pr_review_completed"
PUSH_DETECTED = "push_detected"
ISSUE_CREATED = "issue_created"
PUSH_ANALYZED = "push_analyzed"
WEBHOOK_ERROR = "webhook_error"


def format_frame(payload: Any, event: Optional[str] = None) -> str:
    """Serialize one SSE frame; ``event`` is omitted for unnamed messages."""

    data = json.dumps(payload, ensure_ascii=False, default=str)
    if event is None:
        return f"data: {data}\n\n"
    return f"event: {event}\ndata: {data}\n\n"


class Sink(Protocol):
    def send(self, frame: str) -> None:
        """Deliver one frame; raising marks the sink as broken."""


class QueueSink:
    """Sink buffering frames in an ``asyncio.Queue`` for a streaming response."""

    def __init__(self) -> None:
        self.queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self.closed = False

    def send(self, frame: str) -> None:
        if self.closed:
            raise ConnectionError("sink is closed")
        self.queue.put_nowait(frame)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.queue.put_nowait(None)


@dataclass(frozen=True)
class ClientHandle:
    id: str
    sink: Sink


class BroadcastHub:
    """Registry of live sinks.

    ``connect``/``disconnect`` are the only mutations; ``broadcast`` iterates a
    snapshot taken under the lock, so a concurrent disconnect never changes the
    mapping mid-iteration.
    """

    def __init__(self) -> None:
        self._clients: Dict[str, Sink] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def connect(self, sink: Optional[Sink] = None) -> ClientHandle:
        handle = ClientHandle(id=uuid.uuid4().hex, sink=sink if sink is not None else QueueSink())
        handle.sink.send(format_frame(CONNECTED_MESSAGE))
        with self._lock:
            self._clients[handle.id] = handle.sink
        logger.info("Client %s connected (%d total)", handle.id, len(self))
        return handle

    def disconnect(self, handle: ClientHandle) -> bool:
        """Remove ``handle``; returns False when it was already gone."""

        with self._lock:
            removed = self._clients.pop(handle.id, None)
        if removed is None:
            return False
        if isinstance(removed, QueueSink):
            removed.close()
        logger.info("Client %s disconnected", handle.id)
        return True

    def broadcast(self, event: str, payload: Any) -> int:
        """Send ``event`` to every sink and return the number of deliveries."""

        frame = format_frame(payload, event)
        with self._lock:
            clients = list(self._clients.items())
        delivered = 0
        for client_id, sink in clients:
            try:
                sink.send(frame)
            except Exception:
                logger.warning("Dropping client %s after a failed write", client_id, exc_info=True)
                self.disconnect(ClientHandle(client_id, sink))
                continue
            delivered += 1
        logger.debug("Broadcast %s to %d client(s)", event, delivered)
        return delivered

    async def stream(self, handle: ClientHandle) -> AsyncIterator[str]:
        """Yield the frames queued for ``handle`` until it is disconnected."""

        sink = handle.sink
        if not isinstance(sink, QueueSink):
            raise TypeError("only queue-backed clients can be streamed")
        try:
            while True:
                frame = await sink.queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self.disconnect(handle)
