"""Bounded ingest queue between request producers and the dispatcher."""

import asyncio
import threading
from typing import Protocol

from ..logging_config import get_logger
from ..models import Record

logger = get_logger(__name__)


class IIngestQueue(Protocol):
    """Many producers, one consumer (the dispatcher)."""

    def enqueue(self, record: Record) -> None:
        """Accept a finalized Record without blocking the caller."""
        ...

    async def get(self) -> Record:
        """Wait for the next Record."""
        ...


class IngestQueue:
    """
    asyncio.Queue bound to the dispatcher's event loop.

    enqueue() may be called from any thread. Calls from foreign threads are
    marshalled onto the loop with call_soon_threadsafe, so the queue itself
    is only ever touched from the loop thread. When the queue is full the
    incoming record is dropped and counted; producers never wait.

    A foreign-thread record is checked against the capacity twice: once
    before it is scheduled and again when the loop runs the hand-off. Records
    already scheduled wait in the loop's callback queue, so a burst from many
    threads can briefly exceed maxsize there before the second check drops
    the excess.

    After close() every enqueued record is dropped and counted.
    """

    def __init__(self, maxsize: int, loop: asyncio.AbstractEventLoop | None = None):
        if maxsize < 1:
            raise ValueError(f"maxsize must be positive, got {maxsize}")
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[Record] = asyncio.Queue(maxsize=maxsize)
        self._dropped = 0
        self._dropped_lock = threading.Lock()
        self._closed = False

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def dropped(self) -> int:
        """Records discarded: queue full, queue closed or loop closed."""
        with self._dropped_lock:
            return self._dropped

    def qsize(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting records; later enqueues are counted as dropped."""
        self._closed = True

    def enqueue(self, record: Record) -> None:
        """Queue a record, dropping it if the queue is saturated."""
        if self._closed:
            self._drop(record, reason="agent stopped")
            return

        if self._in_loop_thread():
            self._put(record)
            return

        if self._queue.full():
            self._drop(record, reason="queue full")
            return

        try:
            self._loop.call_soon_threadsafe(self._put, record)
        except RuntimeError:
            # Loop already closed: the process is shutting down.
            self._drop(record, reason="loop closed")

    def _in_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _put(self, record: Record) -> None:
        if self._closed:
            self._drop(record, reason="agent stopped")
            return
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            self._drop(record, reason="queue full")

    def _drop(self, record: Record, reason: str) -> None:
        with self._dropped_lock:
            self._dropped += 1
            dropped = self._dropped
        logger.warning(
            "Dropped record %s (%s)",
            record.request_id or record.uri,
            reason,
            extra={"context": {"dropped_total": dropped, "maxsize": self.maxsize}},
        )

    async def get(self) -> Record:
        """Wait for the next record."""
        return await self._queue.get()

    def get_nowait(self) -> Record:
        """Return a record or raise asyncio.QueueEmpty."""
        return self._queue.get_nowait()

    def drain(self) -> list[Record]:
        """Remove and return everything currently queued."""
        drained: list[Record] = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return drained
