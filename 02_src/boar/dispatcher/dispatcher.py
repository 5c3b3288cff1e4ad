"""Batch dispatcher: drains the ingest queue and schedules transmissions."""

import asyncio
from typing import Protocol

from ..config import AgentConfig
from ..ingest import IngestQueue
from ..logging_config import get_logger
from ..models import Batch, Record
from ..transmitter import ITransmitter

logger = get_logger(__name__)


class IDispatcher(Protocol):
    """Owns the current batch and the flush timer."""

    async def start(self) -> None:
        """Start the background accumulation task."""
        ...

    async def stop(self) -> None:
        """Cancel the task, optionally flushing what is left."""
        ...


class Dispatcher:
    """
    Single background task moving records from the queue into batches.

    A batch is flushed when it grows past ``batch_size`` records or when the
    flush timer fires, whichever comes first. The timer ticks every
    ``flush_interval`` seconds regardless of size-triggered flushes and
    flushes even an empty batch. Each flush hands an immutable tuple to the
    transmitter in its own task, so a slow send never holds up accumulation.
    """

    def __init__(
        self,
        config: AgentConfig,
        queue: IngestQueue,
        transmitter: ITransmitter,
    ):
        self._config = config
        self._queue = queue
        self._transmitter = transmitter
        self._batch: list[Record] = []
        self._task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self.flushes = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Records in the current, not yet flushed batch."""
        return len(self._batch)

    async def start(self) -> None:
        """Start the background accumulation task."""
        if self.running:
            return
        logger.info(
            "Starting dispatcher",
            extra={
                "context": {
                    "batch_size": self._config.batch_size,
                    "flush_interval": self._config.flush_interval,
                    "transmit": self._config.transmit,
                }
            },
        )
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the task, optionally flushing what is left."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        # Let records handed over from other threads land before closing.
        await asyncio.sleep(0)
        self._queue.close()

        if self._config.flush_on_stop:
            self._batch.extend(self._queue.drain())
            if self._batch:
                self.flush()

        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("Dispatcher stopped")

    def flush(self) -> Batch:
        """Detach the current batch and schedule its transmission."""
        batch: Batch = tuple(self._batch)
        self._batch = []
        self.flushes += 1

        task = asyncio.create_task(self._transmitter.send(batch))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return batch

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._config.flush_interval
        next_tick = loop.time() + interval

        while True:
            try:
                timeout = next_tick - loop.time()
                if timeout <= 0:
                    self.flush()
                    # Missed ticks are skipped, not replayed.
                    next_tick += interval
                    if next_tick <= loop.time():
                        next_tick = loop.time() + interval
                    continue

                try:
                    record = await asyncio.wait_for(self._queue.get(), timeout)
                except asyncio.TimeoutError:
                    continue

                self._batch.append(record)
                if len(self._batch) > self._config.batch_size:
                    self.flush()

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Dispatcher error: {e}", exc_info=True)
