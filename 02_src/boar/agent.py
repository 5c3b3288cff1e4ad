"""Agent bootstrap and lifecycle management."""

from typing import Mapping, Protocol

import httpx

from .config import AgentConfig
from .dispatcher import Dispatcher
from .headers import MultiValue
from .ingest import IngestQueue
from .logging_config import get_logger
from .models import Record
from .transmitter import FailureHook, Transmitter

logger = get_logger(__name__)


class IAgent(Protocol):
    """Lifecycle handle for the telemetry pipeline."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order, flushing queued records."""
        ...

    def start_record(
        self,
        hostname: str,
        uri: str,
        endpoint: str,
        method: str,
        params: Mapping[str, MultiValue] | None = None,
    ) -> Record:
        """Open a Record that enqueues itself when stopped."""
        ...


class Agent:
    """Owns the ingest queue, dispatcher and transmitter."""

    def __init__(
        self,
        config: AgentConfig,
        client: httpx.AsyncClient | None = None,
        on_failure: FailureHook | None = None,
    ):
        self._config = config
        self._client = client
        self._on_failure = on_failure

        # Components (will be initialized in start())
        self._queue: IngestQueue | None = None
        self._transmitter: Transmitter | None = None
        self._dispatcher: Dispatcher | None = None

    @property
    def config(self) -> AgentConfig:
        return self._config

    async def start(self) -> None:
        """Initialize components in dependency order."""
        if self._dispatcher and self._dispatcher.running:
            return

        if not self._config.transmit:
            logger.info("No token configured, transmission disabled")

        # 1. Queue, bound to the running loop
        self._queue = IngestQueue(self._config.queue_size)

        # 2. Transmitter (configuration only)
        self._transmitter = Transmitter(
            self._config,
            client=self._client,
            on_failure=self._on_failure,
        )

        # 3. Dispatcher (depends on Queue + Transmitter)
        self._dispatcher = Dispatcher(self._config, self._queue, self._transmitter)
        await self._dispatcher.start()
        logger.info("Agent started for app %r in env %r", self._config.app, self._config.env)

    async def stop(self) -> None:
        """Shutdown in reverse order, flushing queued records."""
        if self._dispatcher:
            await self._dispatcher.stop()
        if self._transmitter:
            await self._transmitter.close()
        logger.info("Agent stopped")

    def start_record(
        self,
        hostname: str,
        uri: str,
        endpoint: str,
        method: str,
        params: Mapping[str, MultiValue] | None = None,
    ) -> Record:
        """Open a Record that enqueues itself when stopped."""
        return Record.start(
            self.queue,
            self._config,
            hostname=hostname,
            uri=uri,
            endpoint=endpoint,
            method=method,
            params=params,
        )

    @property
    def queue(self) -> IngestQueue:
        """Get ingest queue instance."""
        if not self._queue:
            raise RuntimeError("Agent not started")
        return self._queue

    @property
    def dispatcher(self) -> Dispatcher:
        """Get dispatcher instance."""
        if not self._dispatcher:
            raise RuntimeError("Agent not started")
        return self._dispatcher

    @property
    def transmitter(self) -> Transmitter:
        """Get transmitter instance."""
        if not self._transmitter:
            raise RuntimeError("Agent not started")
        return self._transmitter
