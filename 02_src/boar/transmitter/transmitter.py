"""Transmitter: ships one batch of records to the collector."""

import json
from typing import Callable, Protocol

import httpx

from ..config import AgentConfig
from ..logging_config import get_logger
from ..models import Batch

logger = get_logger(__name__)

FailureHook = Callable[[Batch, Exception], None]


class ITransmitter(Protocol):
    """Best-effort delivery of a batch. Never raises."""

    async def send(self, batch: Batch) -> None:
        """Serialize and POST the batch; log failures."""
        ...


def serialize_batch(batch: Batch) -> bytes:
    """Encode a batch as a JSON array of records."""
    return json.dumps([record.to_dict() for record in batch]).encode("utf-8")


class Transmitter:
    """
    Fire-and-forget HTTP transmitter.

    There is no retry and no backoff: a batch that fails to serialize or
    to reach the collector is logged, counted and discarded.
    """

    def __init__(
        self,
        config: AgentConfig,
        client: httpx.AsyncClient | None = None,
        on_failure: FailureHook | None = None,
    ):
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._on_failure = on_failure
        self.sent = 0
        self.failed = 0

    @property
    def url(self) -> str:
        return f"{self._config.endpoint}/requests"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.request_timeout)
        return self._client

    async def send(self, batch: Batch) -> None:
        """POST the batch to <endpoint>/requests."""
        if not self._config.transmit or not batch:
            logger.debug("Skipping send of %d record(s)", len(batch))
            return

        try:
            body = serialize_batch(batch)
        except (TypeError, ValueError) as e:
            self._fail(batch, e, "Error serializing batch")
            return

        try:
            response = await self._get_client().post(
                self.url,
                content=body,
                headers={
                    "Authorization": f"Token {self._config.token}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            self._fail(batch, e, "Error sending batch")
            return

        self.sent += 1
        logger.debug(
            "Sent %d record(s)",
            len(batch),
            extra={"context": {"status": response.status_code}},
        )

    def _fail(self, batch: Batch, error: Exception, message: str) -> None:
        self.failed += 1
        logger.error(
            f"{message}: {error}",
            extra={"context": {"records": len(batch), "url": self.url}},
        )
        if self._on_failure is None:
            return
        try:
            self._on_failure(batch, error)
        except Exception as hook_error:
            logger.error(f"Error in failure hook: {hook_error}", exc_info=True)

    async def close(self) -> None:
        """Close the HTTP client if this transmitter created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
