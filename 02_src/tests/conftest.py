"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class Collector:
    """In-memory stand-in for the remote collector."""

    def __init__(self, status_code: int = 202):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    @property
    def records(self) -> list[dict]:
        """All records received, in arrival order."""
        received = []
        for request in self.requests:
            received.extend(json.loads(request.content))
        return received


@pytest.fixture
def config():
    """Transmitting configuration with a short flush interval."""
    from boar.config import AgentConfig

    return AgentConfig(
        token="test-token",
        env="test",
        app="demo",
        endpoint="http://collector.test",
        batch_size=3,
        flush_interval=0.05,
    )


@pytest.fixture
def disabled_config():
    """Configuration without a token: transmission disabled."""
    from boar.config import AgentConfig

    return AgentConfig(env="test", app="demo", batch_size=10, flush_interval=0.05)


@pytest.fixture
def collector():
    """Collector accepting every batch."""
    return Collector()


@pytest_asyncio.fixture
async def client(collector):
    """httpx client routed to the in-memory collector."""
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(collector.handler)
    ) as c:
        yield c


@pytest_asyncio.fixture
async def agent(config, client):
    """Started agent delivering to the in-memory collector."""
    from boar.agent import Agent

    ag = Agent(config, client=client)
    await ag.start()
    yield ag
    await ag.stop()


@pytest.fixture
def make_record():
    """Factory for finalized records that are not enqueued."""
    from boar.models import Record, Span

    def _make(request_id: str = "req-1", status: int = 200, **fields):
        fields.setdefault("method", "GET")
        fields.setdefault("endpoint", "/users")
        fields.setdefault("uri", "/users")
        fields.setdefault("hostname", "localhost")
        record = Record(**fields)
        record.finalize(Span.create(None, "root"), request_id, "0", status, {})
        return record

    return _make
