"""Integration tests for the Agent pipeline."""

import asyncio
from dataclasses import replace

import httpx
import pytest

from boar.agent import Agent
from boar.models import Span


def record_request(agent, request_id, status=200):
    """Open and stop one record through the agent."""
    record = agent.start_record("api-1", "/users?q=a", "/users", "GET", {"q": ["a"]})
    root = Span.create(None, "GET", "/users")
    root.instrument("db-query", "SELECT 1", lambda span: None)
    record.stop(root, request_id, "0", status, {"Content-Type": "application/json"})


class TestAgentLifecycle:
    """Tests for Agent start/stop."""

    def test_start_record_before_start(self, config):
        """Test the agent refuses records before start()."""
        agent = Agent(config)

        with pytest.raises(RuntimeError):
            agent.start_record("api-1", "/", "/", "GET")

    @pytest.mark.asyncio
    async def test_components_available_after_start(self, agent, config):
        """Test components are wired from the configuration."""
        assert agent.dispatcher.running
        assert agent.queue.maxsize == config.queue_size
        assert agent.transmitter.url == "http://collector.test/requests"

    @pytest.mark.asyncio
    async def test_stop_flushes_pending(self, config, client, collector):
        """Test records still pending are delivered on stop()."""
        agent = Agent(replace(config, batch_size=50, flush_interval=10), client=client)
        await agent.start()

        record_request(agent, "req-0")
        record_request(agent, "req-1")
        await agent.stop()

        assert [r["request_id"] for r in collector.records] == ["req-0", "req-1"]

    @pytest.mark.asyncio
    async def test_record_stopped_after_shutdown_is_counted(
        self, config, client, collector
    ):
        """Test a record finished after stop() is counted as dropped."""
        agent = Agent(config, client=client)
        await agent.start()
        record = agent.start_record("api-1", "/users", "/users", "GET")

        await agent.stop()
        record.stop(Span.create(None, "GET"), "late", "0", 200, {})
        await asyncio.sleep(0.01)

        assert agent.queue.closed
        assert agent.queue.qsize() == 0
        assert agent.queue.dropped == 1
        assert collector.requests == []


class TestAgentPipeline:
    """End-to-end tests from record to collector."""

    @pytest.mark.asyncio
    async def test_records_reach_collector(self, agent, collector):
        """Test records are batched and posted."""
        for i in range(7):
            record_request(agent, f"req-{i}")
            await asyncio.sleep(0.002)
        await asyncio.sleep(0.12)

        received = collector.records
        assert sorted(r["request_id"] for r in received) == sorted(
            f"req-{i}" for i in range(7)
        )
        first = received[0]
        assert first["app"] == "demo"
        assert first["env"] == "test"
        assert first["params"] == {"q": "a"}
        assert first["headers"] == {"Content-Type": "application/json"}
        assert first["events"]["tree"][0]["name"] == "db-query"
        assert all(
            request.headers["Authorization"] == "Token test-token"
            for request in collector.requests
        )

    @pytest.mark.asyncio
    async def test_records_from_threads(self, agent, collector):
        """Test producers on worker threads feed the same pipeline."""
        loop = asyncio.get_running_loop()

        def produce(offset):
            for i in range(3):
                record_request(agent, f"req-{offset}-{i}")

        await asyncio.gather(
            *[loop.run_in_executor(None, produce, n) for n in range(2)]
        )
        await asyncio.sleep(0.12)

        ids = [r["request_id"] for r in collector.records]
        assert len(ids) == 6
        assert len(set(ids)) == 6

    @pytest.mark.asyncio
    async def test_disabled_transmission(self, disabled_config, collector, client):
        """Without a token nothing is sent but records keep flowing."""
        agent = Agent(disabled_config, client=client)
        await agent.start()

        for i in range(100):
            record_request(agent, f"req-{i}")
            await asyncio.sleep(0)
        # Two timer ticks
        await asyncio.sleep(disabled_config.flush_interval * 2.5)

        assert collector.requests == []
        assert agent.dispatcher.flushes >= 2
        assert agent.transmitter.failed == 0
        assert agent.queue.dropped == 0

        flushes = agent.dispatcher.flushes
        record_request(agent, "late")
        await asyncio.sleep(disabled_config.flush_interval * 2.5)
        assert agent.dispatcher.running
        assert agent.dispatcher.flushes > flushes
        assert agent.dispatcher.pending == 0
        assert agent.queue.qsize() == 0
        assert agent.queue.dropped == 0

        await agent.stop()
        assert collector.requests == []

    @pytest.mark.asyncio
    async def test_failure_hook(self, config, make_record):
        """Test collector failures reach the hook and not the caller."""
        failures = []
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        ) as client:
            agent = Agent(
                config,
                client=client,
                on_failure=lambda batch, error: failures.append((batch, error)),
            )
            await agent.start()

            record_request(agent, "req-0")
            await asyncio.sleep(0.12)
            await agent.stop()

        assert len(failures) == 1
        assert failures[0][0][0].request_id == "req-0"
        assert agent.transmitter.failed == 1
