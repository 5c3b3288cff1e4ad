"""Boar: in-process request telemetry agent."""

from .agent import Agent, IAgent
from .config import AgentConfig
from .dispatcher import Dispatcher, IDispatcher
from .headers import canonical_header_key, filter_headers, first_values
from .ingest import IIngestQueue, IngestQueue
from .models import Batch, Record, Span
from .transmitter import ITransmitter, Transmitter

__all__ = [
    # Agent
    "Agent",
    "IAgent",
    "AgentConfig",
    # Models
    "Batch",
    "Record",
    "Span",
    # Components
    "IIngestQueue",
    "IngestQueue",
    "IDispatcher",
    "Dispatcher",
    "ITransmitter",
    "Transmitter",
    # Rules
    "canonical_header_key",
    "filter_headers",
    "first_values",
]
