"""Telemetry data models."""

from .record import Batch, Record
from .span import Span

__all__ = [
    "Batch",
    "Record",
    "Span",
]
