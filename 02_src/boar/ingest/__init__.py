"""Ingest queue module."""

from .ingest_queue import IIngestQueue, IngestQueue

__all__ = ["IIngestQueue", "IngestQueue"]
