"""Record: the telemetry entry for one serviced request."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping

from ..headers import MultiValue, filter_headers, first_values
from .span import Span, elapsed_ms, utcnow

if TYPE_CHECKING:
    from ..config import AgentConfig
    from ..ingest import IngestQueue


@dataclass(eq=False)
class Record:
    """
    One top-level request, its metadata and the root of its span tree.

    Owned by the calling context until stop() enqueues it; the pipeline
    owns it afterwards and the caller must not touch it again.
    """

    method: str
    endpoint: str  # route template, e.g. /users/{user_id}
    uri: str
    hostname: str
    app: str = ""
    env: str = ""
    request_id: str = ""
    hop_count: str = "0"
    started_at: datetime = field(default_factory=utcnow)
    stopped_at: datetime | None = None
    duration: float | None = None  # ms
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    status: int = 0
    events: Span | None = None
    _queue: "IngestQueue | None" = field(default=None, init=False, repr=False)

    @classmethod
    def start(
        cls,
        queue: "IngestQueue",
        config: "AgentConfig",
        hostname: str,
        uri: str,
        endpoint: str,
        method: str,
        params: Mapping[str, MultiValue] | None = None,
    ) -> "Record":
        """Open a record stamped with the configured env and app name."""
        record = cls(
            method=method,
            endpoint=endpoint,
            uri=uri,
            hostname=hostname,
            app=config.app,
            env=config.env,
            params=first_values(params),
        )
        record._queue = queue
        return record

    def finalize(
        self,
        root: Span,
        request_id: str,
        hop_count: str,
        status: int,
        headers: Mapping[str, MultiValue] | None = None,
    ) -> None:
        """
        Fix identifiers, status, headers and duration.

        A root span that is still open is stopped here. Like Span.stop(),
        finalizing twice overwrites stopped_at and duration.
        """
        if root.stopped_at is None:
            root.stop()
        self.events = root
        self.request_id = request_id
        self.hop_count = hop_count
        self.status = status
        self.headers = filter_headers(headers)
        self.stopped_at = utcnow()
        self.duration = elapsed_ms(self.started_at, self.stopped_at)

    def stop(
        self,
        root: Span,
        request_id: str,
        hop_count: str,
        status: int,
        headers: Mapping[str, MultiValue] | None = None,
    ) -> None:
        """Finalize the record and hand it to the ingest queue."""
        self.finalize(root, request_id, hop_count, status, headers)
        if self._queue is None:
            raise RuntimeError("Record was not started through an agent queue")
        self._queue.enqueue(self)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation sent to the collector."""
        return {
            "request_id": self.request_id,
            "hop_count": self.hop_count,
            "duration": self.duration,
            "method": self.method,
            "endpoint": self.endpoint,
            "uri": self.uri,
            "hostname": self.hostname,
            "app": self.app,
            "start": self.started_at.isoformat(),
            "stop": self.stopped_at.isoformat() if self.stopped_at else None,
            "params": self.params,
            "headers": self.headers,
            "env": self.env,
            "events": self.events.to_dict() if self.events else None,
            "status": self.status,
        }


# Immutable, ordered group of records detached for one transmission.
Batch = tuple[Record, ...]
