"""Span: one named, timed node of a Record's trace tree."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

_ONE_MS = timedelta(milliseconds=1)


def elapsed_ms(started_at: datetime, stopped_at: datetime) -> float:
    """Milliseconds between two timestamps, rounded half-to-even to 4 places."""
    return round((stopped_at - started_at) / _ONE_MS, 4)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Span:
    """
    A timed operation with an ordered list of child spans.

    The parent owns its children; ``parent`` is a back-reference used only to
    attach new children and is never serialized. Appends to ``tree`` take the
    span's own lock, so sibling operations may be instrumented from several
    threads or tasks at once.
    """

    name: str
    description: str = ""
    started_at: datetime = field(default_factory=utcnow)
    stopped_at: datetime | None = None
    duration: float | None = None  # ms, set by stop()
    tree: list["Span"] = field(default_factory=list)
    parent: Optional["Span"] = field(default=None, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    @classmethod
    def create(
        cls, parent: Optional["Span"], name: str, description: str = ""
    ) -> "Span":
        """Allocate a span started now. Does not attach it to ``parent``."""
        return cls(name=name, description=description, parent=parent)

    def _child(self, name: str, description: str) -> "Span":
        child = Span.create(self, name, description)
        with self._lock:
            self.tree.append(child)
        return child

    def instrument(
        self, name: str, description: str, body: Callable[["Span"], T]
    ) -> T:
        """
        Time ``body`` as a child span named ``name``.

        ``body`` receives this span, not the new child, so anything it
        instruments lands beside the timed child under the same parent.
        """
        child = self._child(name, description)
        try:
            return body(self)
        finally:
            child.stop()

    async def ainstrument(
        self,
        name: str,
        description: str,
        body: Callable[["Span"], Awaitable[T]],
    ) -> T:
        """Async variant of instrument()."""
        child = self._child(name, description)
        try:
            return await body(self)
        finally:
            child.stop()

    def stop(self) -> None:
        """
        Finalize the span: set stopped_at and duration.

        Not idempotent. Calling stop() again overwrites both values with
        later ones, so the duration grows.
        """
        self.stopped_at = utcnow()
        self.duration = elapsed_ms(self.started_at, self.stopped_at)

    @property
    def children(self) -> list["Span"]:
        """Snapshot of the child list."""
        with self._lock:
            return list(self.tree)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation, children included."""
        return {
            "started_at": self.started_at.isoformat(),
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
            "duration": self.duration,
            "tree": [child.to_dict() for child in self.children],
            "name": self.name,
            "description": self.description,
        }
