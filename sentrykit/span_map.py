"""A thread-safe mapping from tracing span IDs to Sentry spans."""

from __future__ import annotations

import threading
from typing import Any, Hashable, Optional


class SpanMap:
    """Keeps track of unfinished spans by the ID of the span they mirror."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._spans: dict[Hashable, Any] = {}

    def get(self, span_id: Hashable) -> Optional[Any]:
        """Return the span stored for ``span_id``, or None."""
        with self._lock:
            return self._spans.get(span_id)

    def set(self, span_id: Hashable, span: Any) -> None:
        with self._lock:
            self._spans[span_id] = span

    def delete(self, span_id: Hashable) -> None:
        """Remove ``span_id``; missing IDs are ignored."""
        with self._lock:
            self._spans.pop(span_id, None)

    def clear(self) -> None:
        with self._lock:
            self._spans = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._spans)

    def __contains__(self, span_id: Hashable) -> bool:
        with self._lock:
            return span_id in self._spans


sentry_span_map = SpanMap()