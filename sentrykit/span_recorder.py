"""Records the spans that make up a transaction."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

logger = logging.getLogger("sentrykit")

DEFAULT_MAX_SPANS = 1000


class SpanRecorder:
    """Stores a span tree; the first recorded span is its root. Thread-safe."""

    def __init__(self, max_spans: int = DEFAULT_MAX_SPANS) -> None:
        self.max_spans = max_spans
        self._lock = threading.Lock()
        self.spans: list[Any] = []
        self._overflow_logged = False

    def record(self, span: Any) -> None:
        """Store ``span`` unless the span limit has been reached."""
        with self._lock:
            if len(self.spans) >= self.max_spans:
                if not self._overflow_logged:
                    self._overflow_logged = True
                    root = self.spans[0] if self.spans else None
                    logger.warning(
                        "Too many spans: dropping spans from transaction with "
                        "TraceID=%s SpanID=%s limit=%d",
                        getattr(root, "trace_id", None),
                        getattr(root, "span_id", None),
                        self.max_spans,
                    )
                return
            self.spans.append(span)

    def root(self) -> Optional[Any]:
        """Return the first recorded span, or None."""
        with self._lock:
            return self.spans[0] if self.spans else None

    def children(self) -> list[Any]:
        """Return all recorded spans except the root."""
        with self._lock:
            return list(self.spans[1:])