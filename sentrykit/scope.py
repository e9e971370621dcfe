"""Scope: contextual data that is merged into every captured event."""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable, Optional

from sentrykit.event import (
    TRANSACTION_TYPE,
    Attachment,
    Breadcrumb,
    Event,
    EventHint,
    Level,
    Request,
    User,
)

logger = logging.getLogger("sentrykit")

MAX_REQUEST_BODY_BYTES = 10 * 1024
"""Largest request body that is kept and sent with an event."""

EventProcessor = Callable[[Event, Optional[EventHint]], Optional[Event]]


class LimitedBuffer:
    """A byte buffer holding at most ``capacity`` bytes; excess writes are dropped."""

    def __init__(self, capacity: int, initial: bytes = b"", overflow: bool = False):
        self.capacity = capacity
        self._data = bytearray(initial)
        self._overflow = overflow

    def write(self, data: bytes) -> int:
        """Store as much of ``data`` as fits and report all of it as written."""
        size = len(data)
        if self._overflow:
            return size
        left = max(self.capacity - len(self._data), 0)
        if size > left:
            self._overflow = True
            data = data[:left]
        self._data.extend(data)
        return size

    def getvalue(self) -> bytes:
        """Return the bytes stored so far."""
        return bytes(self._data)

    def overflow(self) -> bool:
        """Return True if any written bytes were discarded."""
        return self._overflow


class _TeeReader:
    """Reads from a stream while copying everything read into a buffer."""

    def __init__(self, stream: BinaryIO, sink: LimitedBuffer):
        self._stream = stream
        self._sink = sink

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if chunk:
            self._sink.write(chunk)
        return chunk

    def readline(self, size: int = -1) -> bytes:
        chunk = self._stream.readline(size)
        if chunk:
            self._sink.write(chunk)
        return chunk

    def __iter__(self):
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def close(self) -> None:
        self._stream.close()

    @property
    def closed(self) -> bool:
        return self._stream.closed


def clone_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a new context holding the same keys and values (a shallow copy)."""
    return dict(context)


class Scope:
    """Holds data locally relevant to events: breadcrumbs, tags, user and more."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._reset()

    def _reset(self) -> None:
        self.breadcrumbs: list[Breadcrumb] = []
        self.attachments: list[Attachment] = []
        self.user = User()
        self.tags: dict[str, str] = {}
        self.contexts: dict[str, dict[str, Any]] = {}
        self.extra: dict[str, Any] = {}
        self.fingerprint: list[str] = []
        self.level: Optional[Level] = None
        self.request: Optional[Request] = None
        self.request_body: Optional[LimitedBuffer] = None
        self.event_processors: list[EventProcessor] = []

    def add_breadcrumb(self, breadcrumb: Breadcrumb, limit: int) -> None:
        """Add a breadcrumb, dropping the oldest one once ``limit`` is exceeded."""
        if breadcrumb.timestamp is None:
            breadcrumb.timestamp = datetime.now(timezone.utc)
        with self._lock:
            self.breadcrumbs.append(breadcrumb)
            if len(self.breadcrumbs) > limit:
                self.breadcrumbs = self.breadcrumbs[1 : limit + 1]

    def clear_breadcrumbs(self) -> None:
        with self._lock:
            self.breadcrumbs = []

    def add_attachment(self, attachment: Attachment) -> None:
        with self._lock:
            self.attachments.append(attachment)

    def clear_attachments(self) -> None:
        with self._lock:
            self.attachments = []

    def set_user(self, user: User) -> None:
        with self._lock:
            self.user = user

    def set_request(self, request: Optional[Request]) -> None:
        """Set the request and buffer its body lazily as it is read."""
        with self._lock:
            self.request = request
            if request is None:
                return
            if (
                request.content_length is not None
                and request.content_length > MAX_REQUEST_BODY_BYTES
            ):
                return
            if request.body is None:
                return
            buffer = LimitedBuffer(MAX_REQUEST_BODY_BYTES)
            request.body = _TeeReader(request.body, buffer)  # type: ignore[assignment]
            self.request_body = buffer

    def set_request_body(self, body: bytes) -> None:
        """Set request body bytes that are already held in memory."""
        with self._lock:
            overflow = len(body) > MAX_REQUEST_BODY_BYTES
            if overflow:
                body = body[:MAX_REQUEST_BODY_BYTES]
            self.request_body = LimitedBuffer(
                MAX_REQUEST_BODY_BYTES, initial=body, overflow=overflow
            )

    def set_tag(self, key: str, value: str) -> None:
        with self._lock:
            self.tags[key] = value

    def set_tags(self, tags: dict[str, str]) -> None:
        with self._lock:
            self.tags.update(tags)

    def remove_tag(self, key: str) -> None:
        with self._lock:
            self.tags.pop(key, None)

    def set_context(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self.contexts[key] = value

    def set_contexts(self, contexts: dict[str, dict[str, Any]]) -> None:
        with self._lock:
            self.contexts.update(contexts)

    def remove_context(self, key: str) -> None:
        with self._lock:
            self.contexts.pop(key, None)

    def set_extra(self, key: str, value: Any) -> None:
        with self._lock:
            self.extra[key] = value

    def set_extras(self, extra: dict[str, Any]) -> None:
        with self._lock:
            self.extra.update(extra)

    def remove_extra(self, key: str) -> None:
        with self._lock:
            self.extra.pop(key, None)

    def set_fingerprint(self, fingerprint: list[str]) -> None:
        with self._lock:
            self.fingerprint = fingerprint

    def set_level(self, level: Optional[Level]) -> None:
        with self._lock:
            self.level = level

    def clone(self) -> Scope:
        """Return a copy of this scope that can be changed independently."""
        with self._lock:
            clone = Scope()
            clone.user = dataclasses.replace(self.user)
            clone.breadcrumbs = list(self.breadcrumbs)
            clone.attachments = list(self.attachments)
            clone.tags = dict(self.tags)
            clone.contexts = {k: clone_context(v) for k, v in self.contexts.items()}
            clone.extra = dict(self.extra)
            clone.fingerprint = list(self.fingerprint)
            clone.level = self.level
            clone.request = self.request
            clone.request_body = self.request_body
            clone.event_processors = list(self.event_processors)
            return clone

    def clear(self) -> None:
        """Remove all data from the scope."""
        with self._lock:
            self._reset()

    def add_event_processor(self, processor: EventProcessor) -> None:
        with self._lock:
            self.event_processors.append(processor)

    def apply_to_event(
        self, event: Event, hint: Optional[EventHint] = None
    ) -> Optional[Event]:
        """Merge the scope's data into ``event`` and run the event processors.

        Returns None if a processor dropped the event.
        """
        with self._lock:
            event.breadcrumbs.extend(self.breadcrumbs)
            event.attachments.extend(self.attachments)
            event.tags.update(self.tags)

            for key, value in self.contexts.items():
                if key == "trace" and event.type == TRANSACTION_TYPE:
                    # A transaction's own trace context must stay intact.
                    continue
                if key not in event.contexts:
                    event.contexts[key] = clone_context(value)

            event.extra.update(self.extra)

            if event.user.is_empty():
                event.user = self.user

            if not event.fingerprint:
                event.fingerprint.extend(self.fingerprint)

            if self.level is not None:
                event.level = self.level

            if event.request is None and self.request is not None:
                event.request = dataclasses.replace(self.request, body=None)
                # Partial bodies are never sent.
                if self.request_body is not None and not self.request_body.overflow():
                    event.request.data = self.request_body.getvalue().decode(
                        "utf-8", errors="replace"
                    )

            processors = list(self.event_processors)

        result: Optional[Event] = event
        for processor in processors:
            event_id = result.event_id
            result = processor(result, hint)
            if result is None:
                logger.info(
                    "Event dropped by one of the Scope EventProcessors: %s", event_id
                )
                return None
        return result