"""A logging handler that sends log records to Sentry as events."""

from __future__ import annotations

import dataclasses
import logging
import os
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sentrykit.event import (
    Event,
    ExceptionInfo,
    Frame,
    Level,
    Request,
    Stacktrace,
    User,
)
from sentrykit.scope import Scope

SDK_IDENTIFIER = "sentry.python.logging"

# Extra fields with these keys are turned into event data when their value
# has the expected type. The keys can be renamed with SentryHandler.set_key.
FIELD_REQUEST = "request"
FIELD_USER = "user"
FIELD_TRANSACTION = "transaction"
FIELD_FINGERPRINT = "fingerprint"
ERROR_KEY = "error"

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}

Fallback = Callable[[logging.LogRecord], None]
Capture = Callable[[Event], Optional[str]]


def _level_for(levelno: Optional[int]) -> Level:
    levelno = levelno or 0
    if levelno >= logging.CRITICAL:
        return Level.FATAL
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARNING
    if levelno >= logging.INFO:
        return Level.INFO
    return Level.DEBUG


def _discard(event: Event) -> Optional[str]:
    return uuid.uuid4().hex


def _unwrap(error: BaseException) -> Optional[BaseException]:
    if error.__cause__ is not None:
        return error.__cause__
    if not error.__suppress_context__:
        return error.__context__
    return None


def _extract_stacktrace(error: BaseException) -> Optional[Stacktrace]:
    if error.__traceback__ is None:
        return None
    frames = [
        Frame(
            function=summary.name,
            filename=os.path.basename(summary.filename),
            abs_path=summary.filename,
            lineno=summary.lineno or 0,
            context_line=summary.line or "",
            in_app=True,
        )
        for summary in traceback.extract_tb(error.__traceback__)
    ]
    return Stacktrace(frames=frames)


class SentryHandler(logging.Handler):
    """Sends log records to Sentry through ``capture``.

    ``levels`` limits the record levels that are sent; None sends all.
    ``capture`` receives the finished event and returns its ID, or None if the
    event was not sent. Configure the handler before logging through it.
    """

    def __init__(
        self,
        levels: Optional[Iterable[int]] = None,
        capture: Optional[Capture] = None,
        *,
        attach_stacktrace: bool = False,
        scope: Optional[Scope] = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.levels = None if levels is None else list(levels)
        self.capture = capture or _discard
        self.attach_stacktrace = attach_stacktrace
        self.scope = scope if scope is not None else Scope()
        self._fallback: Optional[Fallback] = None
        self._keys: dict[str, str] = {}

    def add_tags(self, tags: dict[str, str]) -> None:
        """Add tags to every event sent by this handler."""
        self.scope.set_tags(tags)

    def set_fallback(self, fallback: Optional[Fallback]) -> None:
        """Set a function called with the record when sending fails.

        If it returns, the failure counts as handled; if it raises, the error
        propagates from ``fire``.
        """
        self._fallback = fallback

    def set_key(self, old_key: str, new_key: str) -> None:
        """Use ``new_key`` in place of field key ``old_key``; "" removes the alias."""
        if not old_key:
            return
        if not new_key:
            self._keys.pop(old_key, None)
            return
        self._keys.pop(new_key, None)
        self._keys[old_key] = new_key

    def _key(self, key: str) -> str:
        return self._keys.get(key) or key

    def fire(self, record: logging.LogRecord) -> Optional[str]:
        """Send ``record``; return the event ID, or None if a fallback handled a failure.

        Raises RuntimeError when sending fails and no fallback is set.
        """
        event = self.entry_to_event(record)
        processed = self.scope.apply_to_event(event, None)
        event_id = self.capture(processed) if processed is not None else None
        if event_id is None:
            if self._fallback is not None:
                self._fallback(record)
                return None
            raise RuntimeError("failed to send to sentry")
        return event_id

    def emit(self, record: logging.LogRecord) -> None:
        if self.levels is not None and record.levelno not in self.levels:
            return
        try:
            self.fire(record)
        except Exception:
            self.handleError(record)

    def entry_to_event(self, record: logging.LogRecord) -> Event:
        """Build an event from a record, lifting known fields out of its extras."""
        data = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        event = Event(
            level=_level_for(record.levelno),
            extra=data,
            message=record.getMessage(),
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
        )

        key = self._key(FIELD_REQUEST)
        request = data.get(key)
        if isinstance(request, Request):
            del data[key]
            event.request = dataclasses.replace(request, body=None)

        error = data.get(ERROR_KEY)
        if isinstance(error, BaseException):
            del data[ERROR_KEY]
            event.exception = self.exceptions(error)
        elif isinstance(record.exc_info, tuple) and record.exc_info[1] is not None:
            event.exception = self.exceptions(record.exc_info[1])

        key = self._key(FIELD_USER)
        user = data.get(key)
        if isinstance(user, User):
            del data[key]
            event.user = user

        key = self._key(FIELD_TRANSACTION)
        transaction = data.get(key)
        if isinstance(transaction, str):
            del data[key]
            event.transaction = transaction

        key = self._key(FIELD_FINGERPRINT)
        fingerprint = data.get(key)
        if isinstance(fingerprint, list) and all(isinstance(f, str) for f in fingerprint):
            del data[key]
            event.fingerprint = fingerprint

        return event

    def exceptions(self, error: BaseException) -> list[ExceptionInfo]:
        """Describe ``error`` and, with stack traces enabled, its chain of causes.

        The innermost cause comes first; neighbours with equal messages are merged.
        """
        if not self.attach_stacktrace:
            return [ExceptionInfo(type="error", value=str(error))]

        result: list[ExceptionInfo] = []
        seen: set[int] = set()
        current: Optional[BaseException] = error
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            info = ExceptionInfo(
                type="error",
                value=str(current),
                stacktrace=_extract_stacktrace(current),
            )
            current = _unwrap(current)
            if result and info.value == result[-1].value:
                last = result[-1]
                if last.stacktrace is None:
                    last.stacktrace = info.stacktrace
                    continue
                if info.stacktrace is None:
                    continue
            result.append(info)
        result.reverse()
        return result