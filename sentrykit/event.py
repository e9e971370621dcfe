"""Data types that make up an event and the data attached to it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO, Optional

TRANSACTION_TYPE = "transaction"


class Level(str, Enum):
    """Severity of an event or breadcrumb."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


@dataclass
class User:
    """The user affected by an event."""

    id: str = ""
    email: str = ""
    ip_address: str = ""
    username: str = ""
    name: str = ""
    segment: str = ""
    data: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Return True when no field of the user is set."""
        return not any(
            (
                self.id,
                self.email,
                self.ip_address,
                self.username,
                self.name,
                self.segment,
                self.data,
            )
        )


@dataclass
class Breadcrumb:
    """A trail entry recorded before an event."""

    type: str = ""
    category: str = ""
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    level: Optional[Level] = None
    timestamp: Optional[datetime] = None


@dataclass
class Attachment:
    """A file sent along with an event."""

    filename: str = ""
    content_type: str = ""
    payload: bytes = b""


@dataclass
class Request:
    """An HTTP request associated with an event.

    ``body`` is the live request stream and ``content_length`` its announced
    size; neither takes part in comparisons.
    """

    url: str = ""
    method: str = ""
    data: str = ""
    query_string: str = ""
    cookies: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    content_length: Optional[int] = field(default=None, compare=False)
    body: Optional[BinaryIO] = field(default=None, compare=False, repr=False)


@dataclass
class Frame:
    """One frame of a stack trace."""

    function: str = ""
    module: str = ""
    filename: str = ""
    abs_path: str = ""
    lineno: int = 0
    colno: int = 0
    pre_context: list[str] = field(default_factory=list)
    context_line: str = ""
    post_context: list[str] = field(default_factory=list)
    in_app: bool = False


@dataclass
class Stacktrace:
    """A list of frames, outermost first."""

    frames: list[Frame] = field(default_factory=list)


@dataclass
class ExceptionInfo:
    """An exception captured in an event."""

    type: str = ""
    value: str = ""
    module: str = ""
    thread_id: str = ""
    stacktrace: Optional[Stacktrace] = None


@dataclass
class Event:
    """An error, message or transaction to be reported."""

    event_id: str = ""
    level: Optional[Level] = None
    message: str = ""
    timestamp: Optional[datetime] = None
    type: str = ""
    transaction: str = ""
    user: User = field(default_factory=User)
    tags: dict[str, str] = field(default_factory=dict)
    contexts: dict[str, dict[str, Any]] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    fingerprint: list[str] = field(default_factory=list)
    breadcrumbs: list[Breadcrumb] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    request: Optional[Request] = None
    exception: list[ExceptionInfo] = field(default_factory=list)


@dataclass
class EventHint:
    """Extra information handed to event processors."""

    data: Any = None
    event_id: str = ""
    original_exception: Optional[BaseException] = None
    recovered_exception: Any = None
    context: Any = None
    request: Any = None
    response: Any = None