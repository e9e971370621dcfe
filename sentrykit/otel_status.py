"""Maps the status of a tracing span to a Sentry span status."""

from __future__ import annotations

import json
from enum import Enum, IntEnum
from typing import Any, Optional

HTTP_STATUS_CODE_KEY = "http.status_code"
RPC_GRPC_STATUS_CODE_KEY = "rpc.grpc.status_code"


class SpanStatus(str, Enum):
    """Status of a span as reported to Sentry."""

    UNDEFINED = ""
    OK = "ok"
    CANCELED = "cancelled"
    UNKNOWN = "unknown"
    INVALID_ARGUMENT = "invalid_argument"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    FAILED_PRECONDITION = "failed_precondition"
    ABORTED = "aborted"
    OUT_OF_RANGE = "out_of_range"
    UNIMPLEMENTED = "unimplemented"
    INTERNAL_ERROR = "internal_error"
    UNAVAILABLE = "unavailable"
    DATA_LOSS = "data_loss"
    UNAUTHENTICATED = "unauthenticated"


class StatusCode(IntEnum):
    """Status code of a tracing span."""

    UNSET = 0
    ERROR = 1
    OK = 2


# Some HTTP codes mapped to span statuses.
_HTTP_CODES: dict[str, SpanStatus] = {
    "400": SpanStatus.FAILED_PRECONDITION,
    "401": SpanStatus.UNAUTHENTICATED,
    "403": SpanStatus.PERMISSION_DENIED,
    "404": SpanStatus.NOT_FOUND,
    "409": SpanStatus.ABORTED,
    "429": SpanStatus.RESOURCE_EXHAUSTED,
    "499": SpanStatus.CANCELED,
    "500": SpanStatus.INTERNAL_ERROR,
    "501": SpanStatus.UNIMPLEMENTED,
    "503": SpanStatus.UNAVAILABLE,
    "504": SpanStatus.DEADLINE_EXCEEDED,
}

# gRPC status codes mapped to span statuses.
_GRPC_CODES: dict[str, SpanStatus] = {
    "1": SpanStatus.CANCELED,
    "2": SpanStatus.UNKNOWN,
    "3": SpanStatus.INVALID_ARGUMENT,
    "4": SpanStatus.DEADLINE_EXCEEDED,
    "5": SpanStatus.NOT_FOUND,
    "6": SpanStatus.ALREADY_EXISTS,
    "7": SpanStatus.PERMISSION_DENIED,
    "8": SpanStatus.RESOURCE_EXHAUSTED,
    "9": SpanStatus.FAILED_PRECONDITION,
    "10": SpanStatus.ABORTED,
    "11": SpanStatus.OUT_OF_RANGE,
    "12": SpanStatus.UNIMPLEMENTED,
    "13": SpanStatus.INTERNAL_ERROR,
    "14": SpanStatus.UNAVAILABLE,
    "15": SpanStatus.DATA_LOSS,
    "16": SpanStatus.UNAUTHENTICATED,
}


def _emit(value: Any) -> str:
    """Render an attribute value as text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return str(value)


def map_otel_status(span: Any) -> SpanStatus:
    """Return the Sentry status for a span with ``status`` and ``attributes``.

    HTTP and gRPC status-code attributes take precedence over the span's own
    status code.
    """
    attributes = getattr(span, "attributes", None) or {}
    for key, value in attributes.items():
        status: Optional[SpanStatus] = None
        if key == HTTP_STATUS_CODE_KEY:
            status = _HTTP_CODES.get(_emit(value))
            if status is not None:
                return status
        if key == RPC_GRPC_STATUS_CODE_KEY:
            status = _GRPC_CODES.get(_emit(value))
            if status is not None:
                return status

    code = getattr(span, "status", StatusCode.UNSET)
    if code == StatusCode.UNSET or code == StatusCode.OK:
        return SpanStatus.OK
    if code == StatusCode.ERROR:
        return SpanStatus.INTERNAL_ERROR
    return SpanStatus.UNKNOWN