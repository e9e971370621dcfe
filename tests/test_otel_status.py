from dataclasses import dataclass, field
from typing import Any

import pytest

from sentrykit.otel_status import (
    HTTP_STATUS_CODE_KEY,
    RPC_GRPC_STATUS_CODE_KEY,
    SpanStatus,
    StatusCode,
    map_otel_status,
)


@dataclass
class _Span:
    status: Any = StatusCode.UNSET
    attributes: dict = field(default_factory=dict)


@pytest.mark.parametrize(
    "code, want",
    [
        (StatusCode.OK, SpanStatus.OK),
        (StatusCode.UNSET, SpanStatus.OK),
        (StatusCode.ERROR, SpanStatus.INTERNAL_ERROR),
        (1337, SpanStatus.UNKNOWN),
    ],
)
def test_status_without_attributes(code, want):
    assert map_otel_status(_Span(status=code)) == want


_HTTP_CASES = [
    (400, SpanStatus.FAILED_PRECONDITION),
    (401, SpanStatus.UNAUTHENTICATED),
    (403, SpanStatus.PERMISSION_DENIED),
    (404, SpanStatus.NOT_FOUND),
    (409, SpanStatus.ABORTED),
    (429, SpanStatus.RESOURCE_EXHAUSTED),
    (499, SpanStatus.CANCELED),
    (500, SpanStatus.INTERNAL_ERROR),
    (501, SpanStatus.UNIMPLEMENTED),
    (503, SpanStatus.UNAVAILABLE),
    (504, SpanStatus.DEADLINE_EXCEEDED),
]

_GRPC_CASES = [
    (1, SpanStatus.CANCELED),
    (2, SpanStatus.UNKNOWN),
    (3, SpanStatus.INVALID_ARGUMENT),
    (4, SpanStatus.DEADLINE_EXCEEDED),
    (5, SpanStatus.NOT_FOUND),
    (6, SpanStatus.ALREADY_EXISTS),
    (7, SpanStatus.PERMISSION_DENIED),
    (8, SpanStatus.RESOURCE_EXHAUSTED),
    (9, SpanStatus.FAILED_PRECONDITION),
    (10, SpanStatus.ABORTED),
    (11, SpanStatus.OUT_OF_RANGE),
    (12, SpanStatus.UNIMPLEMENTED),
    (13, SpanStatus.INTERNAL_ERROR),
    (14, SpanStatus.UNAVAILABLE),
    (15, SpanStatus.DATA_LOSS),
    (16, SpanStatus.UNAUTHENTICATED),
]


@pytest.mark.parametrize("as_text", [False, True])
@pytest.mark.parametrize("code, want", _HTTP_CASES)
def test_http_status_code(code, want, as_text):
    value = str(code) if as_text else code
    span = _Span(attributes={HTTP_STATUS_CODE_KEY: value})
    assert map_otel_status(span) == want


@pytest.mark.parametrize("as_text", [False, True])
@pytest.mark.parametrize("code, want", _GRPC_CASES)
def test_grpc_status_code(code, want, as_text):
    value = str(code) if as_text else code
    span = _Span(attributes={RPC_GRPC_STATUS_CODE_KEY: value})
    assert map_otel_status(span) == want


def test_unmapped_http_code_falls_back_to_status():
    span = _Span(status=StatusCode.ERROR, attributes={HTTP_STATUS_CODE_KEY: 200})
    assert map_otel_status(span) == SpanStatus.INTERNAL_ERROR


def test_attribute_wins_over_status():
    span = _Span(status=StatusCode.OK, attributes={HTTP_STATUS_CODE_KEY: 404})
    assert map_otel_status(span) == SpanStatus.NOT_FOUND


def test_wire_values():
    assert map_otel_status(_Span(status=StatusCode.OK)).value == "ok"
    assert map_otel_status(_Span(status=StatusCode.ERROR)).value == "internal_error"