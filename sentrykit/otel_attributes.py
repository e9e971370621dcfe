"""Derives operation, description and source of a span from its attributes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any
from urllib.parse import urlsplit

HTTP_METHOD_KEY = "http.method"
HTTP_TARGET_KEY = "http.target"
HTTP_ROUTE_KEY = "http.route"
HTTP_URL_KEY = "http.url"
DB_SYSTEM_KEY = "db.system"
DB_STATEMENT_KEY = "db.statement"
RPC_SYSTEM_KEY = "rpc.system"
MESSAGING_SYSTEM_KEY = "messaging.system"
FAAS_TRIGGER_KEY = "faas.trigger"


class TransactionSource(str, Enum):
    """How the name of a transaction was determined."""

    CUSTOM = "custom"
    URL = "url"
    ROUTE = "route"
    VIEW = "view"
    COMPONENT = "component"
    TASK = "task"


class SpanKind(IntEnum):
    """The role of a span in a trace."""

    UNSPECIFIED = 0
    INTERNAL = 1
    SERVER = 2
    CLIENT = 3
    PRODUCER = 4
    CONSUMER = 5


@dataclass
class SpanAttributes:
    """Operation, description and transaction source derived for a span."""

    op: str
    description: str
    source: TransactionSource


def _as_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_span_attributes(span: Any) -> SpanAttributes:
    """Describe a span having ``name``, ``kind`` and ``attributes``."""
    attributes = getattr(span, "attributes", None) or {}
    for key, value in attributes.items():
        if key == HTTP_METHOD_KEY:
            return _describe_http(span)
        if key == DB_SYSTEM_KEY:
            return _describe_db(span)
        if key == RPC_SYSTEM_KEY:
            return SpanAttributes("rpc", span.name, TransactionSource.ROUTE)
        if key == MESSAGING_SYSTEM_KEY:
            return SpanAttributes("messaging", span.name, TransactionSource.ROUTE)
        if key == FAAS_TRIGGER_KEY:
            return SpanAttributes(_as_string(value), span.name, TransactionSource.ROUTE)

    # An empty op is reported as "default".
    return SpanAttributes("", span.name, TransactionSource.CUSTOM)


def _describe_db(span: Any) -> SpanAttributes:
    description = span.name
    statement = (span.attributes or {}).get(DB_STATEMENT_KEY)
    if statement is not None:
        description = _as_string(statement)
    return SpanAttributes("db", description, TransactionSource.TASK)


def _describe_http(span: Any) -> SpanAttributes:
    kind = getattr(span, "kind", SpanKind.INTERNAL)
    if kind == SpanKind.CLIENT:
        op = "http.client"
    elif kind == SpanKind.SERVER:
        op = "http.server"
    else:
        op = "http"

    attributes = span.attributes or {}
    target = _as_string(attributes.get(HTTP_TARGET_KEY, ""))
    route = _as_string(attributes.get(HTTP_ROUTE_KEY, ""))
    method = _as_string(attributes.get(HTTP_METHOD_KEY, ""))
    url = _as_string(attributes.get(HTTP_URL_KEY, ""))

    path = ""
    if target:
        try:
            # Query and fragment are left out.
            path = urlsplit(target).path
        except ValueError:
            path = target
    elif route:
        path = route
    elif url:
        try:
            parts = urlsplit(url)
        except ValueError:
            pass
        else:
            host = parts.netloc.rpartition("@")[2]
            path = f"{parts.scheme}://{host}{parts.path}"

    if not path:
        return SpanAttributes(op, span.name, TransactionSource.CUSTOM)

    if route or path == "/":
        source = TransactionSource.ROUTE
    else:
        source = TransactionSource.URL
    return SpanAttributes(op, f"{method} {path}", source)