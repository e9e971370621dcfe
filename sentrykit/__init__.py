"""Events, scopes, source context, span recording, profiling, span status mapping and a logging handler."""

__version__ = "0.24.1"

__all__ = [
    "event",
    "scope",
    "sourcereader",
    "span_recorder",
    "profile_sample",
    "profiler",
    "otel_status",
    "otel_attributes",
    "span_map",
    "logging_hook",
]