# sentrykit

Building blocks for capturing application errors and performance data as
structured events. It has no dependencies outside the standard library.

## What it contains

- `sentrykit.event`: event data types: `Event`, `Level`, `User`,
  `Breadcrumb`, `Attachment`, `Request`, `Frame`, `Stacktrace`,
  `ExceptionInfo` and `EventHint`.
- `sentrykit.scope`: `Scope`, which holds the context that belongs to an
  event: breadcrumbs, attachments, user, tags, contexts, extra data,
  fingerprint, level, request, request body and event processors.
  `Scope.apply_to_event` merges all of it into an `Event` and runs the event
  processors; it returns `None` when a processor drops the event.
  `Scope.clone` gives an independent copy. Request bodies are kept up to
  10 KiB (`MAX_REQUEST_BODY_BYTES`) and are left out of the event when
  larger.
- `sentrykit.sourcereader`: `calculate_context_lines` and `SourceReader`,
  which return the source lines around a 1-based line number and cache each
  file they read. Unreadable files give an empty list.
- `sentrykit.span_recorder`: `SpanRecorder`, which stores the spans of one
  transaction up to `max_spans` (1000 by default) and logs once when spans
  are dropped.
- `sentrykit.profile_sample`: the data types of a profile (`ProfileTrace`,
  `ProfileInfo` and their parts), with `to_dict` for their wire form.
- `sentrykit.profiler`: a sampling profiler. It records the stacks of all
  threads at 101 Hz into a ring buffer covering 30 seconds.
  `Profiler.get_slice` cuts one time range out of it as a `ProfileTrace`.
- `sentrykit.otel_status`: `map_otel_status`, which turns a span's
  `status` (a `StatusCode`) and its HTTP or gRPC status-code attributes into
  a `SpanStatus`.
- `sentrykit.otel_attributes`: `parse_span_attributes`, which derives an
  operation, a description and a `TransactionSource` from a span's `name`,
  `kind` (a `SpanKind`) and `attributes`.
- `sentrykit.span_map`: `SpanMap`, a thread-safe mapping from span IDs to
  spans.
- `sentrykit.logging_hook`: `SentryHandler`, a `logging.Handler` that turns
  log records into events.

## Installation

```
pip install sentrykit
```

## Scopes and events

```python
from sentrykit.event import Breadcrumb, Event, Level, User
from sentrykit.scope import Scope

scope = Scope()
scope.set_user(User(id="42", email="someone@example.com"))
scope.set_tag("component", "billing")
scope.add_breadcrumb(Breadcrumb(message="charge started"), 100)
scope.set_level(Level.WARNING)

event = scope.apply_to_event(Event(message="charge failed"), None)
print(event.tags, event.level)
```

## Profiling

Times given to the profiler are readings of `time.perf_counter_ns()`.

```python
import time
from sentrykit.profiler import start_profiling

start = time.perf_counter_ns()
profiler = start_profiling(start, None)
# ... the work to be measured ...
result = profiler.get_slice(start, time.perf_counter_ns())
profiler.stop(True)
if result is not None:
    print(len(result.trace.samples), "samples")
```

`start_profiling` runs the profiler on a background thread and returns
`None` if it fails while starting. `get_slice` returns `None` when the
requested range holds fewer than two sample buckets. A custom ticker can be
passed as the second argument: a callable taking the interval in seconds and
returning a `ProfilerTicker`.

## Logging

```python
import logging
from sentrykit.logging_hook import SentryHandler

sent = []

def capture(event):
    sent.append(event)
    return "event-id"

handler = SentryHandler([logging.ERROR], capture, attach_stacktrace=True)
log = logging.getLogger("app")
log.addHandler(handler)
log.error("payment failed", extra={"transaction": "checkout"})
```

Extra fields named `request` (a `Request`), `user` (a `User`),
`transaction` (a string), `fingerprint` (a list of strings) and `error` (an
exception) become the matching event data; the other extras stay in
`Event.extra`. `set_key` renames these field keys. When `capture` returns
`None`, `fire` calls the fallback set with `set_fallback`, or raises
`RuntimeError` if there is none.

## What it does not do

There is no client, hub or transport: nothing is sent over the network.
Events are handed to the `capture` callable you give `SentryHandler`, and
without one they are discarded. The span status and attribute helpers work
on any object with the attributes they read; there is no tracer, span
processor or header propagator.

## Running the tests

```
pip install sentrykit[test]
pytest
```