"""A sampling profiler that records the stacks of all threads continuously.

Times are nanosecond readings of ``time.perf_counter_ns()``.
"""

from __future__ import annotations

import abc
import functools
import inspect
import logging
import os
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple, Optional

from sentrykit.event import Frame
from sentrykit.profile_sample import ProfileSample, ProfileThreadMetadata, ProfileTrace

logger = logging.getLogger("sentrykit")

SAMPLING_RATE_HZ = 101  # not 100, to avoid sampling in lockstep with other periodic work
SAMPLING_INTERVAL_NS = 1_000_000_000 // SAMPLING_RATE_HZ
RUNTIME_LIMIT_SECONDS = 30
RING_BUFFER_SIZE = RUNTIME_LIMIT_SECONDS * SAMPLING_RATE_HZ

# Test hook: below 0 the profiler fails at startup; above 0 it fails on the
# tick with that number (counting down to 1).
_test_profiler_panic = 0


class _RawFrame(NamedTuple):
    module: str
    function: str
    filename: str
    lineno: int


Records = list[tuple[int, list[_RawFrame]]]


@dataclass
class _SamplesBucket:
    relative_ns: int
    stack_ids: list[int] = field(default_factory=list)
    thread_ids: list[int] = field(default_factory=list)


@dataclass
class ProfilerResult:
    """A slice of profiled data and the thread that asked for it."""

    caller_thread_id: int
    trace: ProfileTrace


class ProfilerTicker(abc.ABC):
    """Delivers ticks at which the profiler collects samples."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Turn the ticker off; pending and later waits return False."""

    @abc.abstractmethod
    def wait(self) -> bool:
        """Block until the next tick; return False if the ticker was stopped."""

    def ticked(self) -> None:
        """Called by the profiler after a tick has been processed."""


class TimeTicker(ProfilerTicker):
    """A ticker driven by the clock, dropping ticks the caller falls behind on."""

    def __init__(self, interval: float):
        self.interval = interval
        self._stopped = threading.Event()
        self._next = time.monotonic() + interval

    def stop(self) -> None:
        self._stopped.set()

    def wait(self) -> bool:
        remaining = self._next - time.monotonic()
        if remaining > 0:
            if self._stopped.wait(remaining):
                return False
        elif self._stopped.is_set():
            return False
        now = time.monotonic()
        self._next += self.interval
        if self._next <= now:
            self._next = now + self.interval
        return True

    def ticked(self) -> None:
        pass


TickerFactory = Callable[[float], ProfilerTicker]


def current_thread_id() -> int:
    """Return the identifier of the calling thread as used in samples."""
    return threading.get_ident()


@functools.lru_cache(maxsize=4096)
def _module_name(filename: str) -> str:
    return inspect.getmodulename(filename) or ""


def _capture_stack(frame: Any) -> list[_RawFrame]:
    stack = []
    while frame is not None:
        code = frame.f_code
        stack.append(
            _RawFrame(
                _module_name(code.co_filename),
                getattr(code, "co_qualname", code.co_name),
                code.co_filename,
                frame.f_lineno or code.co_firstlineno,
            )
        )
        frame = frame.f_back
    return stack


class Profiler:
    """Collects samples into a ring buffer holding about 30 seconds of data."""

    def __init__(self, start_ns: int, ticker_factory: Optional[TickerFactory] = None):
        self.start_ns = start_ns
        self._ticker_factory: TickerFactory = ticker_factory or TimeTicker
        self._lock = threading.Lock()

        self.stack_indexes: dict[tuple[int, ...], int] = {}
        self.stacks: list[list[int]] = []
        self.new_stacks: list[list[int]] = []

        self.frame_indexes: dict[_RawFrame, int] = {}
        self.frames: list[Frame] = []
        self.new_frames: list[Frame] = []

        self.buckets: deque[_SamplesBucket] = deque(maxlen=RING_BUFFER_SIZE)

        self._test_panic = 0
        self._ticker: Optional[ProfilerTicker] = None
        self._thread: Optional[threading.Thread] = None
        self._started_ok = False
        self._stop_requested = threading.Event()
        self._finished = threading.Event()

    def run(self, started: threading.Event) -> None:
        """Collect samples until stopped; ``started`` is set once running or failed."""
        global _test_profiler_panic
        try:
            self._test_panic = _test_profiler_panic
            if self._test_panic < 0:
                logger.info(
                    "Profiler failing during startup because the test hook is %d",
                    self._test_panic,
                )
                raise RuntimeError("expected profiler failure during startup")

            self.on_tick()

            ticker = self._ticker_factory(SAMPLING_INTERVAL_NS / 1e9)
            self._ticker = ticker
            self._started_ok = True
            started.set()
            try:
                while not self._stop_requested.is_set():
                    if not ticker.wait() or self._stop_requested.is_set():
                        break
                    self.on_tick()
                    ticker.ticked()
            finally:
                ticker.stop()
        except Exception as exc:
            logger.error("Profiler failure in run(): %s", exc)
        finally:
            _test_profiler_panic = 0
            self._finished.set()
            started.set()

    def stop(self, wait: bool = True) -> None:
        """Stop collecting; with ``wait`` block until the profiler has finished."""
        if not self._finished.is_set():
            self._stop_requested.set()
            if self._ticker is not None:
                self._ticker.stop()
        if wait:
            self._finished.wait()
            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join()

    def get_slice(self, start_ns: int, end_ns: int) -> Optional[ProfilerResult]:
        """Return the samples taken between the two times, or None if too few."""
        if self.start_ns > end_ns or start_ns > end_ns:
            return None

        relative_start = max(start_ns - self.start_ns, 0)
        relative_end = end_ns - self.start_ns

        found = self._get_buckets(relative_start, relative_end)
        if found is None:
            return None
        buckets_reversed, trace = found

        names = {thread.ident: thread.name for thread in threading.enumerate()}
        samples: list[ProfileSample] = []
        for bucket in buckets_reversed:
            elapsed = bucket.relative_ns - relative_start
            for thread_id, stack_id in zip(bucket.thread_ids, bucket.stack_ids):
                samples.append(
                    ProfileSample(
                        elapsed_since_start_ns=elapsed,
                        stack_id=stack_id,
                        thread_id=thread_id,
                    )
                )
                if thread_id not in trace.thread_metadata:
                    trace.thread_metadata[thread_id] = ProfileThreadMetadata(
                        name=names.get(thread_id) or f"Thread {thread_id}"
                    )
        samples.reverse()
        trace.samples = samples
        return ProfilerResult(caller_thread_id=current_thread_id(), trace=trace)

    def _get_buckets(
        self, relative_start: int, relative_end: int
    ) -> Optional[tuple[list[_SamplesBucket], ProfileTrace]]:
        with self._lock:
            buckets: list[_SamplesBucket] = []
            for bucket in reversed(self.buckets):
                if bucket.relative_ns > relative_end:
                    continue
                if bucket.relative_ns < relative_start:
                    break
                if buckets and bucket.relative_ns > buckets[-1].relative_ns:
                    break
                buckets.append(bucket)

            if len(buckets) < 2:
                return None
            trace = ProfileTrace(frames=list(self.frames), stacks=list(self.stacks))
        return buckets, trace

    def on_tick(self) -> None:
        """Collect and store one set of samples."""
        elapsed_ns = time.perf_counter_ns() - self.start_ns

        if self._test_panic > 0:
            if self._test_panic == 1:
                logger.info("Profiler failing in on_tick()")
                raise RuntimeError("expected profiler failure in on_tick()")
            self._test_panic -= 1

        records = self.collect_records()
        self.process_records(elapsed_ns, records)

    def collect_records(self) -> Records:
        """Capture the current stack of every thread, innermost frame first."""
        return [(tid, _capture_stack(frame)) for tid, frame in sys._current_frames().items()]

    def process_records(self, elapsed_ns: int, records: Records) -> None:
        """Index the captured stacks and store them as one bucket of samples."""
        if not records:
            return

        bucket = _SamplesBucket(relative_ns=elapsed_ns)
        self.new_frames = []
        self.new_stacks = []

        for thread_id, stack in records:
            bucket.stack_ids.append(self._add_stack(stack))
            bucket.thread_ids.append(thread_id)

        with self._lock:
            self.stacks.extend(self.new_stacks)
            self.frames.extend(self.new_frames)
            self.buckets.append(bucket)

    def _add_stack(self, stack: list[_RawFrame]) -> int:
        frame_ids = [self._add_frame(raw) for raw in stack]
        key = tuple(frame_ids)
        index = self.stack_indexes.get(key)
        if index is None:
            index = len(self.stacks) + len(self.new_stacks)
            self.new_stacks.append(frame_ids)
            self.stack_indexes[key] = index
        return index

    def _add_frame(self, raw: _RawFrame) -> int:
        index = self.frame_indexes.get(raw)
        if index is None:
            index = len(self.frames) + len(self.new_frames)
            self.new_frames.append(
                Frame(
                    function=raw.function,
                    module=raw.module,
                    filename=os.path.basename(raw.filename),
                    abs_path=raw.filename,
                    lineno=raw.lineno,
                )
            )
            self.frame_indexes[raw] = index
        return index


def start_profiling(
    start_ns: int, ticker_factory: Optional[TickerFactory] = None
) -> Optional[Profiler]:
    """Start a profiler on a background thread; None if it failed to start."""
    profiler = Profiler(start_ns, ticker_factory)
    started = threading.Event()
    thread = threading.Thread(
        target=profiler.run, args=(started,), name="sentrykit-profiler", daemon=True
    )
    profiler._thread = thread
    thread.start()
    started.wait()
    if profiler._started_ok:
        return profiler
    thread.join()
    return None