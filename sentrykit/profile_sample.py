"""Data types of a collected profile and their JSON-ready form."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sentrykit.event import Frame

_ZERO_TIME = "0001-01-01T00:00:00Z"


def _frame_to_dict(frame: Frame) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key in (
        "function",
        "module",
        "filename",
        "abs_path",
        "lineno",
        "colno",
        "pre_context",
        "context_line",
        "post_context",
    ):
        value = getattr(frame, key)
        if value:
            result[key] = list(value) if isinstance(value, list) else value
    result["in_app"] = frame.in_app
    return result


def _format_timestamp(timestamp: Optional[datetime]) -> str:
    if timestamp is None:
        return _ZERO_TIME
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    text = timestamp.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass
class ProfileDevice:
    """The device a profile was recorded on."""

    architecture: str = ""
    classification: str = ""
    locale: str = ""
    manufacturer: str = ""
    model: str = ""


@dataclass
class ProfileOS:
    """The operating system a profile was recorded on."""

    build_number: str = ""
    name: str = ""
    version: str = ""


@dataclass
class ProfileRuntime:
    """The language runtime a profile was recorded with."""

    name: str = ""
    version: str = ""


@dataclass
class ProfileSample:
    """One stack of one thread, taken at a point in time."""

    elapsed_since_start_ns: int = 0
    stack_id: int = 0
    thread_id: int = 0


@dataclass
class ProfileThreadMetadata:
    """Descriptive data for a sampled thread."""

    name: str = ""
    priority: int = 0

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        if self.priority:
            result["priority"] = self.priority
        return result


@dataclass
class ProfileTrace:
    """Frames, stacks made of frame indexes, and samples referring to stacks."""

    frames: list[Frame] = field(default_factory=list)
    samples: list[ProfileSample] = field(default_factory=list)
    stacks: list[list[int]] = field(default_factory=list)
    thread_metadata: dict[int, ProfileThreadMetadata] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the trace in its wire form."""
        return {
            "frames": [_frame_to_dict(frame) for frame in self.frames],
            "samples": [dataclasses.asdict(sample) for sample in self.samples],
            "stacks": [list(stack) for stack in self.stacks],
            "thread_metadata": {
                str(thread_id): meta._to_dict()
                for thread_id, meta in self.thread_metadata.items()
            },
        }


@dataclass
class ProfileTransaction:
    """The transaction a profile belongs to."""

    active_thread_id: int = 0
    duration_ns: int = 0
    id: str = ""
    name: str = ""
    trace_id: str = ""

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"active_thread_id": self.active_thread_id}
        if self.duration_ns:
            result["duration_ns"] = self.duration_ns
        result["id"] = self.id
        result["name"] = self.name
        result["trace_id"] = self.trace_id
        return result


@dataclass
class ProfileInfo:
    """A complete profile ready to be sent."""

    event_id: str = ""
    platform: str = ""
    release: str = ""
    dist: str = ""
    environment: str = ""
    version: str = ""
    timestamp: Optional[datetime] = None
    device: ProfileDevice = field(default_factory=ProfileDevice)
    os: ProfileOS = field(default_factory=ProfileOS)
    runtime: ProfileRuntime = field(default_factory=ProfileRuntime)
    trace: Optional[ProfileTrace] = None
    transaction: ProfileTransaction = field(default_factory=ProfileTransaction)
    debug_meta: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the profile in its wire form."""
        result: dict[str, Any] = {}
        if self.debug_meta is not None:
            result["debug_meta"] = self.debug_meta
        result["device"] = dataclasses.asdict(self.device)
        if self.environment:
            result["environment"] = self.environment
        result["event_id"] = self.event_id
        result["os"] = dataclasses.asdict(self.os)
        result["platform"] = self.platform
        result["release"] = self.release
        result["dist"] = self.dist
        result["runtime"] = dataclasses.asdict(self.runtime)
        result["timestamp"] = _format_timestamp(self.timestamp)
        result["profile"] = self.trace.to_dict() if self.trace is not None else None
        result["transaction"] = self.transaction._to_dict()
        result["version"] = self.version
        return result