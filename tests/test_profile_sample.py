import json
from datetime import datetime, timezone

from sentrykit.event import Frame
from sentrykit.profile_sample import (
    ProfileDevice,
    ProfileInfo,
    ProfileOS,
    ProfileRuntime,
    ProfileSample,
    ProfileThreadMetadata,
    ProfileTrace,
    ProfileTransaction,
)


def _trace():
    return ProfileTrace(
        frames=[Frame(function="work", module="app.jobs", abs_path="/srv/app/jobs.py", lineno=12)],
        samples=[ProfileSample(elapsed_since_start_ns=500, stack_id=0, thread_id=7)],
        stacks=[[0]],
        thread_metadata={7: ProfileThreadMetadata(name="worker"), 8: ProfileThreadMetadata()},
    )


def test_trace_to_dict_uses_wire_keys():
    data = _trace().to_dict()
    assert data["samples"] == [{"elapsed_since_start_ns": 500, "stack_id": 0, "thread_id": 7}]
    assert data["stacks"] == [[0]]
    assert data["thread_metadata"] == {"7": {"name": "worker"}, "8": {}}
    frame = data["frames"][0]
    assert frame["function"] == "work"
    assert frame["module"] == "app.jobs"
    assert frame["lineno"] == 12
    assert "colno" not in frame
    assert frame["in_app"] is False


def test_info_to_dict_omits_empty_optional_fields():
    info = ProfileInfo(
        event_id="abc",
        platform="python",
        device=ProfileDevice(architecture="arm64"),
        os=ProfileOS(name="linux"),
        runtime=ProfileRuntime(name="cpython", version="3.12"),
        transaction=ProfileTransaction(active_thread_id=7, name="txn"),
        trace=_trace(),
    )
    data = info.to_dict()
    assert "debug_meta" not in data
    assert "environment" not in data
    assert "duration_ns" not in data["transaction"]
    assert data["transaction"]["active_thread_id"] == 7
    assert data["device"]["architecture"] == "arm64"
    assert data["os"]["name"] == "linux"
    assert data["runtime"] == {"name": "cpython", "version": "3.12"}
    assert data["profile"] == _trace().to_dict()
    assert data["timestamp"] == "0001-01-01T00:00:00Z"


def test_info_to_dict_includes_set_fields_and_survives_json():
    info = ProfileInfo(
        environment="production",
        debug_meta={"images": []},
        timestamp=datetime(2023, 5, 1, 12, 0, tzinfo=timezone.utc),
        transaction=ProfileTransaction(duration_ns=1500, id="e1"),
    )
    data = info.to_dict()
    assert data["environment"] == "production"
    assert data["debug_meta"] == {"images": []}
    assert data["transaction"]["duration_ns"] == 1500
    assert data["timestamp"].endswith("Z")
    assert data["profile"] is None
    assert json.loads(json.dumps(data)) == data