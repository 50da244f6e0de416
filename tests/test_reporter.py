import io

import pytest

from marinerctl.reporter import RecordingReporter, Reporter, StreamReporter
from marinerctl.resource import ApiError, NotFoundError


def test_recording_reporter_keeps_events_in_order():
    status = RecordingReporter()
    status.start("Deleting things")
    status.success("Deleted %s", "x")
    status.warning("careful")
    status.end()
    assert status.events == [
        ("start", "Deleting things"),
        ("success", "Deleted x"),
        ("warning", "careful"),
        ("end", ""),
    ]


def test_format_uses_arguments():
    status = RecordingReporter()
    status.start("Checking %r on %s", "ns", "c1")
    assert status.events == [("start", "Checking 'ns' on c1")]


def test_error_without_error_returns_none():
    status = RecordingReporter()
    assert status.error(None, "ignored") is None
    assert status.events == []


def test_error_with_message_wraps_and_keeps_type():
    status = RecordingReporter()
    original = NotFoundError("gone")
    result = status.error(original, "Error deleting %s", "thing")
    assert isinstance(result, NotFoundError)
    assert result.__cause__ is original
    assert str(result).startswith("Error deleting thing")
    assert "gone" in str(result)
    assert status.events[0][0] == "failure"


def test_error_without_message_returns_original():
    status = RecordingReporter()
    original = ApiError("bad")
    assert status.error(original, "") is original
    assert status.events == [("failure", "bad")]


def test_error_for_foreign_exception_is_runtime_error():
    original = ValueError("bad")
    result = Reporter().error(original, "Failed")
    assert str(result).startswith("Failed")
    assert "bad" in str(result)
    assert result.__cause__ is original
    with pytest.raises(RuntimeError, match="Failed"):
        raise result


def test_stream_reporter_writes_messages():
    out = io.StringIO()
    status = StreamReporter(out)
    status.start("Working")
    status.success("Done")
    status.end()
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("Working")
    assert lines[1].endswith("Done")