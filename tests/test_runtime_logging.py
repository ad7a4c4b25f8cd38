from __future__ import annotations

import sys
from pathlib import Path

import hangar_finance.runtime_logging as runtime_logging


def test_runtime_logging_append_and_read():
    runtime_logging.append_runtime_event(
        level="warning",
        event="test_event",
        message="Test warning.",
        context={"case": "append_and_read"},
    )
    events = runtime_logging.read_runtime_events(limit=10)
    assert len(events) == 1
    assert events[0]["event"] == "test_event"
    assert events[0]["level"] == "WARNING"
    assert events[0]["context"]["case"] == "append_and_read"


def test_runtime_logging_records_exception_details():
    try:
        raise ValueError("bad duration")
    except ValueError as exc:
        runtime_logging.append_runtime_event("error", "failure", str(exc), exc=exc)
    event = runtime_logging.read_runtime_events()[0]
    assert event["exception_type"] == "ValueError"
    assert event["exception_message"] == "bad duration"
    assert "Traceback" in event["traceback"]


def test_runtime_logging_handles_malformed_lines():
    log_file = runtime_logging.RUNTIME_EVENTS_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.write_text('{"event":"ok","level":"INFO","timestamp_utc":"2026-01-01T00:00:00+00:00","message":"ok","context":{}}\nnot-json\n', encoding="utf-8")

    events = runtime_logging.read_runtime_events(limit=10)
    assert len(events) == 2
    assert events[0]["event"] == "ok"
    assert events[1]["event"] == "log_parse_error"


def test_read_limit_keeps_latest_events():
    for i in range(5):
        runtime_logging.append_runtime_event("info", f"event_{i}", "msg")
    events = runtime_logging.read_runtime_events(limit=2)
    assert [e["event"] for e in events] == ["event_3", "event_4"]
    assert runtime_logging.read_runtime_events(limit=0) == []


def test_configure_log_root_expands_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("HANGAR_TEST_ROOT", str(tmp_path))
    root = runtime_logging.configure_log_root("$HANGAR_TEST_ROOT/logs")
    assert root == Path(tmp_path) / "logs"
    assert runtime_logging.RUNTIME_EVENTS_LOG_FILE == Path(tmp_path) / "logs" / "runtime_events.jsonl"
    assert runtime_logging.configure_log_root("  ") == Path(".local_store")


def test_global_exception_hook_logs_and_chains(monkeypatch):
    seen = []
    monkeypatch.setattr(sys, "excepthook", lambda *args: seen.append(args[0]))
    monkeypatch.setattr(runtime_logging, "_EXCEPTION_HOOK_INSTALLED", False)

    runtime_logging.install_global_exception_logging()
    sys.excepthook(RuntimeError, RuntimeError("boom"), None)

    assert seen == [RuntimeError]
    event = runtime_logging.read_runtime_events()[-1]
    assert event["event"] == "uncaught_exception"
    assert event["message"] == "boom"


def test_runtime_log_path_points_at_events_file(isolated_runtime_log):
    assert runtime_logging.runtime_log_path() == str((isolated_runtime_log / "runtime_events.jsonl").resolve())
