"""Tests for stdcli.telemetry -- sinks, reporter and config wiring."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional

import httpx
import pytest

from stdcli.exceptions import ProcessExecutionError, TelemetryTransmissionError
from stdcli.models import TelemetryConfig
from stdcli.output import OutputFormat, OutputManager, set_output
from stdcli.runtime import Runtime
from stdcli.telemetry import (
    NullSink,
    RollbarSink,
    SegmentSink,
    TelemetryReporter,
    reporter_from_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingTransport:
    """Collects requests and answers each with a fixed status code."""

    def __init__(self, status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={})

    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


class FakeAnalytics:
    def __init__(self, fail_track: bool = False, fail_close: bool = False) -> None:
        self.tracked: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = 0
        self.fail_track = fail_track
        self.fail_close = fail_close

    def track(self, event: str, user_id: str, properties: dict[str, Any]) -> None:
        if self.fail_track:
            raise TelemetryTransmissionError("track failed")
        self.tracked.append((event, user_id, properties))

    def close(self) -> None:
        self.closed += 1
        if self.fail_close:
            raise TelemetryTransmissionError("close failed")


class FakeCrash:
    def __init__(self) -> None:
        self.reports: list[tuple[BaseException, str, Optional[dict[str, Any]]]] = []
        self.waits = 0

    def report(
        self, exc: BaseException, user_id: str, fields: Optional[dict[str, Any]] = None
    ) -> None:
        self.reports.append((exc, user_id, fields))

    def wait(self) -> None:
        self.waits += 1


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:
        return caught


# ---------------------------------------------------------------------------
# SegmentSink
# ---------------------------------------------------------------------------


class TestSegmentSink:
    def test_close_posts_one_batch(self) -> None:
        recording = RecordingTransport()
        sink = SegmentSink("wk", transport=recording.transport)
        sink.track("cli-exec", "u1", {"elapsed": 12.5})
        sink.track("cli-deploy", "u1", {"error": "boom"})
        assert sink.pending == 2

        sink.close()

        assert sink.pending == 0
        assert len(recording.requests) == 1
        request = recording.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.segment.io/v1/batch"
        expected_auth = "Basic " + base64.b64encode(b"wk:").decode()
        assert request.headers["authorization"] == expected_auth

        batch = recording.bodies()[0]["batch"]
        assert [e["event"] for e in batch] == ["cli-exec", "cli-deploy"]
        assert batch[0]["type"] == "track"
        assert batch[0]["userId"] == "u1"
        assert batch[0]["properties"] == {"elapsed": 12.5}
        assert "timestamp" in batch[0]

    def test_close_without_events_sends_nothing(self) -> None:
        recording = RecordingTransport()
        SegmentSink("wk", transport=recording.transport).close()
        assert recording.requests == []

    def test_custom_endpoint(self) -> None:
        recording = RecordingTransport()
        sink = SegmentSink("wk", endpoint="https://events.internal", transport=recording.transport)
        sink.track("e", "u", {})
        sink.close()
        assert str(recording.requests[0].url) == "https://events.internal/v1/batch"

    @pytest.mark.parametrize("event, user_id", [("", "u1"), ("cli-exec", "")])
    def test_track_rejects_missing_fields(self, event: str, user_id: str) -> None:
        sink = SegmentSink("wk")
        with pytest.raises(TelemetryTransmissionError):
            sink.track(event, user_id, {})
        assert sink.pending == 0

    def test_server_error_raises(self) -> None:
        recording = RecordingTransport(status_code=500)
        sink = SegmentSink("wk", transport=recording.transport)
        sink.track("e", "u", {})
        with pytest.raises(TelemetryTransmissionError, match="analytics delivery failed"):
            sink.close()
        assert sink.pending == 0

    def test_connection_error_raises(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        sink = SegmentSink("wk", transport=httpx.MockTransport(refuse))
        sink.track("e", "u", {})
        with pytest.raises(TelemetryTransmissionError) as excinfo:
            sink.close()
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


# ---------------------------------------------------------------------------
# RollbarSink
# ---------------------------------------------------------------------------


class TestRollbarSink:
    def test_wait_posts_each_item(self) -> None:
        recording = RecordingTransport()
        sink = RollbarSink("tok", transport=recording.transport)
        sink.report(_raised(ValueError("bad value")), "u1", {"id": "u1"})
        sink.report(_raised(KeyError("k")), "u1")
        assert sink.pending == 2

        sink.wait()

        assert sink.pending == 0
        assert [str(r.url) for r in recording.requests] == [
            "https://api.rollbar.com/api/1/item/",
            "https://api.rollbar.com/api/1/item/",
        ]
        first = recording.bodies()[0]
        assert first["access_token"] == "tok"
        data = first["data"]
        assert data["environment"] == "u1"
        assert data["level"] == "error"
        assert data["language"] == "python"
        assert data["custom"] == {"id": "u1"}
        assert data["body"]["trace"]["exception"] == {
            "class": "ValueError",
            "message": "bad value",
        }
        frames = data["body"]["trace"]["frames"]
        assert frames
        assert frames[-1]["method"] == "_raised"

    def test_wait_without_reports_sends_nothing(self) -> None:
        recording = RecordingTransport()
        RollbarSink("tok", transport=recording.transport).wait()
        assert recording.requests == []

    def test_exception_never_raised_has_no_frames(self) -> None:
        recording = RecordingTransport()
        sink = RollbarSink("tok", transport=recording.transport)
        sink.report(RuntimeError("synthetic"), "u1")
        sink.wait()
        assert recording.bodies()[0]["data"]["body"]["trace"]["frames"] == []

    def test_delivery_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        recording = RecordingTransport(status_code=503)
        sink = RollbarSink("tok", transport=recording.transport)
        sink.report(_raised(ValueError("x")), "u1")
        sink.report(_raised(ValueError("y")), "u1")

        with caplog.at_level(logging.WARNING, logger="stdcli.telemetry"):
            sink.wait()

        assert len(recording.requests) == 2
        assert "crash report not delivered" in caplog.text


# ---------------------------------------------------------------------------
# TelemetryReporter
# ---------------------------------------------------------------------------


@pytest.fixture
def crash() -> FakeCrash:
    return FakeCrash()


class TestSuccessEvent:
    def test_sends_elapsed_milliseconds(self, crash: FakeCrash, fake_runtime: Runtime) -> None:
        analytics = FakeAnalytics()
        reporter = TelemetryReporter(analytics, crash, fake_runtime, clock=lambda: 12.25)
        reporter.success_event("cli-exec", "u1", started=12.0)
        assert analytics.tracked == [("cli-exec", "u1", {"elapsed": 250.0})]
        assert analytics.closed == 1
        assert crash.waits == 1
        assert crash.reports == []

    def test_track_failure_goes_to_crash_sink(
        self, crash: FakeCrash, fake_runtime: Runtime
    ) -> None:
        analytics = FakeAnalytics(fail_track=True)
        reporter = TelemetryReporter(analytics, crash, fake_runtime, clock=lambda: 1.0)
        reporter.success_event("cli-exec", "u1", started=0.0)
        assert analytics.closed == 1
        assert len(crash.reports) == 1
        exc, user_id, fields = crash.reports[0]
        assert isinstance(exc, TelemetryTransmissionError)
        assert user_id == "u1"
        assert fields == {"id": "u1"}

    def test_both_failures_reported(self, crash: FakeCrash, fake_runtime: Runtime) -> None:
        analytics = FakeAnalytics(fail_track=True, fail_close=True)
        reporter = TelemetryReporter(analytics, crash, fake_runtime)
        reporter.success_event("cli-exec", "u1", started=0.0)
        assert [str(r[0]) for r in crash.reports] == ["track failed", "close failed"]

    def test_never_exits(self, crash: FakeCrash, fake_runtime: Runtime, recorder) -> None:
        reporter = TelemetryReporter(FakeAnalytics(fail_close=True), crash, fake_runtime)
        reporter.success_event("cli-exec", "u1", started=0.0)
        assert recorder.exits == []


class TestErrorEvent:
    def test_reports_prints_and_exits(
        self,
        crash: FakeCrash,
        fake_runtime: Runtime,
        recorder,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        analytics = FakeAnalytics()
        reporter = TelemetryReporter(analytics, crash, fake_runtime)
        exc = ProcessExecutionError("exit status 1", binary="docker")

        reporter.error_event("cli-exec", "u1", exc)

        assert analytics.tracked == [("cli-exec", "u1", {"error": "exit status 1"})]
        assert crash.reports == [(exc, "u1", {"id": "u1"})]
        assert crash.waits == 1
        assert capsys.readouterr().err == "ERROR: exit status 1\n"
        assert recorder.exits == [1]

    def test_analytics_failure_still_exits(
        self, crash: FakeCrash, fake_runtime: Runtime, recorder, quiet_output
    ) -> None:
        reporter = TelemetryReporter(FakeAnalytics(fail_track=True), crash, fake_runtime)
        reporter.error_event("cli-exec", "u1", RuntimeError("boom"))
        assert len(crash.reports) == 2
        assert recorder.exits == [1]


# ---------------------------------------------------------------------------
# reporter_from_config
# ---------------------------------------------------------------------------


class TestReporterFromConfig:
    def test_no_credentials_uses_null_sinks(self, fake_runtime: Runtime) -> None:
        reporter = reporter_from_config(TelemetryConfig(), fake_runtime)
        assert isinstance(reporter._analytics, NullSink)
        assert isinstance(reporter._crash, NullSink)

    def test_credentials_enable_sinks(self, fake_runtime: Runtime) -> None:
        config = TelemetryConfig(segment_write_key="wk", rollbar_token="tok")
        reporter = reporter_from_config(config, fake_runtime)
        assert isinstance(reporter._analytics, SegmentSink)
        assert isinstance(reporter._crash, RollbarSink)

    def test_disabled_ignores_credentials(self, fake_runtime: Runtime) -> None:
        config = TelemetryConfig(enabled=False, segment_write_key="wk", rollbar_token="tok")
        reporter = reporter_from_config(config, fake_runtime)
        assert isinstance(reporter._analytics, NullSink)
        assert isinstance(reporter._crash, NullSink)

    def test_end_to_end_error_event(self, fake_runtime: Runtime, recorder, quiet_output) -> None:
        recording = RecordingTransport()
        config = TelemetryConfig(segment_write_key="wk", rollbar_token="tok")
        reporter = reporter_from_config(config, fake_runtime, transport=recording.transport)

        reporter.error_event("cli-deploy", "u1", _raised(ValueError("nope")))

        hosts = [r.url.host for r in recording.requests]
        assert hosts == ["api.segment.io", "api.rollbar.com"]
        assert recorder.exits == [1]
