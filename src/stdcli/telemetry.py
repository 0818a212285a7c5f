"""Best-effort usage analytics and crash reporting.

Two kinds of sink sit behind small protocols so the reporter never depends
on a concrete service:

* :class:`AnalyticsSink` -- receives named events. :class:`SegmentSink`
  queues them and posts one batch on :meth:`~AnalyticsSink.close`.
* :class:`CrashSink` -- receives exceptions. :class:`RollbarSink` queues
  them and posts each item on :meth:`~CrashSink.wait`.

:class:`TelemetryReporter` ties them together. Delivery problems with the
analytics sink are reported to the crash sink; delivery problems with the
crash sink are logged and dropped. Neither ever fails the command that
emitted the event.

Example::

    reporter = reporter_from_config(resolve_config().telemetry, runtime)
    started = time.monotonic()
    try:
        deploy()
    except StdcliError as exc:
        reporter.error_event("deploy", client_id, exc)   # prints and exits 1
    reporter.success_event("deploy", client_id, started)
"""

from __future__ import annotations

import logging
import time
import traceback
from typing import Any, Callable, Optional, Protocol

import httpx

from stdcli.exceptions import TelemetryTransmissionError
from stdcli.exit_codes import EXIT_GENERIC_FAILURE
from stdcli.models import CrashItem, TelemetryConfig, TrackEvent
from stdcli.output import error
from stdcli.runtime import Runtime

logger = logging.getLogger(__name__)


class AnalyticsSink(Protocol):
    """Receiver of named usage events."""

    def track(self, event: str, user_id: str, properties: dict[str, Any]) -> None:
        """Queue an event. May raise :class:`TelemetryTransmissionError`."""
        ...

    def close(self) -> None:
        """Deliver queued events. May raise :class:`TelemetryTransmissionError`."""
        ...


class CrashSink(Protocol):
    """Receiver of error reports. Must not raise."""

    def report(
        self, exc: BaseException, user_id: str, fields: Optional[dict[str, Any]] = None
    ) -> None:
        """Queue a report for *exc*."""
        ...

    def wait(self) -> None:
        """Block until queued reports have been sent or dropped."""
        ...


class NullSink:
    """Analytics and crash sink that discards everything."""

    def track(self, event: str, user_id: str, properties: dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        pass

    def report(
        self, exc: BaseException, user_id: str, fields: Optional[dict[str, Any]] = None
    ) -> None:
        pass

    def wait(self) -> None:
        pass


class SegmentSink:
    """Analytics sink speaking the Segment HTTP tracking API.

    Events are queued in memory by :meth:`track` and posted as a single
    ``/v1/batch`` request by :meth:`close`, authenticated with the write key
    as the basic-auth user name.

    Args:
        write_key: Source write key.
        endpoint: API base URL.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        write_key: str,
        endpoint: str = "https://api.segment.io",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._write_key = write_key
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport
        self._queue: list[TrackEvent] = []

    @property
    def pending(self) -> int:
        """Number of queued, undelivered events."""
        return len(self._queue)

    def track(self, event: str, user_id: str, properties: dict[str, Any]) -> None:
        if not event:
            raise TelemetryTransmissionError("analytics event name is required")
        if not user_id:
            raise TelemetryTransmissionError("analytics user id is required")
        self._queue.append(TrackEvent(event=event, user_id=user_id, properties=properties))

    def close(self) -> None:
        if not self._queue:
            return
        batch = [e.model_dump(mode="json", by_alias=True) for e in self._queue]
        self._queue.clear()
        try:
            with httpx.Client(
                base_url=self._endpoint,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.post(
                    "/v1/batch",
                    json={"batch": batch},
                    auth=(self._write_key, ""),
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TelemetryTransmissionError(f"analytics delivery failed: {exc}") from exc
        logger.debug("delivered %d analytics event(s)", len(batch))


def _frames(exc: BaseException) -> list[dict[str, Any]]:
    return [
        {
            "filename": frame.filename,
            "lineno": frame.lineno,
            "method": frame.name,
            "code": frame.line,
        }
        for frame in traceback.extract_tb(exc.__traceback__)
    ]


class RollbarSink:
    """Crash sink speaking the Rollbar item API.

    Args:
        token: Project access token (``post_client_item`` scope).
        endpoint: API base URL.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        token: str,
        endpoint: str = "https://api.rollbar.com",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._token = token
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport
        self._queue: list[CrashItem] = []

    @property
    def pending(self) -> int:
        """Number of queued, unsent reports."""
        return len(self._queue)

    def report(
        self, exc: BaseException, user_id: str, fields: Optional[dict[str, Any]] = None
    ) -> None:
        self._queue.append(
            CrashItem(
                environment=user_id,
                error_class=type(exc).__name__,
                message=str(exc),
                frames=_frames(exc),
                fields=dict(fields or {}),
            )
        )

    def _payload(self, item: CrashItem) -> dict[str, Any]:
        return {
            "access_token": self._token,
            "data": {
                "environment": item.environment,
                "level": item.level,
                "timestamp": int(item.timestamp.timestamp()),
                "language": "python",
                "body": {
                    "trace": {
                        "frames": item.frames,
                        "exception": {
                            "class": item.error_class,
                            "message": item.message,
                        },
                    }
                },
                "custom": item.fields,
            },
        }

    def wait(self) -> None:
        if not self._queue:
            return
        items = list(self._queue)
        self._queue.clear()
        with httpx.Client(
            base_url=self._endpoint,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            for item in items:
                try:
                    client.post("/api/1/item/", json=self._payload(item)).raise_for_status()
                except httpx.HTTPError as exc:
                    logger.warning("crash report not delivered: %s", exc)


class TelemetryReporter:
    """Emits success and error events for a finished command.

    Args:
        analytics: Event sink.
        crash: Error sink.
        runtime: Provides the exiter used by :meth:`error_event`.
        clock: Monotonic clock matching the ``started`` values callers pass.
    """

    def __init__(
        self,
        analytics: AnalyticsSink,
        crash: CrashSink,
        runtime: Optional[Runtime] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._analytics = analytics
        self._crash = crash
        self._runtime = runtime if runtime is not None else Runtime.default()
        self._clock = clock

    def _send(self, source: str, user_id: str, properties: dict[str, Any]) -> None:
        fields = {"id": user_id}
        try:
            self._analytics.track(source, user_id, properties)
        except TelemetryTransmissionError as exc:
            self._crash.report(exc, user_id, fields)
        try:
            self._analytics.close()
        except TelemetryTransmissionError as exc:
            self._crash.report(exc, user_id, fields)

    def success_event(self, source: str, user_id: str, started: float) -> None:
        """Record that *source* succeeded, with elapsed milliseconds since *started*."""
        elapsed = (self._clock() - started) * 1000.0
        self._send(source, user_id, {"elapsed": elapsed})
        self._crash.wait()

    def error_event(self, source: str, user_id: str, exc: BaseException) -> None:
        """Record that *source* failed with *exc*, print it, and exit 1."""
        self._send(source, user_id, {"error": str(exc)})
        self._crash.report(exc, user_id, {"id": user_id})
        self._crash.wait()

        error(str(exc))
        self._runtime.exit(EXIT_GENERIC_FAILURE)


def reporter_from_config(
    config: TelemetryConfig,
    runtime: Optional[Runtime] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> TelemetryReporter:
    """Build a reporter with real sinks where credentials are configured."""
    analytics: AnalyticsSink = NullSink()
    crash: CrashSink = NullSink()
    if config.enabled and config.segment_write_key:
        analytics = SegmentSink(
            config.segment_write_key,
            endpoint=config.segment_endpoint,
            timeout=config.timeout,
            transport=transport,
        )
    if config.enabled and config.rollbar_token:
        crash = RollbarSink(
            config.rollbar_token,
            endpoint=config.rollbar_endpoint,
            timeout=config.timeout,
            transport=transport,
        )
    return TelemetryReporter(analytics, crash, runtime)
