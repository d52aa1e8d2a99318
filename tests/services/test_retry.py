import errno
import threading
import time

import pytest

from cfpulse.errors import (
    CfPulseError,
    CloneCancelledError,
    CloneTimeoutError,
    PlatformCommandError,
    PreconditionError,
    TransientPlatformError,
)
from cfpulse.services.deadline import Deadline
from cfpulse.services.retry import execute_with_retry, is_transient


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args)


class FlakyOperation:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


def test_returns_result_after_transient_failures():
    operation = FlakyOperation([TransientPlatformError("503 Service Unavailable")])

    assert execute_with_retry(operation, max_attempts=3, delay=0) == "ok"
    assert operation.calls == 2


def test_exhausted_retries_reraise_last_error_unchanged():
    last = ConnectionError("connection reset by peer")
    operation = FlakyOperation([TimeoutError("first"), TransientPlatformError("second"), last])
    logger = DummyLogger()

    with pytest.raises(ConnectionError) as exc_info:
        execute_with_retry(operation, max_attempts=3, delay=0, logger=logger)

    assert exc_info.value is last
    assert operation.calls == 3
    assert len(logger.warnings) == 3


def test_fatal_error_is_not_retried():
    fatal = PreconditionError("app has no buildpack")
    operation = FlakyOperation([fatal])

    with pytest.raises(PreconditionError) as exc_info:
        execute_with_retry(operation, max_attempts=3, delay=0)

    assert exc_info.value is fatal
    assert operation.calls == 1


def test_single_attempt_runs_once():
    operation = FlakyOperation([TransientPlatformError("timeout")])

    with pytest.raises(TransientPlatformError):
        execute_with_retry(operation, max_attempts=1, delay=0)

    assert operation.calls == 1


def test_fixed_delay_between_attempts(monkeypatch):
    sleeps = []
    monkeypatch.setattr("cfpulse.services.retry.time.sleep", sleeps.append)
    operation = FlakyOperation([TimeoutError("a"), TimeoutError("b")])

    execute_with_retry(operation, max_attempts=3, delay=2.0)

    assert sleeps == [2.0, 2.0]


def test_cancellation_during_wait_stops_retrying():
    deadline = Deadline(timeout_seconds=None)
    operation = FlakyOperation([TransientPlatformError("503")] * 3)
    timer = threading.Timer(0.05, deadline.cancel)
    timer.start()

    started = time.monotonic()
    with pytest.raises(CloneCancelledError):
        execute_with_retry(operation, max_attempts=3, delay=5.0, deadline=deadline)

    assert time.monotonic() - started < 2.0
    assert operation.calls == 1


def test_expired_deadline_prevents_first_attempt():
    deadline = Deadline(timeout_seconds=0)
    operation = FlakyOperation([])

    with pytest.raises(CloneTimeoutError):
        execute_with_retry(operation, deadline=deadline)

    assert operation.calls == 0


@pytest.mark.parametrize(
    "error,expected",
    [
        (TransientPlatformError("anything"), True),
        (TimeoutError("slow"), True),
        (ConnectionRefusedError("refused"), True),
        (OSError(errno.EAGAIN, "Resource temporarily unavailable"), True),
        (PlatformCommandError("Command failed (1): cf curl", stderr="502 Bad Gateway"), True),
        (PlatformCommandError("Command failed (1): cf app", stderr="Server error, status code: 503"), True),
        (PlatformCommandError("Command failed (1): cf push", stderr="Invalid buildpack"), False),
        (
            PlatformCommandError(
                "Command failed (1): cf scale billing-api -m 5040M -k 1024M -i 2 -f",
                stderr="FAILED: memory quota exceeded",
            ),
            False,
        ),
        (
            PlatformCommandError(
                "Cloud Controller request /v3/apps/4a9c5031-aa/processes/web failed: CF-UnprocessableEntity",
                stderr="CF-UnprocessableEntity: memory quota exceeded",
            ),
            False,
        ),
        (PlatformCommandError("Command failed (1): cf start gateway-timeout-svc-503"), False),
        (CfPulseError("upstream returned HTTP 502"), True),
        (PreconditionError("no sizing"), False),
        (CloneTimeoutError("budget exhausted, timed out"), False),
        (CloneCancelledError("cancelled"), False),
    ],
)
def test_is_transient_classification(error, expected):
    assert is_transient(error) is expected


def test_fatal_failure_with_status_like_arguments_runs_once():
    fatal = PlatformCommandError(
        "Command failed (1): cf scale billing-api -m 5040M -k 1024M -i 2 -f\nFAILED: memory quota exceeded",
        returncode=1,
        stderr="FAILED: memory quota exceeded",
    )
    operation = FlakyOperation([fatal])

    with pytest.raises(PlatformCommandError):
        execute_with_retry(operation, max_attempts=3, delay=0)

    assert operation.calls == 1
