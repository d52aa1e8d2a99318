"""Bounded retry for remote platform calls."""

import errno
import logging
import re
import time
from typing import Callable, Optional, TypeVar

from cfpulse.errors import CancellationError, CfPulseError, PlatformCommandError, TransientPlatformError

T = TypeVar("T")

TRANSIENT_FAILURE_PATTERNS = (
    "connection reset",
    "connection refused",
    "connection aborted",
    "temporary failure",
    "temporarily unavailable",
    "name resolution",
    "timed out",
    "i/o timeout",
    "handshake timeout",
    "request timeout",
    "network is unreachable",
    "no route to host",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "unexpected eof",
    "too many requests",
    "please retry",
    "try again later",
)

# HTTP status codes only count when the platform labels them as such.
TRANSIENT_STATUS_CODE = re.compile(
    r"(?:status code|response code|http)\s*:?\s*(?:429|502|503|504)\b"
)

_default_logger = logging.getLogger("cfpulse.retry")


def is_transient(exc: BaseException) -> bool:
    """Classifies a failure as worth retrying.

    Platform command failures are judged on the platform's own output
    (`stderr`), never on the echoed command line or request path.
    """
    if isinstance(exc, CancellationError):
        return False
    if isinstance(exc, (TransientPlatformError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, OSError) and exc.errno in (errno.EAGAIN, errno.EWOULDBLOCK):
        return True
    if getattr(exc, "retryable", False):
        return True

    if isinstance(exc, PlatformCommandError):
        text = (exc.stderr or "").lower()
    else:
        text = str(exc).lower()
    if not text:
        return False
    if TRANSIENT_STATUS_CODE.search(text):
        return True
    return any(pattern in text for pattern in TRANSIENT_FAILURE_PATTERNS)


def execute_with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 2.0,
    deadline=None,
    logger: Optional[logging.Logger] = None,
    description: Optional[str] = None,
) -> T:
    """Runs `operation` up to `max_attempts` times with a fixed `delay` between attempts.

    Fatal errors and the last transient error are re-raised unchanged. When a
    `Deadline` is given, the pause between attempts is interruptible and a
    cancelled or expired scope raises its cancellation error instead of retrying.
    """
    logger = logger or _default_logger
    label = description or getattr(operation, "__name__", "operation")
    max_attempts = max(1, max_attempts)

    for attempt in range(1, max_attempts + 1):
        if deadline is not None:
            deadline.check()

        try:
            return operation()
        except Exception as exc:
            if not is_transient(exc):
                raise
            if attempt >= max_attempts:
                logger.warning("%s failed after %s attempts: %s", label, attempt, exc)
                raise

            logger.warning(
                "%s failed on attempt %s/%s and will be retried in %.1fs: %s",
                label,
                attempt,
                max_attempts,
                delay,
                exc,
            )
            if deadline is not None:
                deadline.wait(delay)
            else:
                time.sleep(delay)

    raise CfPulseError(f"{label} failed after retries.")
