"""
Retry Strategies using Tenacity.

Retries apply to transient state-backend I/O only. Rejected registry calls
are final and are never retried.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from tenacity import (
    Retrying,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "connection refused",
    "connection reset",
    "broken pipe",
    "busy loading",
    "try again",
)


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, (ConnectionError, TimeoutError)):
        return True
    # redis-py raises its own ConnectionError/TimeoutError hierarchy
    name = type(exception).__name__
    if name in ("ConnectionError", "TimeoutError", "BusyLoadingError"):
        return True
    msg = str(exception).lower()
    return any(marker in msg for marker in TRANSIENT_MARKERS)


def _log_retry(retry_state: Any) -> None:
    logger.warning(
        f"Retrying storage operation... (Attempt {retry_state.attempt_number})"
    )


# Standard Retry Policy
# Retries 4 times with exponential backoff (0.1s .. 2s), transient errors only.
retry_policy = retry(
    retry=retry_if_exception(is_transient_error),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
    stop=stop_after_attempt(4),
    reraise=True,
    before_sleep=_log_retry,
)


def execute_with_retry(
    func: Callable[..., Any],
    *args: Any,
    attempts: int = 4,
    min_wait: float = 0.1,
    max_wait: float = 2.0,
    **kwargs: Any,
) -> Any:
    """Execute a function under the transient-error retry policy."""
    for attempt in Retrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        stop=stop_after_attempt(attempts),
        reraise=True,
        before_sleep=_log_retry,
    ):
        with attempt:
            return func(*args, **kwargs)
    return None
