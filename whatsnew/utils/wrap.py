#!/usr/bin/env python3
"""Retry and watchdog wrappers for calls to external services."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


def error_code(exc: Exception) -> str:
    """The ``code`` carried by our exception types, or UNKNOWN."""
    return getattr(exc, "code", None) or "UNKNOWN"


def with_retries(
    fn: Callable[[], Any],
    *,
    max_attempts: int,
    backoff_s: float,
    retry_on: Iterable[str],
    classify_exc: Callable[[Exception], str] = error_code,
    deadline: Optional[float] = None,
) -> Any:
    """Call ``fn`` until it succeeds or fails with a code outside ``retry_on``.

    The sleep doubles after each retried failure, starting at ``backoff_s``.
    No retry starts once its sleep would end past ``deadline`` (a
    ``time.monotonic()`` value). The last failure is re-raised unchanged.
    """
    retryable = frozenset(retry_on)
    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as e:  # noqa: BLE001
            code = classify_exc(e)
            if code not in retryable or attempt >= max_attempts:
                raise
            delay = backoff_s * 2 ** (attempt - 1)
            if deadline is not None and time.monotonic() + delay >= deadline:
                raise
            logger.debug(f"{code} on attempt {attempt}/{max_attempts}, retrying in {delay:.2f}s")
            time.sleep(delay)
    raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")


def with_watchdog(fn: Callable[[], Any], *, max_runtime_s: float, on_timeout: Optional[Callable[[], Any]] = None) -> Any:
    """Run ``fn``; discard its result and raise ``TimeoutError`` if it overran.

    The call is not interrupted. ``on_timeout`` runs before the error is raised.
    """
    started = time.monotonic()
    result = fn()
    elapsed = time.monotonic() - started
    if elapsed <= max_runtime_s:
        return result
    if on_timeout is not None:
        on_timeout()
    raise TimeoutError(f"Call took {elapsed:.2f}s, limit is {max_runtime_s}s")
