"""Call-level retries shared by every provider client.

Only transient failures (rate limits, 5xx, dropped connections) are retried
here. Whole-step retries live in `podflow.pipeline.steps`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from podflow.error_codes import ErrorCode
from podflow.exceptions import NetworkError, ProviderError

CALL_MAX_ATTEMPTS = 3

_BACKOFF = wait_exponential(min=1, max=10)
_BACKOFF_RATE_LIMITED = wait_exponential(min=2, max=30)


class TransientProviderError(ProviderError):
    """Provider answered with a status worth trying again (429 or 5xx)."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        rate_limited: bool = False,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(provider, message, error_code=error_code)
        self.rate_limited = bool(rate_limited)


class TransientNetworkError(TransientProviderError, NetworkError):
    """Timeout or dropped connection."""


def _backoff(state: RetryCallState) -> float:
    exc = state.outcome.exception() if state.outcome else None
    if isinstance(exc, TransientProviderError) and exc.rate_limited:
        return _BACKOFF_RATE_LIMITED(state)
    return _BACKOFF(state)


def _before_sleep(logger: logging.Logger, kind: str) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        client = state.args[0] if state.args else None
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s call retrying (provider=%s, model=%s, attempt=%s, wait_s=%s, error=%s)",
            kind,
            getattr(client, "provider", kind),
            getattr(client, "model", None),
            state.attempt_number,
            state.next_action.sleep if state.next_action else None,
            exc,
        )

    return _log


def retry_transient(logger: logging.Logger, *, kind: str) -> Callable[[Any], Any]:
    """Decorator for one provider call: retry transient errors, re-raise the rest."""
    return retry(
        retry=retry_if_exception_type(TransientProviderError),
        stop=stop_after_attempt(CALL_MAX_ATTEMPTS),
        wait=_backoff,
        before_sleep=_before_sleep(logger, kind),
        reraise=True,
    )
