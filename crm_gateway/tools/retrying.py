"""
Caller-side retry policy.

The dispatcher never retries; it reports `retryable` on each Failure. This
wrapper is the composable policy on top: retry only retryable failures, back
off exponentially, and honor a provider's retry-after hint when given.
"""

from __future__ import annotations

import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from crm_gateway.tools.dispatcher import ToolDispatcher
from crm_gateway.tools.types import Failure, ToolCall, ToolContext, ToolResult


logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 30.0


def _is_retryable(result: ToolResult) -> bool:
    return isinstance(result, Failure) and result.retryable


class wait_retry_after(wait_base):
    """Wait the provider's retry-after hint if present, else fall back."""

    def __init__(self, fallback: wait_base, *, max_wait: float = DEFAULT_MAX_WAIT_SECONDS) -> None:
        self._fallback = fallback
        self._max_wait = max_wait

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and not outcome.failed:
            result = outcome.result()
            if isinstance(result, Failure) and result.retry_after is not None:
                return min(float(result.retry_after), self._max_wait)
        return self._fallback(retry_state)


async def dispatch_with_retry(
    dispatcher: ToolDispatcher,
    call: ToolCall,
    *,
    max_attempts: int = 3,
    ctx: ToolContext | None = None,
    wait: wait_base | None = None,
) -> ToolResult:
    ctx = ctx or ToolContext()
    if max_attempts <= 1:
        return await dispatcher.dispatch(call, ctx)

    retrying = AsyncRetrying(
        retry=retry_if_result(_is_retryable),
        stop=stop_after_attempt(max_attempts),
        wait=wait
        or wait_retry_after(
            wait_exponential(multiplier=0.25, min=0.25, max=DEFAULT_MAX_WAIT_SECONDS)
        ),
        before_sleep=before_sleep_log(logger, logging.INFO),
        # Out of attempts: hand back the last Failure instead of raising.
        retry_error_callback=lambda state: state.outcome.result(),
    )
    return await retrying(dispatcher.dispatch, call, ctx)
