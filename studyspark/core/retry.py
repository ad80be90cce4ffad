"""
Retry wrapper for generative model calls.

Bounded exponential backoff with random jitter, applied only to errors that
look like rate limiting or transient unavailability. Every call to the model
provider goes through call_with_retry; nothing else in the pipeline retries.

Dependencies: tenacity, studyspark.configs
System role: Single retry mechanism around the external model
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from studyspark.configs.pipeline import PipelineSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 503})
RETRYABLE_SIGNATURES = (
    "429",
    "503",
    "resource exhausted",
    "resource_exhausted",
    "too many requests",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule constants."""

    max_attempts: int = 5
    base_delay: float = 2.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    jitter: float = 1.0

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            multiplier=settings.retry_multiplier,
            max_delay=settings.retry_max_delay,
            jitter=settings.retry_jitter,
        )


def backoff_delay(
    attempt: int,
    policy: RetryPolicy,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Seconds to wait before retry number `attempt` (1-based).

    base * multiplier^(attempt-1) plus jitter drawn from [0, policy.jitter),
    capped at policy.max_delay.

    Args:
        attempt: Retry number, 1 for the first retry
        policy: Backoff constants
        rng: Source of uniform [0, 1) values

    Returns:
        float: Delay in seconds
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    exponential = policy.base_delay * (policy.multiplier ** (attempt - 1))
    return min(exponential + rng() * policy.jitter, policy.max_delay)


def is_retryable_error(error: BaseException) -> bool:
    """
    Classify provider errors as transient (rate limit / unavailable).

    google-genai APIError carries an integer `code`; other clients only
    surface the status in the message.
    """
    code = getattr(error, "code", None)
    if isinstance(code, int) and code in RETRYABLE_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(signature in message for signature in RETRYABLE_SIGNATURES)


def _wait_strategy(policy: RetryPolicy, rng: Callable[[], float]) -> Callable[[RetryCallState], float]:
    def wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, policy, rng)

    return wait


async def call_with_retry(
    action: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation: str = "model_call",
    classify: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """
    Invoke `action`, retrying transient failures with jittered backoff.

    Non-retryable errors propagate on first occurrence. After the last
    attempt the original error propagates unchanged.

    Args:
        action: Zero-argument coroutine factory (called once per attempt)
        policy: Backoff constants
        operation: Label for log lines
        classify: Retryable-error predicate
        sleep: Awaitable sleep (injectable for tests)
        rng: Jitter source

    Returns:
        T: The action's result
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception(classify),
        stop=stop_after_attempt(policy.max_attempts),
        wait=_wait_strategy(policy, rng),
        sleep=sleep,
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:call_with_retry - {operation} rate limited, "
            f"retrying in {retry_state.next_action.sleep:.1f}s "
            f"(attempt {retry_state.attempt_number}/{policy.max_attempts})"
        ),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                result = await action()
    except Exception as e:
        if classify(e):
            logger.error(
                f"{__name__}:call_with_retry - {operation} still failing after "
                f"{policy.max_attempts} attempts: {type(e).__name__}: {e}"
            )
        raise
    return result
