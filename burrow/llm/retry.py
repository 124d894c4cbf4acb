import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from burrow.constants import (
    PROVIDER_BACKOFF_MS,
    PROVIDER_MAX_BACKOFF_MS,
    PROVIDER_MAX_RETRIES,
    PROVIDER_MIN_BACKOFF_MS,
    TRANSIENT_ERROR_MARKERS,
)
from burrow.llm.base import ApiError, LLMProvider, NetworkError
from burrow.llm.types import GenerationOptions, GenerationResponse
from burrow.logging import get_logger
from burrow.types import Message

_logger = get_logger(__name__)

type Sleep = Callable[[float], Awaitable[None]]


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, ApiError):
        lower = exc.message.lower()
        return any(marker in lower for marker in TRANSIENT_ERROR_MARKERS)
    return False


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = PROVIDER_MAX_RETRIES
    base_backoff_ms: int = PROVIDER_BACKOFF_MS
    max_backoff_ms: int = PROVIDER_MAX_BACKOFF_MS

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    @property
    def base_delay(self) -> float:
        return max(self.base_backoff_ms, PROVIDER_MIN_BACKOFF_MS) / 1000

    @property
    def max_delay(self) -> float:
        return self.max_backoff_ms / 1000


class ReliableProvider(LLMProvider):
    """Retries transient provider failures with bounded exponential backoff.

    Transparent on success. Non-retryable errors and the error from the final
    attempt are re-raised untouched.
    """

    def __init__(self, inner: LLMProvider, policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep):
        self.inner = inner
        self.policy = policy if policy is not None else RetryPolicy()
        self._sleep = sleep

    def _log_retry(self, retry_state: RetryCallState) -> None:
        _logger.warning(
            "provider call failed; retrying",
            attempt=retry_state.attempt_number,
            max_attempts=self.policy.attempts,
            backoff_ms=int(retry_state.next_action.sleep * 1000),
            error=str(retry_state.outcome.exception()),
        )

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict],
        options: GenerationOptions,
    ) -> GenerationResponse:
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.policy.attempts),
            wait=wait_exponential(multiplier=self.policy.base_delay, exp_base=2, max=self.policy.max_delay),
            sleep=self._sleep,
            reraise=True,
            before_sleep=self._log_retry,
        )
        return await retrying(self.inner.chat, messages, tools, options)

    async def close(self) -> None:
        await self.inner.close()
