"""
Common contract for notification channel adapters.

Adapters never raise from ``send``: every failure (missing credentials, bad
address, provider rejection, network error) comes back as a failed
``DeliveryResult`` so one broken channel cannot stop a reminder run.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from hrnotify.models.enums import Channel

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "NOT_CONFIGURED"
INVALID_ADDRESS = "INVALID_ADDRESS"
UNSUPPORTED_CHANNEL = "UNSUPPORTED_CHANNEL"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    recipient: Optional[str] = None

    @classmethod
    def failed(cls, error_code: str, error_message: str, attempts: int = 0, recipient: Optional[str] = None) -> "DeliveryResult":
        return cls(
            success=False,
            error_code=error_code,
            error_message=error_message,
            attempts=attempts,
            recipient=recipient,
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Retry transient failures ``max_retries`` times; waits start at ``base_delay`` seconds and double"""
    max_retries: int = 0
    base_delay: float = 1.0


class ProviderError(Exception):
    """Raised by an adapter's ``_deliver``; ``retryable`` False means retrying cannot help"""

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = True):
        super().__init__(message)
        self.code = code or UNKNOWN_ERROR
        self.retryable = retryable


class InvalidAddressError(ValueError):
    pass


def _is_retryable(error: BaseException) -> bool:
    return getattr(error, "retryable", True)


class ChannelAdapter:
    channel: Channel
    name: str = "Channel"

    def __init__(self, retry_policy: Optional[RetryPolicy] = None, sleep: Sleep = asyncio.sleep):
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    def normalize_address(self, address: str) -> str:
        raise NotImplementedError

    async def _deliver(self, address: str, subject: Optional[str], body: str) -> str:
        """Hand the message to the provider and return its message id."""
        raise NotImplementedError

    def _retrying(self) -> AsyncRetrying:
        policy = self.retry_policy
        return AsyncRetrying(
            stop=stop_after_attempt(policy.max_retries + 1),
            wait=wait_exponential(multiplier=policy.base_delay),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.info(
            "[%s] Attempt %d failed (%s: %s); retrying in %.1fs",
            self.name, retry_state.attempt_number, getattr(error, "code", UNKNOWN_ERROR), error,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )

    async def _attempt(self, address: str, subject: Optional[str], body: str) -> str:
        try:
            return await self._deliver(address, subject, body)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(str(e) or e.__class__.__name__, code=UNKNOWN_ERROR, retryable=True) from e

    async def send(self, to: Optional[str], subject: Optional[str], body: str) -> DeliveryResult:
        if not self.is_configured:
            return DeliveryResult.failed(NOT_CONFIGURED, f"{self.name} service not configured")

        try:
            address = self.normalize_address(to or "")
        except InvalidAddressError as e:
            logger.warning("[%s] Invalid recipient address %r: %s", self.name, to, e)
            return DeliveryResult.failed(INVALID_ADDRESS, str(e))

        attempts = 0
        try:
            async for attempt in self._retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    message_id = await self._attempt(address, subject, body)
        except ProviderError as error:
            logger.warning(
                "[%s] Sending to %s failed after %d attempt(s): %s (%s)",
                self.name, address, attempts, error, error.code,
            )
            return DeliveryResult.failed(error.code, str(error), attempts=attempts, recipient=address)

        return DeliveryResult(success=True, message_id=message_id, attempts=attempts, recipient=address)
