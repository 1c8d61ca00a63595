import asyncio
import logging
from typing import Any, Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client as TwilioClient

from hrnotify.core.config import Settings
from hrnotify.models.enums import Channel

from .base import ChannelAdapter, ProviderError, RetryPolicy, Sleep
from .phone import to_e164

logger = logging.getLogger(__name__)

# Invalid 'To' number, unreachable carrier, not a mobile number: retrying cannot help
INVALID_NUMBER_CODES = {21211, 21612, 21614}


class TwilioMessagingService(ChannelAdapter):
    """Shared Twilio Messaging plumbing for SMS and WhatsApp."""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        default_region: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        client: Any = None,
    ):
        super().__init__(retry_policy=retry_policy, sleep=sleep)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.default_region = default_region
        self._client = client

        if not self.is_configured:
            logger.warning("[%s] Not fully configured; sends will fail with NOT_CONFIGURED", self.name)

    @property
    def is_configured(self) -> bool:
        if not self.from_number:
            return False
        return self._client is not None or bool(self.account_sid and self.auth_token)

    def _get_client(self):
        if self._client is None:
            self._client = TwilioClient(self.account_sid, self.auth_token)
        return self._client

    def normalize_address(self, address: str) -> str:
        return to_e164(address, self.default_region)

    def _twilio_to(self, address: str) -> str:
        return address

    def _twilio_from(self) -> str:
        return self.from_number

    async def _deliver(self, address: str, subject: Optional[str], body: str) -> str:
        params = {"body": body, "from_": self._twilio_from(), "to": self._twilio_to(address)}
        try:
            message = await asyncio.to_thread(self._get_client().messages.create, **params)
        except TwilioRestException as e:
            code = e.code if e.code is not None else f"HTTP_{e.status}"
            raise ProviderError(
                e.msg or str(e),
                code=str(code),
                retryable=e.code not in INVALID_NUMBER_CODES,
            ) from e
        except TwilioException as e:
            raise ProviderError(str(e), code="TWILIO_ERROR", retryable=True) from e
        return message.sid


class SmsService(TwilioMessagingService):
    channel = Channel.SMS
    name = "SMS"

    @classmethod
    def from_settings(cls, settings: Settings, max_retries: int = 2, base_delay: float = 1.0,
                      default_region: Optional[str] = None) -> "SmsService":
        return cls(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            default_region=default_region,
            retry_policy=RetryPolicy(max_retries=max_retries, base_delay=base_delay),
        )
