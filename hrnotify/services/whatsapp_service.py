from typing import Optional

from hrnotify.core.config import Settings
from hrnotify.models.enums import Channel

from .base import RetryPolicy
from .sms_service import TwilioMessagingService

WHATSAPP_PREFIX = "whatsapp:"


class WhatsAppService(TwilioMessagingService):
    """Chat channel: Twilio WhatsApp messaging. Addresses carry the ``whatsapp:`` scheme."""
    channel = Channel.WHATSAPP
    name = "WhatsApp"

    def _twilio_to(self, address: str) -> str:
        return f"{WHATSAPP_PREFIX}{address}"

    def _twilio_from(self) -> str:
        if self.from_number.startswith(WHATSAPP_PREFIX):
            return self.from_number
        return f"{WHATSAPP_PREFIX}{self.from_number}"

    @classmethod
    def from_settings(cls, settings: Settings, max_retries: int = 0, base_delay: float = 1.0,
                      default_region: Optional[str] = None) -> "WhatsAppService":
        return cls(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_WHATSAPP_NUMBER,
            default_region=default_region,
            retry_policy=RetryPolicy(max_retries=max_retries, base_delay=base_delay),
        )
