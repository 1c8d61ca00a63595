import logging
from typing import Dict, Iterable, Optional

from hrnotify.models.enums import Channel
from hrnotify.services.base import UNKNOWN_ERROR, UNSUPPORTED_CHANNEL, ChannelAdapter, DeliveryResult

from .metrics import reminders_dispatch_failed_total, reminders_dispatch_success_total
from .schemas import EmployeeRead

logger = logging.getLogger(__name__)


def recipient_address(employee: EmployeeRead, channel: Channel) -> Optional[str]:
    """Pick the employee field a channel delivers to. WhatsApp falls back to the mobile number."""
    if channel == Channel.EMAIL:
        return employee.email
    if channel == Channel.SMS:
        return employee.mobile_number
    if channel == Channel.WHATSAPP:
        return employee.chat_handle or employee.mobile_number
    return None


class ChannelDispatcher:
    """Routes a rendered message to the adapter registered for its channel"""

    def __init__(self, adapters: Iterable[ChannelAdapter]):
        self._adapters: Dict[Channel, ChannelAdapter] = {a.channel: a for a in adapters}

    @property
    def channels(self):
        return list(self._adapters)

    def is_configured(self, channel: Channel) -> bool:
        adapter = self._adapters.get(channel)
        return adapter is not None and adapter.is_configured

    async def send(self, channel: Channel, recipient: Optional[str], subject: Optional[str], body: str) -> DeliveryResult:
        adapter = self._adapters.get(channel)
        if adapter is None:
            result = DeliveryResult.failed(UNSUPPORTED_CHANNEL, f"Invalid channel: {channel}")
        else:
            try:
                result = await adapter.send(recipient, subject, body)
            except Exception as e:
                # Adapters are not supposed to raise; keep the run alive if one does
                logger.exception("[Dispatcher] %s adapter raised", adapter.name)
                result = DeliveryResult.failed(UNKNOWN_ERROR, str(e) or e.__class__.__name__)

        label = channel.value if isinstance(channel, Channel) else str(channel)
        if result.success:
            reminders_dispatch_success_total.labels(channel=label).inc()
        else:
            reminders_dispatch_failed_total.labels(channel=label).inc()
        return result
