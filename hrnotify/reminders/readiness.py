"""
Start-up check that reminder runs can actually deliver: which channel adapters
have credentials, and how many active templates back each enabled event's channels.
"""
import logging
from typing import Any, Dict

from hrnotify.models.enums import Channel

from .dispatcher import ChannelDispatcher

logger = logging.getLogger(__name__)


def build_readiness_report(store, dispatcher: ChannelDispatcher) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "channels": {channel.value: {"configured": dispatcher.is_configured(channel)} for channel in Channel},
        "events": [],
        "warnings": [],
    }

    for config in store.find_enabled_event_configs():
        event = {
            "event_type": config.event_type.value,
            "lead_days": config.lead_days,
            "delivery_time": config.delivery_time.isoformat(timespec="minutes"),
            "templates": {},
        }
        for channel in config.channels:
            count = store.count_active_templates(config.event_type, channel)
            event["templates"][channel.value] = count
            if count == 0:
                report["warnings"].append(f"{config.event_type.value}/{channel.value}: no active template")
            elif count > 1:
                report["warnings"].append(f"{config.event_type.value}/{channel.value}: {count} active templates")
            if not dispatcher.is_configured(channel):
                report["warnings"].append(f"{config.event_type.value}/{channel.value}: channel not configured")
        report["events"].append(event)

    return report


def log_readiness_report(report: Dict[str, Any]) -> None:
    for name, status in report["channels"].items():
        logger.info("[Readiness] %s service: %s", name, "CONFIGURED" if status["configured"] else "NOT CONFIGURED")
    for event in report["events"]:
        logger.info(
            "[Readiness] %s: lead days %s at %s, templates %s",
            event["event_type"], event["lead_days"], event["delivery_time"], event["templates"],
        )
    for warning in report["warnings"]:
        logger.warning("[Readiness] %s", warning)
