"""
Time-bounded memo of the active template per (event type, channel).
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from hrnotify.models.enums import Channel, EventType

from .errors import TemplateConfigurationError
from .metrics import template_cache_hits_total, template_cache_misses_total
from .schemas import TemplateRead

logger = logging.getLogger(__name__)

TemplateLoader = Callable[[EventType, Channel], List[TemplateRead]]

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class _CacheEntry:
    template: Optional[TemplateRead]
    fetched_at: float


class TemplateCache:
    """
    Caches the single active template for a key, including "no template",
    for ``ttl_seconds``. Expiry is the only implicit invalidation;
    template editors call ``invalidate`` after a write.
    """

    def __init__(
        self,
        loader: TemplateLoader,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[EventType, Channel], _CacheEntry] = {}
        self._lock = threading.Lock()

    def get_template(self, event_type: EventType, channel: Channel) -> Optional[TemplateRead]:
        key = (EventType(event_type), Channel(channel))
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and now - entry.fetched_at < self._ttl:
            template_cache_hits_total.inc()
            return entry.template

        template_cache_misses_total.inc()
        templates = self._loader(*key)
        if len(templates) > 1:
            # Not cached: the next lookup re-checks once someone fixes the data
            raise TemplateConfigurationError(key[0].value, key[1].value, len(templates))
        template = templates[0] if templates else None

        with self._lock:
            self._entries[key] = _CacheEntry(template=template, fetched_at=now)
        logger.debug(
            "[TemplateCache] refreshed %s/%s -> %s",
            key[0].value, key[1].value, template.id if template else None,
        )
        return template

    def invalidate(self, event_type: Optional[EventType] = None, channel: Optional[Channel] = None) -> None:
        """Drop cached entries matching the given event type and/or channel (all when both are None)."""
        with self._lock:
            for key in list(self._entries):
                if event_type is not None and key[0] != EventType(event_type):
                    continue
                if channel is not None and key[1] != Channel(channel):
                    continue
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
