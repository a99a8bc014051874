from __future__ import annotations

import logging
from dataclasses import dataclass

from courier.cache.message_cache import CachedSend, MessageCache
from courier.core.errors import CacheError
from courier.models.tables import Message
from courier.store.repository import SqlMessageStore

log = logging.getLogger("sent_query")


@dataclass(frozen=True)
class SentMessage:
    message: Message
    cached: CachedSend | None = None


@dataclass(frozen=True)
class SentPage:
    items: list[SentMessage]
    page: int
    page_size: int
    total: int


class SentMessagesQuery:
    """Paginated sent messages, joined with whatever the cache still holds."""

    def __init__(self, *, store: SqlMessageStore, cache: MessageCache | None = None) -> None:
        self._store = store
        self._cache = cache

    def page(self, *, page: int, page_size: int) -> SentPage:
        messages, total = self._store.list_sent(page=page, page_size=page_size)
        return SentPage(
            items=[SentMessage(message=m, cached=self._lookup(m.id)) for m in messages],
            page=page,
            page_size=page_size,
            total=total,
        )

    def _lookup(self, message_id: str) -> CachedSend | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(message_id)
        except CacheError as e:
            log.warning("Cache lookup failed for message %s: %s", message_id, e)
            return None
