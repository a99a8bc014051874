from __future__ import annotations

from redis import Redis

from courier.cache.message_cache import MessageCache
from courier.core.config import settings
from courier.core.db import SessionLocal
from courier.delivery.base import DeliveryPort
from courier.delivery.webhook import WebhookClient
from courier.dispatch.dispatcher import Dispatcher
from courier.store.repository import SqlMessageStore


def build_message_store() -> SqlMessageStore:
    return SqlMessageStore(SessionLocal)


def build_webhook_client() -> WebhookClient:
    return WebhookClient(
        url=settings.WEBHOOK_URL,
        auth_key=settings.WEBHOOK_AUTH_KEY,
        auth_header=settings.WEBHOOK_AUTH_HEADER,
    )


def build_message_cache() -> MessageCache:
    r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
    return MessageCache(r, ttl_s=settings.MESSAGE_CACHE_TTL_S)


def build_dispatcher(
    *,
    delivery: DeliveryPort,
    cache: MessageCache | None = None,
    store: SqlMessageStore | None = None,
    batch_size: int | None = None,
) -> Dispatcher:
    return Dispatcher(
        store=store or build_message_store(),
        delivery=delivery,
        cache=cache,
        interval_s=settings.DISPATCH_INTERVAL_S,
        batch_size=batch_size or settings.DISPATCH_BATCH_SIZE,
        batch_timeout_s=settings.DISPATCH_BATCH_TIMEOUT_S,
        message_timeout_s=settings.DISPATCH_MESSAGE_TIMEOUT_S,
    )
