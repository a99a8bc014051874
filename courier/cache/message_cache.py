from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError
from redis import Redis
from redis.exceptions import RedisError

from courier.core.errors import CacheError
from courier.util.time import now_utc

KEY_PREFIX = "message:"
DEFAULT_TTL_S = 24 * 60 * 60


class CacheEntry(BaseModel):
    sent_at: int  # unix seconds
    message_id: str


@dataclass(frozen=True)
class CachedSend:
    sent_at: datetime
    provider_message_id: str


def cache_key(message_id: str) -> str:
    return f"{KEY_PREFIX}{message_id}"


class MessageCache:
    """Best-effort record of webhook-assigned ids, keyed by our message id.

    Not authoritative: the store's sent flag is. Callers treat CacheError as
    non-fatal.
    """

    def __init__(self, redis: Redis, *, ttl_s: int = DEFAULT_TTL_S) -> None:
        self._redis = redis
        self.ttl_s = ttl_s

    def put(self, message_id: str, provider_message_id: str, *, sent_at: datetime | None = None) -> None:
        sent_at = sent_at or now_utc()
        entry = CacheEntry(sent_at=int(sent_at.timestamp()), message_id=provider_message_id)
        try:
            self._redis.set(cache_key(message_id), entry.model_dump_json(), ex=self.ttl_s)
        except RedisError as e:
            raise CacheError(str(e), op="cache put", message_id=message_id) from e

    def get(self, message_id: str) -> CachedSend | None:
        try:
            raw = self._redis.get(cache_key(message_id))
        except RedisError as e:
            raise CacheError(str(e), op="cache get", message_id=message_id) from e

        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            raise CacheError("undecodable cache value", op="cache get", message_id=message_id) from e

        return CachedSend(
            sent_at=datetime.fromtimestamp(entry.sent_at, tz=timezone.utc),
            provider_message_id=entry.message_id,
        )

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False

    def close(self) -> None:
        self._redis.close()
