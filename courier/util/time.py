from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


class Deadline:
    """A monotonic time budget. A child deadline never outlives its parent."""

    def __init__(
        self,
        seconds: float,
        *,
        parent: Deadline | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        expires_at = clock() + max(0.0, seconds)
        if parent is not None:
            expires_at = min(expires_at, parent.expires_at)
        self.expires_at = expires_at

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def child(self, seconds: float) -> Deadline:
        return Deadline(seconds, parent=self, clock=self._clock)
