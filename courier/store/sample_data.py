from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable

from sqlalchemy.orm import Session

from courier.models.tables import Message
from courier.util.time import now_utc

log = logging.getLogger("sample_data")


def seed_sample_messages(session_factory: Callable[[], Session]) -> int:
    """Insert a few unsent messages when the table is empty. Returns rows inserted."""

    with session_factory() as db:
        if db.query(Message).count():
            return 0

        now = now_utc()
        samples = [
            ("+905071773757", "Merhaba! Bu bir örnek mesajdır.", now),
            ("+90555255555", "İkinci örnek mesaj", now - timedelta(hours=1)),
            ("+905071773525", "Üçüncü örnek mesaj", now - timedelta(hours=2)),
        ]
        for to, content, created_at in samples:
            db.add(Message(to=to, content=content, is_sent=False, sent_at=None, created_at=created_at))
        db.commit()

    log.info("Seeded %s sample messages", len(samples))
    return len(samples)
