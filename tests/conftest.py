from __future__ import annotations

import os

import pytest

# Settings are read at import time; make sure nothing reaches for real services.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("WEBHOOK_URL", "http://webhook.test/hook")
os.environ.setdefault("WEBHOOK_AUTH_KEY", "test-key")
os.environ.setdefault("ENSURE_EXTERNAL_DEPS_ON_STARTUP", "0")
os.environ.setdefault("DISPATCH_AUTOSTART", "0")


@pytest.fixture()
def store():
    from courier.core.db import SessionLocal, engine
    from courier.models.base import Base
    from courier.store.repository import SqlMessageStore

    # SQLite tests don't run Alembic; start every test from an empty table.
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return SqlMessageStore(SessionLocal)
