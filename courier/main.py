from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI
from sqlalchemy import text

from courier.api.routers.dispatcher import router as dispatcher_router
from courier.api.routers.messages import router as messages_router
from courier.core.config import settings
from courier.core.db import SessionLocal, engine
from courier.core.logging import configure_logging
from courier.dispatch import factory
from courier.models.base import Base
from courier.store.sample_data import seed_sample_messages

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger("app")

app = FastAPI(title=settings.APP_NAME, description="Periodic webhook dispatch of stored messages")


def _retry_backoff(fn, *, attempts: int = 30, base_sleep_s: float = 1.0, max_sleep_s: float = 2.0, what: str) -> bool:
    sleep_s = base_sleep_s
    for i in range(1, attempts + 1):
        try:
            fn()
            return True
        except Exception as e:
            if i == attempts:
                log.error("Startup: %s still not ready after %s attempts: %s", what, attempts, str(e))
                return False
            log.warning("Startup: %s not ready (attempt %s/%s): %s", what, i, attempts, str(e))
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 2.0)
    return False


def _ping_postgres() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def _check_postgres() -> bool:
    try:
        _ping_postgres()
        return True
    except Exception:
        return False


@app.on_event("startup")
def _startup() -> None:
    if settings.ENSURE_EXTERNAL_DEPS_ON_STARTUP:
        _retry_backoff(_ping_postgres, what="postgres")
    else:
        log.info("Startup: ENSURE_EXTERNAL_DEPS_ON_STARTUP=false; skipping dependency wait")

    if settings.CREATE_SCHEMA_ON_STARTUP:
        Base.metadata.create_all(bind=engine)
    if settings.SEED_SAMPLE_DATA:
        seed_sample_messages(SessionLocal)

    store = factory.build_message_store()
    cache = factory.build_message_cache()
    webhook = factory.build_webhook_client()

    app.state.message_store = store
    app.state.message_cache = cache
    app.state.webhook = webhook
    app.state.dispatcher = factory.build_dispatcher(delivery=webhook, cache=cache, store=store)

    if settings.DISPATCH_AUTOSTART:
        app.state.dispatcher.start()


@app.on_event("shutdown")
def _shutdown() -> None:
    dispatcher = getattr(app.state, "dispatcher", None)
    if dispatcher is not None:
        log.info("Shutting down: waiting for the dispatcher to stop")
        dispatcher.stop()

    webhook = getattr(app.state, "webhook", None)
    if webhook is not None:
        webhook.close()

    cache = getattr(app.state, "message_cache", None)
    if cache is not None:
        cache.close()


@app.get("/health")
def health() -> dict[str, Any]:
    cache = getattr(app.state, "message_cache", None)
    dispatcher = getattr(app.state, "dispatcher", None)
    deps = {
        "postgres": _check_postgres(),
        "redis": cache.ping() if cache is not None else False,
    }
    return {
        "ok": all(deps.values()),
        "deps": deps,
        "dispatcher_running": dispatcher.is_running() if dispatcher is not None else False,
        "app": settings.APP_NAME,
    }


app.include_router(dispatcher_router, tags=["dispatcher"])
app.include_router(messages_router, tags=["messages"])
