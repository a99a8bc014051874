from __future__ import annotations

from fastapi import HTTPException, Request

from courier.cache.message_cache import MessageCache
from courier.dispatch.dispatcher import Dispatcher
from courier.store.repository import SqlMessageStore


def get_dispatcher(request: Request) -> Dispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher is not initialized")
    return dispatcher


def get_message_store(request: Request) -> SqlMessageStore:
    store = getattr(request.app.state, "message_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Message store is not initialized")
    return store


def get_message_cache(request: Request) -> MessageCache | None:
    # The cache is optional; the sent listing works without it.
    return getattr(request.app.state, "message_cache", None)
