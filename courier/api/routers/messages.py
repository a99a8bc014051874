from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from courier.api.deps import get_message_cache, get_message_store
from courier.cache.message_cache import MessageCache
from courier.core.config import settings
from courier.core.errors import ContentTooLong, NotFound, OperationFailed
from courier.query.sent import SentMessagesQuery
from courier.schemas.messages import MessageCreate, MessageOut, SentMessageOut, SentMessagesPage
from courier.store.repository import SqlMessageStore
from courier.util.time import as_utc

router = APIRouter()


def _positive_int(raw: str | None, default: int) -> int:
    # Unparseable or non-positive values fall back to the default.
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


def _to_out(msg, model: type[MessageOut] = MessageOut) -> MessageOut:
    # SQLite hands back naive datetimes; they are stored as UTC.
    out = model.model_validate(msg)
    out.sent_at = as_utc(out.sent_at)
    out.created_at = as_utc(out.created_at)
    out.updated_at = as_utc(out.updated_at)
    return out


@router.get("/sent", response_model=SentMessagesPage, response_model_exclude_none=True)
def list_sent(
    page: str | None = None,
    page_size: str | None = None,
    store: SqlMessageStore = Depends(get_message_store),
    cache: MessageCache | None = Depends(get_message_cache),
) -> SentMessagesPage:
    page_n = _positive_int(page, 1)
    size = min(_positive_int(page_size, settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)

    try:
        result = SentMessagesQuery(store=store, cache=cache).page(page=page_n, page_size=size)
    except OperationFailed:
        raise HTTPException(status_code=500, detail="Database operation failed")

    messages = []
    for item in result.items:
        out = _to_out(item.message, SentMessageOut)
        if item.cached is not None:
            out.cached_sent_at = item.cached.sent_at
            out.cached_message_id = item.cached.provider_message_id
        messages.append(out)

    return SentMessagesPage(messages=messages, page=result.page, page_size=result.page_size, total=result.total)


@router.post("/messages", response_model=MessageOut, status_code=201)
def create_message(payload: MessageCreate, store: SqlMessageStore = Depends(get_message_store)) -> MessageOut:
    try:
        msg = store.create_message(to=payload.to, content=payload.content)
    except ContentTooLong as e:
        raise HTTPException(status_code=422, detail=str(e))
    except OperationFailed:
        raise HTTPException(status_code=500, detail="Database operation failed")
    return _to_out(msg)


@router.get("/messages/{message_id}", response_model=MessageOut)
def get_message(message_id: str, store: SqlMessageStore = Depends(get_message_store)) -> MessageOut:
    try:
        msg = store.get_message(message_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Message not found")
    except OperationFailed:
        raise HTTPException(status_code=500, detail="Database operation failed")
    return _to_out(msg)
