from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from courier.models.tables import CONTENT_MAX_LENGTH


class MessageCreate(BaseModel):
    to: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    to: str
    content: str
    is_sent: bool
    sent_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SentMessageOut(MessageOut):
    cached_sent_at: datetime | None = None
    cached_message_id: str | None = None


class SentMessagesPage(BaseModel):
    messages: list[SentMessageOut]
    page: int
    page_size: int
    total: int


class StatusResponse(BaseModel):
    status: str


class RunningResponse(BaseModel):
    running: bool
