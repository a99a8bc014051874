from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from courier.core.errors import ContentTooLong
from courier.models.base import Base
from courier.util.ids import new_uuid
from courier.util.time import now_utc

# Hard limit on message content, counted in characters (code points).
CONTENT_MAX_LENGTH = 150


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_unsent_created", "is_sent", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    to: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(String(CONTENT_MAX_LENGTH), nullable=False)

    # is_sent == True iff sent_at is set
    is_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    @validates("content")
    def _check_content(self, key: str, value: str) -> str:
        if value is not None and len(value) > CONTENT_MAX_LENGTH:
            raise ContentTooLong(length=len(value), max_length=CONTENT_MAX_LENGTH)
        return value

    def __repr__(self) -> str:
        return f"<Message id={self.id} to={self.to!r} is_sent={self.is_sent}>"
