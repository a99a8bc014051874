from __future__ import annotations

from typing import Callable, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courier.core.errors import NotFound, OperationFailed
from courier.models.tables import Message
from courier.util.time import now_utc


class MessageStore(Protocol):
    """What the dispatcher needs from persistence."""

    def fetch_unsent(self, limit: int, *, timeout: float | None = None) -> list[Message]: ...

    def mark_sent(self, message_id: str, *, timeout: float | None = None) -> None: ...


def limit_statement_time(db: Session, timeout: float | None, *, op: str, message_id: str | None = None) -> None:
    """Bound the statements of the current transaction by `timeout` seconds.

    Enforced server-side on Postgres; other backends only get the expired check.
    """

    if timeout is None:
        return
    if timeout <= 0:
        raise OperationFailed("deadline exceeded", op=op, message_id=message_id)
    if db.get_bind().dialect.name == "postgresql":
        # SET does not accept bind parameters; the value is an int we computed.
        ms = max(1, int(timeout * 1000))
        db.execute(text(f"SET LOCAL statement_timeout = {ms}"))


class SqlMessageStore:
    """SQLAlchemy-backed message store.

    Every call opens its own session, so one instance can be shared between the
    dispatch thread and request handlers. Returned rows are detached but fully
    loaded.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def fetch_unsent(self, limit: int, *, timeout: float | None = None) -> list[Message]:
        if limit <= 0:
            return []
        try:
            with self._session_factory() as db:
                limit_statement_time(db, timeout, op="fetch unsent messages")
                return (
                    db.query(Message)
                    .filter(Message.is_sent.is_(False), Message.deleted_at.is_(None))
                    .order_by(Message.created_at.asc(), Message.id.asc())
                    .limit(limit)
                    .all()
                )
        except SQLAlchemyError as e:
            raise OperationFailed(str(e), op="fetch unsent messages") from e

    def mark_sent(self, message_id: str, *, timeout: float | None = None) -> None:
        with self._session_factory() as db:
            try:
                limit_statement_time(db, timeout, op="mark message sent", message_id=message_id)
                m = (
                    db.query(Message)
                    .filter(Message.id == message_id, Message.deleted_at.is_(None))
                    .with_for_update()
                    .one_or_none()
                )
                if m is None:
                    raise NotFound(op="mark message sent", message_id=message_id)

                # sent_at is written once; re-marking a sent row is a no-op.
                if not m.is_sent:
                    m.is_sent = True
                    m.sent_at = now_utc()
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise OperationFailed(str(e), op="mark message sent", message_id=message_id) from e

    def list_sent(self, *, page: int, page_size: int) -> tuple[list[Message], int]:
        offset = (max(page, 1) - 1) * page_size
        try:
            with self._session_factory() as db:
                q = db.query(Message).filter(Message.is_sent.is_(True), Message.deleted_at.is_(None))
                total = q.count()
                items = q.order_by(Message.sent_at.desc(), Message.id.asc()).offset(offset).limit(page_size).all()
                return items, total
        except SQLAlchemyError as e:
            raise OperationFailed(str(e), op="list sent messages") from e

    def create_message(self, *, to: str, content: str) -> Message:
        # Content length is validated by the model before anything touches the db.
        msg = Message(to=to, content=content, is_sent=False, sent_at=None, created_at=now_utc())
        with self._session_factory() as db:
            try:
                db.add(msg)
                db.commit()
                db.refresh(msg)
            except SQLAlchemyError as e:
                db.rollback()
                raise OperationFailed(str(e), op="create message") from e
        return msg

    def get_message(self, message_id: str) -> Message:
        try:
            with self._session_factory() as db:
                m = (
                    db.query(Message)
                    .filter(Message.id == message_id, Message.deleted_at.is_(None))
                    .one_or_none()
                )
        except SQLAlchemyError as e:
            raise OperationFailed(str(e), op="get message", message_id=message_id) from e
        if m is None:
            raise NotFound(op="get message", message_id=message_id)
        return m

    def soft_delete(self, message_id: str) -> None:
        with self._session_factory() as db:
            try:
                m = (
                    db.query(Message)
                    .filter(Message.id == message_id, Message.deleted_at.is_(None))
                    .one_or_none()
                )
                if m is None:
                    raise NotFound(op="delete message", message_id=message_id)
                m.deleted_at = now_utc()
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise OperationFailed(str(e), op="delete message", message_id=message_id) from e
