from __future__ import annotations

from enum import Enum


class CourierError(Exception):
    """Base class. `op` names the failed operation, `message_id` the record involved."""

    def __init__(self, detail: str = "", *, op: str | None = None, message_id: str | None = None) -> None:
        self.detail = detail
        self.op = op
        self.message_id = message_id
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [p for p in (self.op, self.detail) if p]
        text = ": ".join(parts) or type(self).__name__
        if self.message_id:
            text += f" (message_id={self.message_id})"
        return text


class NotFound(CourierError):
    pass


class OperationFailed(CourierError):
    pass


class ConfigurationError(CourierError):
    pass


class CacheError(CourierError):
    pass


class ContentTooLong(CourierError, ValueError):
    def __init__(self, *, length: int, max_length: int) -> None:
        self.length = length
        self.max_length = max_length
        super().__init__(f"content has {length} characters, maximum is {max_length}", op="create message")


class DeliveryFailureKind(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    UNEXPECTED_STATUS = "unexpected_status"
    DECODE = "decode"


class DeliveryFailed(CourierError):
    def __init__(
        self,
        kind: DeliveryFailureKind,
        detail: str = "",
        *,
        status_code: int | None = None,
        message_id: str | None = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        super().__init__(detail, op=f"deliver[{kind.value}]", message_id=message_id)
