from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DeliveryReceipt:
    provider_message_id: str
    message: str | None = None


class DeliveryPort(Protocol):
    """Posts one message to the remote endpoint.

    Raises DeliveryFailed on timeout, transport errors, any status other than the
    accepted one, or an undecodable response body.
    """

    def deliver(self, *, to: str, content: str, timeout: float) -> DeliveryReceipt: ...
