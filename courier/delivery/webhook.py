from __future__ import annotations

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from courier.core.errors import ConfigurationError, DeliveryFailed, DeliveryFailureKind
from courier.delivery.base import DeliveryReceipt
from courier.util.time import Deadline

# The webhook signals acceptance with 202 only.
ACCEPTED_STATUS = 202


def _truncate(s: str, n: int = 200) -> str:
    s = s or ""
    return s if len(s) <= n else s[:n] + "…"


class WebhookResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    message_id: str = Field(alias="messageId")


class WebhookClient:
    def __init__(
        self,
        *,
        url: str,
        auth_key: str,
        auth_header: str = "x-ins-auth-key",
        client: httpx.Client | None = None,
    ) -> None:
        if not url:
            raise ConfigurationError("WEBHOOK_URL is not configured", op="build webhook client")
        self.url = url
        self._headers = {"Content-Type": "application/json", auth_header: auth_key}
        self._client = client or httpx.Client()

    def deliver(self, *, to: str, content: str, timeout: float) -> DeliveryReceipt:
        # httpx timeouts bound each connect/read/write step; the deadline bounds
        # the whole exchange, checked again between body chunks.
        deadline = Deadline(timeout)
        try:
            with self._client.stream(
                "POST",
                self.url,
                json={"to": to, "content": content},
                headers=self._headers,
                timeout=httpx.Timeout(deadline.remaining()),
            ) as resp:
                status_code = resp.status_code
                raw = self._read_body(resp, deadline)
        except httpx.TimeoutException as e:
            raise DeliveryFailed(DeliveryFailureKind.TIMEOUT, f"request timeout exceeded: {e}") from e
        except httpx.HTTPError as e:
            raise DeliveryFailed(DeliveryFailureKind.TRANSPORT, f"{type(e).__name__}: {e}") from e

        text = raw.decode("utf-8", errors="replace")
        if status_code != ACCEPTED_STATUS:
            raise DeliveryFailed(
                DeliveryFailureKind.UNEXPECTED_STATUS,
                f"unexpected status code {status_code}: {_truncate(text)}",
                status_code=status_code,
            )

        try:
            body = WebhookResponse.model_validate_json(raw)
        except ValidationError as e:
            raise DeliveryFailed(
                DeliveryFailureKind.DECODE,
                f"decode response: {_truncate(text)}",
                status_code=status_code,
            ) from e

        return DeliveryReceipt(provider_message_id=body.message_id, message=body.message)

    @staticmethod
    def _read_body(resp: httpx.Response, deadline: Deadline) -> bytes:
        chunks = []
        if deadline.expired:
            raise DeliveryFailed(DeliveryFailureKind.TIMEOUT, "deadline exceeded before response body")
        for chunk in resp.iter_bytes():
            chunks.append(chunk)
            if deadline.expired:
                raise DeliveryFailed(
                    DeliveryFailureKind.TIMEOUT,
                    f"deadline exceeded while reading response body ({sum(map(len, chunks))} bytes read)",
                    status_code=resp.status_code,
                )
        return b"".join(chunks)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> WebhookClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
