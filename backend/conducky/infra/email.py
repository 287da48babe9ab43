from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import httpx

from ..config import Settings
from ..domain.ports.notifier import DeliveryError, Notifier

logger = logging.getLogger("conducky.email")


class ConsoleNotifier:
    """Development notifier: writes the email to the log instead of sending it."""

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        action_url: str | None = None,
    ) -> None:
        logger.info(
            "email_console to=%s subject=%r action_url=%s body=%r",
            to,
            subject,
            action_url,
            body,
        )


class HttpNotifier:
    """POST each email as JSON to a mail API endpoint."""

    def __init__(
        self,
        *,
        api_url: str,
        sender: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        max_retries: int = 1,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._sender = sender
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._headers = dict(headers or {})
        if api_key:
            self._headers.setdefault("Authorization", f"Bearer {api_key}")
        self._transport = transport

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        action_url: str | None = None,
    ) -> None:
        payload = {
            "from": self._sender,
            "to": to,
            "subject": subject,
            "text": body if action_url is None else f"{body}\n\n{action_url}",
        }
        last_error: httpx.HTTPError | None = None
        for attempt in range(self._max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout_seconds,
                    headers=self._headers,
                    transport=self._transport,
                ) as client:
                    response = await client.post(self._api_url, json=payload)
                    response.raise_for_status()
                    return
            except httpx.HTTPStatusError as exc:
                # 4xx will not succeed on retry.
                if exc.response.status_code < 500:
                    raise DeliveryError(
                        f"Mail API rejected message status={exc.response.status_code}"
                    ) from exc
                last_error = exc
            except httpx.RequestError as exc:
                last_error = exc
            if attempt < self._max_retries:
                await asyncio.sleep(0.5 * (attempt + 1))

        raise DeliveryError(f"Mail API request failed: {last_error}") from last_error


def build_notifier(settings: Settings) -> Notifier:
    if settings.email_provider == "http":
        if not settings.email_api_url:
            raise ValueError("EMAIL_API_URL must be set when EMAIL_PROVIDER=http")
        return HttpNotifier(
            api_url=settings.email_api_url,
            sender=settings.email_from,
            api_key=settings.email_api_key,
        )
    return ConsoleNotifier()
