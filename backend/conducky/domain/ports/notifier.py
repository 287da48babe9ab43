from __future__ import annotations

from typing import Protocol


class DeliveryError(Exception):
    """Raised by a Notifier when an email could not be handed to the transport."""


class Notifier(Protocol):
    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        action_url: str | None = None,
    ) -> None:
        ...
