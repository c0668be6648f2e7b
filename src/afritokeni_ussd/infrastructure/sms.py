"""SMS delivery clients.

LoggingSmsSender writes messages to the log instead of a handset and is the
development default. AfricasTalkingSmsSender posts to the Africa's Talking
messaging API over httpx. Neither retries: a failed send raises DeliveryError
and the caller treats it as the outcome of the current step.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from afritokeni_ussd.domain.exceptions import DeliveryError
from afritokeni_ussd.domain.phone import identity_for
from afritokeni_ussd.logging_config import get_logger

if TYPE_CHECKING:
    from afritokeni_ussd.config import Settings

logger = get_logger(__name__)


class LoggingSmsSender:
    """Records outgoing messages instead of sending them."""

    def __init__(self) -> None:
        self.outbox: list[tuple[str, str]] = []

    async def send(self, phone_number: str, message: str) -> None:
        recipient = identity_for(phone_number)
        self.outbox.append((recipient, message))
        logger.info("sms.simulated", to=recipient, length=len(message))


class AfricasTalkingSmsSender:
    """Delivers messages through the Africa's Talking bulk SMS endpoint."""

    def __init__(
        self,
        username: str,
        api_key: str,
        base_url: str = "https://api.africastalking.com",
        sender_id: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._username = username
        self._api_key = api_key
        self._sender_id = sender_id
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> AfricasTalkingSmsSender:
        return cls(
            username=settings.africastalking_username,
            api_key=settings.africastalking_api_key,
            base_url=settings.africastalking_base_url,
            sender_id=settings.africastalking_sender_id,
            timeout=settings.sms_timeout_seconds,
        )

    async def send(self, phone_number: str, message: str) -> None:
        recipient = identity_for(phone_number)
        form = {"username": self._username, "to": recipient, "message": message}
        if self._sender_id:
            form["from"] = self._sender_id
        try:
            response = await self._client.post(
                "/version1/messaging",
                data=form,
                headers={"apiKey": self._api_key, "Accept": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("sms.delivery_failed", to=recipient, error=str(exc))
            raise DeliveryError(f"SMS gateway error: {exc}") from exc

        recipients = payload.get("SMSMessageData", {}).get("Recipients", [])
        if not recipients or recipients[0].get("status") != "Success":
            status = recipients[0].get("status") if recipients else "no recipients"
            logger.error("sms.rejected", to=recipient, status=status)
            raise DeliveryError(f"SMS rejected by gateway: {status}")

        logger.info("sms.sent", to=recipient, message_id=recipients[0].get("messageId"))

    async def aclose(self) -> None:
        await self._client.aclose()
