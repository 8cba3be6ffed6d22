"""
SMSALA gateway client for OTP delivery.

The gateway takes a JSON array of message objects and answers with an array of
per-message results; a message is delivered when ``Status == "Success"`` or
``OperationCode == 0``.
"""

import logging
from dataclasses import dataclass, field

import httpx

from courier_booking.config import Settings
from courier_booking.exceptions import DeliveryError

logger = logging.getLogger("courier.sms")

MESSAGE_TYPE_OTP = "3"
ENCODING_ASCII = "1"


@dataclass
class SmsDelivery:
    success: bool
    message_id: str | None = None
    raw: dict = field(default_factory=dict)


def format_destination(phone_number: str) -> str:
    """Strip whitespace and the leading ``+``; the gateway wants bare digits."""
    return "".join(phone_number.split()).lstrip("+")


class SmsGateway:
    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger = logger,
    ):
        self.api_url = settings.sms_api_url
        self.api_token = settings.sms_api_token
        self.source_address = settings.sms_source_address
        self.client = client or httpx.AsyncClient(timeout=settings.sms_timeout_seconds)
        self._logger = logger

        if not self.api_token:
            self._logger.warning("SMS_API_TOKEN is not configured; OTP delivery will fail")

    async def send(self, phone_number: str, message: str) -> SmsDelivery:
        """Send a text message.

        Args:
            phone_number: Destination with country code, with or without ``+``.
            message: Message body.

        Raises:
            DeliveryError: On transport failure or a non-success gateway status.
        """
        if not self.api_token:
            raise DeliveryError("SMS gateway token is not configured")

        destination = format_destination(phone_number)
        if len(destination) < 10:
            raise DeliveryError("Invalid phone number format")

        payload = [{
            "apiToken": self.api_token,
            "messageType": MESSAGE_TYPE_OTP,
            "messageEncoding": ENCODING_ASCII,
            "destinationAddress": destination,
            "sourceAddress": self.source_address,
            "messageText": message,
        }]

        self._logger.info("Sending SMS to %s via %s", destination[-4:].rjust(len(destination), "*"), self.source_address)

        try:
            response = await self.client.post(self.api_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            self._logger.error("SMS gateway request failed: %s", e)
            raise DeliveryError(f"Failed to send OTP: {e}") from e
        except ValueError as e:
            self._logger.error("SMS gateway returned non-JSON body: %s", e)
            raise DeliveryError("Invalid response format from SMS gateway") from e

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise DeliveryError("Invalid response format from SMS gateway")

        result = data[0]
        if result.get("Status") == "Success" or result.get("OperationCode") == 0:
            message_id = result.get("MessageId")
            self._logger.info("SMS accepted by gateway (message_id=%s)", message_id)
            return SmsDelivery(success=True, message_id=message_id, raw=result)

        remarks = result.get("Remarks") or "Failed to send OTP via SMS gateway"
        self._logger.error("SMS gateway rejected message: %s", remarks)
        raise DeliveryError(f"Failed to send OTP: {remarks}")

    async def aclose(self) -> None:
        await self.client.aclose()
