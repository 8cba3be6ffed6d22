"""
OTP lifecycle: generate → deliver → store → verify.

At most one unverified record exists per phone number; generating a new code
removes the previous unverified ones. A verified record no longer matches the
lookup filter, so each successful verification is consumable exactly once.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from courier_booking.config import Settings
from courier_booking.exceptions import (
    AttemptsExhaustedError,
    BookingIntakeError,
    ExpiredError,
    MismatchError,
    NotFoundError,
    ValidationError,
)
from courier_booking.services.sms_gateway import SmsGateway
from courier_booking.store.document_store import DESCENDING, OTP_COLLECTION, DocumentStore

logger = logging.getLogger("courier.otp")

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_NORMALIZED_PHONE = re.compile(r"^\+\d{10,15}$")


@dataclass
class OtpIssue:
    phone_number: str
    expires_at: datetime
    expires_in_minutes: int
    max_attempts: int
    message_id: str | None = None


@dataclass
class OtpVerification:
    phone_number: str
    verified: bool
    verified_at: datetime
    attempts: int

    def snapshot(self) -> dict:
        return {
            "phoneNumber": self.phone_number,
            "verified": self.verified,
            "verifiedAt": self.verified_at.isoformat(),
            "attempts": self.attempts,
        }


def normalize_phone_number(phone_number) -> str:
    """Return ``+`` followed by digits, or raise ValidationError."""
    if not isinstance(phone_number, str) or not phone_number.strip():
        raise ValidationError("Phone number is required")

    cleaned = _PHONE_SEPARATORS.sub("", phone_number.strip())
    if not cleaned.startswith("+"):
        raise ValidationError("Phone number must include country code (e.g., +971501234567)")
    if not _NORMALIZED_PHONE.match(cleaned):
        raise ValidationError("Invalid phone number format")
    return cleaned


def generate_code(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OtpManager:
    def __init__(
        self,
        store: DocumentStore,
        sms_gateway: SmsGateway,
        settings: Settings,
        logger: logging.Logger = logger,
    ):
        self.store = store
        self.sms_gateway = sms_gateway
        self.length = settings.otp_length
        self.expiry_minutes = settings.otp_expiry_minutes
        self.max_attempts = settings.otp_max_attempts
        self._logger = logger

    def config(self) -> dict:
        return {
            "length": self.length,
            "expiryMinutes": self.expiry_minutes,
            "maxAttempts": self.max_attempts,
        }

    async def generate(self, phone_number: str) -> OtpIssue:
        """Issue a fresh code for ``phone_number`` and deliver it by SMS.

        The record is stored only after the gateway acknowledges delivery.

        Raises:
            ValidationError: Malformed phone number.
            DeliveryError: Gateway failure; no record is created.
        """
        phone = normalize_phone_number(phone_number)
        code = generate_code(self.length)
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=self.expiry_minutes)

        await self._discard_pending(phone)

        message = f"Your OTP is {code}. Valid for {self.expiry_minutes} minutes."
        delivery = await self.sms_gateway.send(phone, message)

        await self.store.insert_one(OTP_COLLECTION, {
            "phone_number": phone,
            "code": code,
            "created_at": now,
            "expires_at": expires_at,
            "verified": False,
            "attempts": 0,
            "max_attempts": self.max_attempts,
        })
        self._logger.info("OTP issued for %s (expires %s)", phone, expires_at.isoformat())

        return OtpIssue(
            phone_number=phone,
            expires_at=expires_at,
            expires_in_minutes=self.expiry_minutes,
            max_attempts=self.max_attempts,
            message_id=delivery.message_id,
        )

    async def verify(self, phone_number: str, code: str) -> OtpVerification:
        """Check ``code`` against the pending record for ``phone_number``.

        Raises:
            ValidationError: Malformed phone number or empty code.
            NotFoundError: No pending record.
            ExpiredError: Record expired (it is deleted).
            AttemptsExhaustedError: No attempts left (record is deleted).
            MismatchError: Wrong code; carries the remaining attempt count.
        """
        phone = normalize_phone_number(phone_number)
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("OTP is required")
        code = code.strip()

        record = await self.store.find_one(
            OTP_COLLECTION,
            {"phone_number": phone, "verified": False},
            sort=[("created_at", DESCENDING)],
        )
        if record is None:
            raise NotFoundError()

        now = datetime.now(timezone.utc)
        if now > _as_utc(record["expires_at"]):
            await self.store.delete_one(OTP_COLLECTION, {"id": record["id"]})
            self._logger.info("OTP for %s expired", phone)
            raise ExpiredError()

        if record["attempts"] >= record["max_attempts"]:
            await self.store.delete_one(OTP_COLLECTION, {"id": record["id"]})
            self._logger.info("OTP for %s exhausted its attempts", phone)
            raise AttemptsExhaustedError()

        attempts = record["attempts"] + 1
        await self.store.update_one(
            OTP_COLLECTION, {"id": record["id"]}, {"$inc": {"attempts": 1}}
        )

        if not secrets.compare_digest(record["code"].encode(), code.encode()):
            remaining = max(record["max_attempts"] - attempts, 0)
            self._logger.info("OTP mismatch for %s (%d attempts left)", phone, remaining)
            raise MismatchError(remaining_attempts=remaining)

        consumed = await self.store.update_one(
            OTP_COLLECTION,
            {"id": record["id"], "verified": False},
            {"$set": {"verified": True, "verified_at": now}},
        )
        if not consumed:
            self._logger.info("OTP for %s was already consumed", phone)
            raise NotFoundError()
        self._logger.info("OTP verified for %s", phone)

        return OtpVerification(
            phone_number=phone, verified=True, verified_at=now, attempts=attempts
        )

    async def _discard_pending(self, phone: str) -> None:
        try:
            removed = await self.store.delete_many(
                OTP_COLLECTION, {"phone_number": phone, "verified": False}
            )
        except BookingIntakeError as e:
            self._logger.warning("Could not remove superseded OTPs for %s: %s", phone, e)
            return
        if removed:
            self._logger.info("Removed %d superseded OTP(s) for %s", removed, phone)
