"""
Booking submission rules. Pure functions, no I/O.

Each check raises ``ValidationError`` with a caller-facing message on the
first violation.
"""

import math
from dataclasses import dataclass

from courier_booking.booking.routes import Route, requires_shipment_declaration
from courier_booking.exceptions import ValidationError
from courier_booking.schemas.booking import BookingSubmission, PartyDetails

SHIPMENT_DOCUMENT = "document"
SHIPMENT_NON_DOCUMENT = "non-document"
SHIPMENT_TYPES = (SHIPMENT_DOCUMENT, SHIPMENT_NON_DOCUMENT)


@dataclass(frozen=True)
class ShipmentDeclaration:
    shipment_type: str
    insured: bool
    declared_amount: float

    def to_dict(self) -> dict:
        return {
            "shipmentType": self.shipment_type,
            "insured": self.insured,
            "declaredAmount": self.declared_amount,
        }


def validate_structure(submission: BookingSubmission, *, max_address_length: int = 200) -> None:
    """Check required blocks, party fields and optional geolocation."""
    missing = [
        name
        for name, value in (
            ("sender", submission.sender),
            ("receiver", submission.receiver),
            ("items", submission.items),
        )
        if not value
    ]
    if missing:
        raise ValidationError(
            "Missing required booking information (sender, receiver, items)",
            missingFields=missing,
        )

    validate_party(submission.sender, "Sender", max_address_length=max_address_length)
    validate_party(submission.receiver, "Receiver", max_address_length=max_address_length)


def validate_party(party: PartyDetails, role: str, *, max_address_length: int = 200) -> None:
    if not (party.last_name or "").strip():
        raise ValidationError(f"{role} last name is required")

    if not (party.country or "").strip():
        raise ValidationError(f"{role} country is required")

    if party.address_line1 and len(party.address_line1) > max_address_length:
        raise ValidationError(
            f"{role} address line 1 must not exceed {max_address_length} characters",
            length=len(party.address_line1),
        )

    validate_geolocation(party.latitude, party.longitude, role)


def validate_geolocation(latitude: float | None, longitude: float | None, role: str) -> None:
    if latitude is None and longitude is None:
        return
    if latitude is None or longitude is None:
        raise ValidationError(f"{role} latitude and longitude must be provided together")
    if not math.isfinite(latitude) or not -90 <= latitude <= 90:
        raise ValidationError(f"{role} latitude must be between -90 and 90")
    if not math.isfinite(longitude) or not -180 <= longitude <= 180:
        raise ValidationError(f"{role} longitude must be between -180 and 180")


def parse_declared_amount(value) -> float:
    """Coerce a declared amount to float; reject booleans, blanks and non-numbers."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Declared amount must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError("Declared amount must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Declared amount must be a number") from None
    if not math.isfinite(amount):
        raise ValidationError("Declared amount must be a number")
    return amount


def apply_shipment_rules(
    submission: BookingSubmission,
    route: Route,
    *,
    declared_amount_ceiling: float = 1_000_000,
) -> ShipmentDeclaration | None:
    """Resolve shipment type, insurance and declared value for the route.

    Returns None on routes that take no declaration.
    """
    if not requires_shipment_declaration(route):
        return None

    shipment_type = (submission.shipment_type or "").strip()
    if shipment_type not in SHIPMENT_TYPES:
        raise ValidationError(
            "Shipment type must be 'document' or 'non-document'",
            shipmentType=submission.shipment_type,
        )

    if shipment_type == SHIPMENT_DOCUMENT:
        return ShipmentDeclaration(shipment_type=shipment_type, insured=False, declared_amount=0)

    amount = parse_declared_amount(submission.declared_amount)
    if amount <= 0:
        raise ValidationError("Declared amount must be greater than 0")
    if amount > declared_amount_ceiling:
        raise ValidationError(
            f"Declared amount must not exceed {declared_amount_ceiling:,.0f}",
            maxDeclaredAmount=declared_amount_ceiling,
        )

    return ShipmentDeclaration(shipment_type=shipment_type, insured=True, declared_amount=amount)


def require_otp_fields(submission: BookingSubmission) -> tuple[str, str]:
    phone = (submission.otp_phone_number or "").strip()
    code = (submission.otp or "").strip()
    if not phone or not code:
        raise ValidationError("OTP verification is required. Please provide otpPhoneNumber and otp.")
    return phone, code
