"""Builds the persisted booking document from a validated submission."""

from datetime import datetime, timezone

from courier_booking.booking.routes import DEFAULT_SERVICE, DialCodes, Route
from courier_booking.booking.validation import ShipmentDeclaration
from courier_booking.models.booking import BookingStatus
from courier_booking.otp.manager import OtpVerification
from courier_booking.schemas.booking import BookingSubmission, PartyDetails

REFERENCE_PREFIX = "KNX"
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

DEFAULT_COUNTRIES = {
    Route.UAE_TO_PINAS: ("UNITED ARAB EMIRATES", "PHILIPPINES"),
    Route.PINAS_TO_UAE: ("PHILIPPINES", "UNITED ARAB EMIRATES"),
}


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_reference_number(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return REFERENCE_PREFIX + to_base36(int(now.timestamp() * 1000))


def _party_common(party: PartyDetails, dial_code: str, default_country: str) -> dict:
    return {
        "fullName": party.full_name or "",
        "firstName": party.first_name or "",
        "lastName": party.last_name or "",
        "emailAddress": party.email_address or "",
        "completeAddress": party.complete_address or None,
        "country": party.country or default_country,
        "city": party.city or None,
        "landmark": party.landmark or None,
        "addressLine1": party.address_line1 or None,
        "latitude": party.latitude,
        "longitude": party.longitude,
        "dialCode": dial_code,
        "phoneNumber": party.phone_number or "",
        "contactNo": party.contact_no or "",
    }


def build_sender(party: PartyDetails, dial_code: str, default_country: str) -> dict:
    return {
        **_party_common(party, dial_code, default_country),
        "agentName": party.agent_name or "",
        "emirates": party.emirates or None,
        "district": party.district or None,
        "zone": party.zone or None,
        "deliveryOption": party.delivery_option or "warehouse",
    }


def build_receiver(party: PartyDetails, dial_code: str, default_country: str) -> dict:
    return {
        **_party_common(party, dial_code, default_country),
        "region": party.region or None,
        "province": party.province or None,
        "barangay": party.barangay or None,
        "deliveryOption": party.delivery_option or "delivery",
    }


def build_identity_documents(submission: BookingSubmission) -> dict:
    documents = {
        "eidFrontImage": submission.eid_front_image or None,
        "eidBackImage": submission.eid_back_image or None,
        "customerImage": submission.customer_image or None,
        "customerImages": submission.customer_images
        or ([submission.customer_image] if submission.customer_image else []),
    }
    # Philippines ID images are only stored when sent.
    if submission.philippines_id_front:
        documents["philippinesIdFront"] = submission.philippines_id_front
    if submission.philippines_id_back:
        documents["philippinesIdBack"] = submission.philippines_id_back
    return documents


def build_additional_details(submission: BookingSubmission) -> dict | None:
    details = submission.additional_details
    if details is None:
        return None
    return {
        "paymentMethod": details.payment_method or "cash",
        "email": details.email or None,
        "additionalInstructions": details.additional_instructions or None,
    }


def assemble_booking(
    submission: BookingSubmission,
    *,
    route: Route,
    dial_codes: DialCodes,
    awb: str,
    reference_number: str,
    otp_verification: OtpVerification,
    identity_verification: dict | None = None,
    shipment: ShipmentDeclaration | None = None,
    submitted_at: datetime | None = None,
) -> dict:
    """Return the bookings-collection document for a verified submission."""
    submitted_at = submitted_at or datetime.now(timezone.utc)
    sender_country, receiver_country = DEFAULT_COUNTRIES[route]

    return {
        "awb": awb,
        "reference_number": reference_number,
        "service": submission.service or DEFAULT_SERVICE,
        "route": route.value,
        "sender": build_sender(submission.sender, dial_codes.sender, sender_country),
        "receiver": build_receiver(submission.receiver, dial_codes.receiver, receiver_country),
        "items": list(submission.items),
        "shipment": shipment.to_dict() if shipment else None,
        "identity_documents": build_identity_documents(submission),
        "additional_details": build_additional_details(submission),
        "otp_verification": otp_verification.snapshot(),
        "identity_verification": identity_verification,
        "terms_accepted": bool(submission.terms_accepted),
        "submitted_at": submitted_at,
        "submission_timestamp": submission.submission_timestamp or submitted_at.isoformat(),
        "status": BookingStatus.PENDING.value,
        "source": "web",
    }
