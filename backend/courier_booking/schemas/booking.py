from datetime import datetime
from typing import Any

from pydantic import ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from courier_booking.schemas.base import CamelModel


class PartyDetails(CamelModel):
    """Sender or receiver block. Unknown keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email_address: str | None = None
    agent_name: str | None = None

    complete_address: str | None = None
    country: str | None = None
    address_line1: str | None = None
    # Deprecated address parts, still stored when sent.
    emirates: str | None = None
    region: str | None = None
    province: str | None = None
    city: str | None = None
    district: str | None = None
    zone: str | None = None
    barangay: str | None = None
    landmark: str | None = None

    latitude: float | None = None
    longitude: float | None = None

    dial_code: str | None = None
    phone_number: str | None = None
    contact_no: str | None = None
    delivery_option: str | None = None


class AdditionalDetails(CamelModel):
    payment_method: str | None = None
    email: str | None = None
    additional_instructions: str | None = None


class BookingSubmission(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sender: PartyDetails | None = None
    receiver: PartyDetails | None = None
    items: list[dict[str, Any]] | None = None
    service: str | None = None
    terms_accepted: bool = False
    submission_timestamp: str | None = None

    otp_phone_number: str | None = None
    otp: str | None = None

    shipment_type: str | None = None
    insured: bool | None = None
    declared_amount: Any = None

    eid_front_image: str | None = None
    eid_back_image: str | None = None
    eid_front_image_first_name: str | None = None
    eid_front_image_last_name: str | None = None
    philippines_id_front: str | None = None
    philippines_id_back: str | None = None
    customer_image: str | None = None
    customer_images: list[str] | None = None

    additional_details: AdditionalDetails | None = None

    @field_validator("otp", mode="before")
    @classmethod
    def _otp_as_string(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class BookingResponse(CamelModel):
    success: bool = True
    reference_number: str
    awb: str
    booking_id: str
    message: str = "Booking submitted successfully"
    timestamp: datetime
