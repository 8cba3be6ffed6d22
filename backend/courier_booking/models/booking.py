"""ORM model for persisted shipment bookings."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from courier_booking.models.base import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    awb: Mapped[str] = mapped_column(String(17), nullable=False, unique=True, index=True)
    reference_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    service: Mapped[str] = mapped_column(String(100), nullable=False)
    route: Mapped[str] = mapped_column(String(50), nullable=False)

    sender: Mapped[dict] = mapped_column(JSON, nullable=False)
    receiver: Mapped[dict] = mapped_column(JSON, nullable=False)
    items: Mapped[list] = mapped_column(JSON, nullable=False)
    shipment: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    identity_documents: Mapped[dict] = mapped_column(JSON, nullable=False)
    additional_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    otp_verification: Mapped[dict] = mapped_column(JSON, nullable=False)
    identity_verification: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    terms_accepted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    submission_timestamp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), default=BookingStatus.PENDING.value, nullable=False
    )
    source: Mapped[str] = mapped_column(String(32), default="web", nullable=False)
