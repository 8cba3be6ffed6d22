from courier_booking.models.base import Base
from courier_booking.models.booking import Booking, BookingStatus
from courier_booking.models.otp import OtpRecord

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "OtpRecord",
]
