from pydantic import field_validator

from courier_booking.schemas.base import CamelModel


class OtpGenerateRequest(CamelModel):
    phone_number: str | None = None


class OtpGenerateResponse(CamelModel):
    success: bool = True
    phone_number: str
    expires_in_minutes: int
    max_attempts: int
    message: str = "OTP sent successfully"


class OtpVerifyRequest(CamelModel):
    phone_number: str | None = None
    otp: str | None = None

    @field_validator("otp", mode="before")
    @classmethod
    def _otp_as_string(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class OtpVerifyResponse(CamelModel):
    success: bool = True
    verified: bool = True
