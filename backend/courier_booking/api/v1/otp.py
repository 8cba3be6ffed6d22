"""OTP endpoints: request a code by SMS and verify it."""

from fastapi import APIRouter, Depends

from courier_booking.dependencies import get_otp_manager
from courier_booking.otp.manager import OtpManager
from courier_booking.schemas.otp import (
    OtpGenerateRequest,
    OtpGenerateResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)

router = APIRouter()


@router.post("/generate", response_model=OtpGenerateResponse)
async def generate_otp(
    request: OtpGenerateRequest,
    otp_manager: OtpManager = Depends(get_otp_manager),
) -> OtpGenerateResponse:
    issue = await otp_manager.generate(request.phone_number)
    return OtpGenerateResponse(
        phone_number=issue.phone_number,
        expires_in_minutes=issue.expires_in_minutes,
        max_attempts=issue.max_attempts,
    )


@router.post("/verify", response_model=OtpVerifyResponse)
async def verify_otp(
    request: OtpVerifyRequest,
    otp_manager: OtpManager = Depends(get_otp_manager),
) -> OtpVerifyResponse:
    await otp_manager.verify(request.phone_number, request.otp)
    return OtpVerifyResponse()
