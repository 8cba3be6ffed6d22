from courier_booking.schemas.base import CamelModel
from courier_booking.schemas.booking import BookingResponse, BookingSubmission
from courier_booking.schemas.otp import OtpGenerateResponse, OtpVerifyRequest


def test_request_models_share_camel_case_base():
    for model in (BookingSubmission, BookingResponse, OtpVerifyRequest, OtpGenerateResponse):
        assert issubclass(model, CamelModel)


def test_camel_and_snake_keys_both_populate():
    assert OtpVerifyRequest.model_validate({"phoneNumber": "+971501234567"}).phone_number == "+971501234567"
    assert OtpVerifyRequest(phone_number="+971501234567").phone_number == "+971501234567"


def test_numeric_otp_is_coerced_to_string():
    assert OtpVerifyRequest.model_validate({"otp": 482913}).otp == "482913"
    assert BookingSubmission.model_validate({"otp": 482913}).otp == "482913"


def test_response_dumps_camel_case():
    dumped = OtpGenerateResponse(
        phone_number="+971501234567", expires_in_minutes=5, max_attempts=3
    ).model_dump(by_alias=True)
    assert dumped["phoneNumber"] == "+971501234567"
    assert dumped["expiresInMinutes"] == 5
