"""HTTP-level tests for the OTP and booking endpoints."""

from unittest.mock import AsyncMock, patch

from courier_booking import error_handlers
from courier_booking.exceptions import DeliveryError, StorageError
from courier_booking.services.id_extraction_service import DocumentAnalysis

PHONE = "+971501234567"


async def issue_otp(client, pending_code, phone: str = PHONE) -> str:
    response = await client.post("/api/otp/generate", json={"phoneNumber": phone})
    assert response.status_code == 200
    return await pending_code(phone)


class TestOtpEndpoints:
    async def test_generate(self, client, sms_gateway):
        response = await client.post("/api/otp/generate", json={"phoneNumber": "+971 50 123 4567"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "phoneNumber": PHONE,
            "expiresInMinutes": 5,
            "maxAttempts": 3,
            "message": "OTP sent successfully",
        }
        sms_gateway.send.assert_awaited_once()

    async def test_generate_requires_phone(self, client):
        response = await client.post("/api/otp/generate", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "VALIDATION_ERROR"
        assert data["error"] == "Phone number is required"
        assert data["requestId"] == response.headers["X-Request-ID"]

    async def test_generate_delivery_failure(self, client, sms_gateway):
        sms_gateway.send.side_effect = DeliveryError("Failed to send OTP: Insufficient credit")

        response = await client.post("/api/otp/generate", json={"phoneNumber": PHONE})

        assert response.status_code == 502
        assert response.json()["code"] == "SMS_DELIVERY_FAILED"

    async def test_verify(self, client, pending_code):
        code = await issue_otp(client, pending_code)

        response = await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": code})

        assert response.status_code == 200
        assert response.json() == {"success": True, "verified": True}

    async def test_verify_accepts_numeric_code(self, client):
        with patch("courier_booking.otp.manager.generate_code", return_value="482913"):
            await client.post("/api/otp/generate", json={"phoneNumber": PHONE})

        response = await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": 482913})
        assert response.status_code == 200

    async def test_verify_mismatch_reports_remaining_attempts(self, client, pending_code):
        code = await issue_otp(client, pending_code)
        bad = "1" * 6 if code != "1" * 6 else "2" * 6

        response = await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": bad})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "OTP_MISMATCH"
        assert data["error"] == "Invalid OTP"
        assert data["remainingAttempts"] == 2

    async def test_verify_unknown_number(self, client):
        response = await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": "123456"})

        assert response.status_code == 404
        assert response.json()["code"] == "OTP_NOT_FOUND"

    async def test_verify_exhausted(self, client, pending_code):
        code = await issue_otp(client, pending_code)
        bad = "1" * 6 if code != "1" * 6 else "2" * 6
        for _ in range(3):
            await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": bad})

        response = await client.post("/api/otp/verify", json={"phoneNumber": PHONE, "otp": code})

        assert response.status_code == 429
        assert response.json()["code"] == "OTP_ATTEMPTS_EXHAUSTED"


class TestBookingEndpoint:
    async def test_submit(self, client, pending_code, submission_payload):
        code = await issue_otp(client, pending_code)

        response = await client.post("/api/bookings", json=submission_payload(otp=code))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["awb"].startswith("PH")
        assert len(data["awb"]) == 17
        assert data["referenceNumber"].startswith("KNX")
        assert data["bookingId"]
        assert data["message"] == "Booking submitted successfully"

    async def test_missing_blocks(self, client, submission_payload):
        payload = submission_payload()
        del payload["receiver"]

        response = await client.post("/api/bookings", json=payload)

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["missingFields"] == ["receiver"]

    async def test_malformed_body(self, client, submission_payload):
        response = await client.post("/api/bookings", json=submission_payload(sender="not-an-object"))

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_identity_mismatch(self, client, extractor, pending_code, submission_payload):
        extractor.analyze.return_value = DocumentAnalysis(
            text="UNITED ARAB EMIRATES",
            is_target_document=True,
            side="front",
            confidence=0.9,
            extracted_name="AHMED ALI",
        )
        code = await issue_otp(client, pending_code)

        response = await client.post("/api/bookings", json=submission_payload(
            otp=code,
            eidFrontImage="data:image/jpeg;base64,QUJD",
            eidFrontImageFirstName="John",
            eidFrontImageLastName="Doe",
        ))

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "IDENTITY_MISMATCH"
        assert data["confidence"] == 0.2

    async def test_storage_error_hides_details_outside_development(
        self, client, store, pending_code, submission_payload, monkeypatch
    ):
        monkeypatch.setattr(error_handlers.settings, "environment", "production")
        code = await issue_otp(client, pending_code)
        store.insert_one = AsyncMock(
            side_effect=StorageError("Failed to insert into bookings", details="disk I/O error")
        )

        response = await client.post("/api/bookings", json=submission_payload(otp=code))

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "STORAGE_ERROR"
        assert "details" not in data

    async def test_storage_error_shows_details_in_development(
        self, client, store, pending_code, submission_payload, monkeypatch
    ):
        monkeypatch.setattr(error_handlers.settings, "environment", "development")
        code = await issue_otp(client, pending_code)
        store.insert_one = AsyncMock(
            side_effect=StorageError("Failed to insert into bookings", details="disk I/O error")
        )

        response = await client.post("/api/bookings", json=submission_payload(otp=code))

        assert response.status_code == 500
        assert response.json()["details"] == "disk I/O error"


class TestRequestIds:
    async def test_inbound_request_id_is_reused(self, client):
        response = await client.post(
            "/api/otp/verify",
            json={"phoneNumber": PHONE, "otp": "123456"},
            headers={"X-Request-ID": "booking-form-42"},
        )

        assert response.headers["X-Request-ID"] == "booking-form-42"
        assert response.json()["requestId"] == "booking-form-42"

    async def test_malformed_inbound_request_id_is_replaced(self, client):
        response = await client.get("/api/health", headers={"X-Request-ID": "bad id!"})

        assert response.headers["X-Request-ID"] != "bad id!"
        assert len(response.headers["X-Request-ID"]) == 12
