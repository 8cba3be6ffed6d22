from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from courier_booking.config import Settings
from courier_booking.database import init_models
from courier_booking.services.id_extraction_service import DocumentAnalysis, IdExtractionService
from courier_booking.services.sms_gateway import SmsDelivery, SmsGateway
from courier_booking.store.document_store import OTP_COLLECTION, DocumentStore


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///test.db",
        sms_api_token="test-token",
        anthropic_api_key="test-key",
    )


# SQLite per test (no Postgres dependency needed for unit tests)
@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(test_engine) -> DocumentStore:
    return DocumentStore.from_engine(test_engine)


@pytest.fixture
def sms_gateway():
    gateway = MagicMock(spec=SmsGateway)
    gateway.send = AsyncMock(return_value=SmsDelivery(success=True, message_id="msg-001"))
    return gateway


@pytest.fixture
def extractor():
    service = MagicMock(spec=IdExtractionService)
    service.analyze = AsyncMock(return_value=DocumentAnalysis(
        text="UNITED ARAB EMIRATES\nIDENTITY CARD\nName: JOHN DOE",
        is_target_document=True,
        side="front",
        confidence=0.92,
        reason="Emirates ID front side",
        extracted_name="JOHN DOE",
    ))
    return service


@pytest.fixture
def pending_code(store):
    """Return the code stored for the pending OTP of a phone number."""

    async def _lookup(phone_number: str) -> str:
        record = await store.find_one(OTP_COLLECTION, {"phone_number": phone_number, "verified": False})
        assert record is not None, f"no pending OTP for {phone_number}"
        return record["code"]

    return _lookup


@pytest.fixture
async def client(store, sms_gateway, extractor):
    from courier_booking.dependencies import get_extractor, get_sms_gateway, get_store
    from courier_booking.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sms_gateway] = lambda: sms_gateway
    app.dependency_overrides[get_extractor] = lambda: extractor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def submission_payload():
    """Factory for a valid booking request body (camelCase, as sent by the web form)."""

    def _make(**overrides) -> dict:
        payload = {
            "service": "uae-to-pinas",
            "termsAccepted": True,
            "sender": {
                "fullName": "John Doe",
                "firstName": "John",
                "lastName": "Doe",
                "emailAddress": "john@example.com",
                "country": "UNITED ARAB EMIRATES",
                "addressLine1": "Al Nahda 2, Dubai",
                "phoneNumber": "501234567",
            },
            "receiver": {
                "fullName": "Maria Santos",
                "firstName": "Maria",
                "lastName": "Santos",
                "country": "PHILIPPINES",
                "addressLine1": "Quezon City, Metro Manila",
                "phoneNumber": "9171234567",
            },
            "items": [{"id": 1, "commodity": "Clothes", "qty": 3}],
            "otpPhoneNumber": "+971501234567",
            "otp": "000000",
        }
        payload.update(overrides)
        return payload

    return _make
