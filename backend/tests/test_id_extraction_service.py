import json
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from courier_booking.exceptions import ExtractionError
from courier_booking.services.id_extraction_service import (
    DocumentAnalysis,
    IdExtractionService,
    analysis_from_text,
    split_image_payload,
)

FRONT_SIDE_REPLY = {
    "extractedText": "UNITED ARAB EMIRATES IDENTITY CARD Name of Holder: JOHN MICHAEL DOE",
    "isEmiratesID": True,
    "side": "front",
    "confidence": 0.94,
    "reason": "Emirates ID front side with holder name",
    "extractedName": "JOHN MICHAEL DOE",
}


def make_mock_message(content_text: str):
    """Create a mock Anthropic message response."""
    mock_content = MagicMock()
    mock_content.type = "text"
    mock_content.text = content_text
    mock_message = MagicMock()
    mock_message.content = [mock_content]
    return mock_message


@pytest.fixture
def service(test_settings) -> IdExtractionService:
    return IdExtractionService(test_settings)


async def test_analyze_parses_json(service):
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = make_mock_message(json.dumps(FRONT_SIDE_REPLY))
        result = await service.analyze("data:image/png;base64,iVBORw0KGgo=")

    assert isinstance(result, DocumentAnalysis)
    assert result.is_target_document is True
    assert result.side == "front"
    assert result.confidence == 0.94
    assert result.extracted_name == "JOHN MICHAEL DOE"
    assert result.requires_back_side is True

    kwargs = mock_create.call_args.kwargs
    assert kwargs["model"] == service.model
    assert kwargs["temperature"] == 0.1
    image_block = kwargs["messages"][0]["content"][0]
    assert image_block["source"] == {"type": "base64", "media_type": "image/png", "data": "iVBORw0KGgo="}


async def test_analyze_handles_markdown_fence(service):
    reply = "Here is the analysis:\n```json\n" + json.dumps({**FRONT_SIDE_REPLY, "side": "back", "extractedName": None}) + "\n```"
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = make_mock_message(reply)
        result = await service.analyze("aGVsbG8=")

    assert result.side == "back"
    assert result.extracted_name is None
    assert result.requires_back_side is False


async def test_analyze_not_an_emirates_id(service):
    reply = json.dumps({
        "extractedText": "REPUBLIC OF THE PHILIPPINES DRIVER'S LICENSE",
        "isEmiratesID": False,
        "side": "unknown",
        "confidence": 0.9,
        "reason": "Philippine driver's license",
        "extractedName": None,
    })
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = make_mock_message(reply)
        result = await service.analyze("aGVsbG8=")

    assert result.is_target_document is False
    assert result.reason == "Philippine driver's license"


async def test_analyze_falls_back_to_text_heuristics(service):
    reply = "UNITED ARAB EMIRATES\nNationality: United Arab Emirates\nName of Holder: AHMED ALI"
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = make_mock_message(reply)
        result = await service.analyze("aGVsbG8=")

    assert result.is_target_document is True
    assert result.side == "front"
    assert result.confidence == 0.7
    assert result.extracted_name == "AHMED ALI"


async def test_analyze_api_error_raises(service):
    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.side_effect = error
        with pytest.raises(ExtractionError) as exc:
            await service.analyze("aGVsbG8=")

    assert exc.value.status_code == 502


@pytest.mark.parametrize("blocks", [[], [MagicMock(type="tool_use")]])
async def test_analyze_reply_without_text_raises(service, blocks):
    with patch.object(service.client.messages, "create", new_callable=AsyncMock) as mock_create:
        mock_create.return_value = MagicMock(content=blocks)
        with pytest.raises(ExtractionError, match="empty response"):
            await service.analyze("aGVsbG8=")


class TestHelpers:
    def test_split_data_url(self):
        assert split_image_payload("data:image/jpg;base64,QUJD") == ("image/jpeg", "QUJD")
        assert split_image_payload("data:image/webp;base64,QUJD") == ("image/webp", "QUJD")

    def test_split_bare_base64_defaults_to_jpeg(self):
        assert split_image_payload("  QUJD \n") == ("image/jpeg", "QUJD")

    def test_text_heuristics_back_side(self):
        result = analysis_from_text("Emirates ID\nDate of Birth: 01/01/1990\nHolder's Signature")
        assert result.is_target_document is True
        assert result.side == "back"
        assert result.extracted_name is None

    def test_text_heuristics_unrelated_document(self):
        result = analysis_from_text("Grocery receipt total 45.00 AED")
        assert result.is_target_document is False
        assert result.confidence == 0.3
