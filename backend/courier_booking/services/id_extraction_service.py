"""
Claude vision service for Emirates ID text extraction.

One call does OCR, document classification (is this an Emirates ID, which
side) and, for the front side, holder-name extraction. When the model reply
is not parseable JSON the reply text is classified with keyword heuristics.
"""

import json
import logging
import re
from dataclasses import dataclass

import anthropic

from courier_booking.config import Settings
from courier_booking.exceptions import ExtractionError

logger = logging.getLogger("courier.extraction")

SIDE_FRONT = "front"
SIDE_BACK = "back"
SIDE_UNKNOWN = "unknown"

EXTRACTION_PROMPT = """Analyze this image and:

1. Extract ALL visible text exactly as it appears (including numbers, labels, and any text)
2. Identify if this is an Emirates ID (United Arab Emirates identity card)
3. If it's an Emirates ID, determine which side it is (front or back)
4. If it's the FRONT side of an Emirates ID, extract the NAME OF HOLDER (the person's full name in English)
5. Provide your confidence level (0-1)

For Emirates ID identification, look for:
- Front side indicators: "EMIRATES ID", "UNITED ARAB EMIRATES", "IDENTITY CARD", "Name of Holder", "Nationality", "ID Number", "Card Number", Arabic text
- Back side indicators: "Date of Birth", "Date of Expiry", "Holder's Signature", "Card ID", "Place of Birth", "Valid Until"

For name extraction (FRONT SIDE ONLY):
- Look for the "Name of Holder" field or the English name field
- Return the full name in UPPERCASE (e.g., "AHMED MOHAMMED ALI")
- If the name cannot be found, return null for extractedName

Respond with ONLY a JSON object in this exact format:
{
  "extractedText": "all text from the image",
  "isEmiratesID": true/false,
  "side": "front" or "back" or "unknown",
  "confidence": 0.0-1.0,
  "reason": "brief explanation of your identification",
  "extractedName": "FULL NAME IN UPPERCASE" or null
}"""

EID_KEYWORDS = (
    "emirates id",
    "united arab emirates",
    "identity card",
    "name of holder",
    "nationality",
    "id number",
)

HOLDER_NAME_PATTERNS = (
    re.compile(r"name\s+of\s+holder[:\s]+([A-Z\s]+)", re.IGNORECASE),
    re.compile(r"name[:\s]+([A-Z\s]+)", re.IGNORECASE),
    re.compile(r"holder[:\s]+([A-Z\s]+)", re.IGNORECASE),
)

_DATA_URL = re.compile(r"^data:(image/[A-Za-z0-9.+-]+);base64,(.*)$", re.DOTALL)


@dataclass
class DocumentAnalysis:
    """Result of analysing one identity-document image."""

    text: str
    is_target_document: bool
    side: str
    confidence: float
    reason: str = ""
    extracted_name: str | None = None

    @property
    def requires_back_side(self) -> bool:
        return self.is_target_document and self.side == SIDE_FRONT


def split_image_payload(image: str) -> tuple[str, str]:
    """Split a data URL or bare base64 string into (media_type, base64_data)."""
    match = _DATA_URL.match(image.strip())
    if match:
        media_type = match.group(1).lower()
        if media_type == "image/jpg":
            media_type = "image/jpeg"
        return media_type, match.group(2)
    return "image/jpeg", image.strip()


def _parse_json_response(response_text: str) -> dict:
    """Parse the JSON object out of a model reply, tolerating markdown fences."""
    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    if not text.startswith("{"):
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if match:
            text = match.group(0)

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, IndexError) as e:
        raise ValueError(f"Model response was not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Model response was not a JSON object")
    return data


def analysis_from_text(text: str) -> DocumentAnalysis:
    """Classify a free-text reply with keyword heuristics."""
    lower = text.lower()
    is_eid = any(keyword in lower for keyword in EID_KEYWORDS)

    side = SIDE_UNKNOWN
    if "date of birth" in lower or "date of expiry" in lower or "signature" in lower:
        side = SIDE_BACK
    elif "name of holder" in lower or "nationality" in lower:
        side = SIDE_FRONT

    extracted_name = None
    if side == SIDE_FRONT:
        for pattern in HOLDER_NAME_PATTERNS:
            match = pattern.search(text)
            if match and match.group(1).strip():
                extracted_name = match.group(1).strip().upper()
                break

    return DocumentAnalysis(
        text=text,
        is_target_document=is_eid,
        side=side,
        confidence=0.7 if is_eid else 0.3,
        reason="Extracted from text response",
        extracted_name=extracted_name,
    )


def _coerce_confidence(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    return min(max(confidence, 0.0), 1.0)


def analysis_from_json(data: dict, raw_text: str) -> DocumentAnalysis:
    is_eid = data.get("isEmiratesID")
    side = str(data.get("side") or SIDE_UNKNOWN).lower()
    if side not in (SIDE_FRONT, SIDE_BACK):
        side = SIDE_UNKNOWN

    return DocumentAnalysis(
        text=data.get("extractedText") or raw_text,
        is_target_document=is_eid is True or str(is_eid).lower() == "true",
        side=side,
        confidence=_coerce_confidence(data.get("confidence")),
        reason=data.get("reason") or "Analysis completed",
        extracted_name=(data.get("extractedName") or None),
    )


class IdExtractionService:
    def __init__(self, settings: Settings, logger: logging.Logger = logger):
        self.client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.claude_vision_model
        self.max_tokens = settings.claude_max_tokens
        self._logger = logger

    async def analyze(self, image: str) -> DocumentAnalysis:
        """Extract text from an identity-document image and classify it.

        Args:
            image: Base64 image, optionally as a ``data:image/...;base64,`` URL.

        Returns:
            DocumentAnalysis for the image.

        Raises:
            ExtractionError: If the vision API call fails.
        """
        media_type, data = split_image_payload(image)
        content = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": media_type, "data": data},
            },
            {"type": "text", "text": EXTRACTION_PROMPT},
        ]

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0.1,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            self._logger.error("Vision API error: %s", e)
            raise ExtractionError(f"OCR extraction failed: {e}") from e

        text_blocks = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not text_blocks:
            self._logger.error("Vision API reply had no text content")
            raise ExtractionError("OCR extraction failed: empty response from vision model")
        reply = text_blocks[0]

        try:
            analysis = analysis_from_json(_parse_json_response(reply), reply)
        except ValueError:
            self._logger.warning("Could not parse JSON response, extracting from text")
            analysis = analysis_from_text(reply)

        self._logger.info(
            "EID analysis: is_eid=%s side=%s confidence=%.2f name_found=%s",
            analysis.is_target_document,
            analysis.side,
            analysis.confidence,
            analysis.extracted_name is not None,
        )
        return analysis
