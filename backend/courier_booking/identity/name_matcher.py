"""Pure name-matching functions for EID holder-name checks. No I/O.

Printed document names often carry middle names, so the comparison returns a
graduated confidence rather than a plain boolean; callers compare it against
a threshold.
"""

import re
from dataclasses import dataclass

CONFIDENCE_EXACT = 1.0
CONFIDENCE_FIRST_AND_LAST = 0.95
CONFIDENCE_WITH_MIDDLE_NAMES = 0.85
CONFIDENCE_PARTIAL = 0.65
CONFIDENCE_NO_MATCH = 0.2

_NON_WORD = re.compile(r"[^\w\s]")

_NAME_PATTERNS = (
    re.compile(r"name\s+of\s+holder[:\s]+([A-Z][A-Z \t]+)", re.IGNORECASE),
    re.compile(r"name[:\s]+([A-Z][A-Z \t]+)", re.IGNORECASE),
    re.compile(r"holder[:\s]+([A-Z][A-Z \t]+)", re.IGNORECASE),
    re.compile(r"(?:^|\n)([A-Z]{2,}(?:[ \t]+[A-Z]{2,}){1,3})(?:\n|$)"),
)


@dataclass
class NameMatchResult:
    extracted_name: str | None
    provided_first_name: str | None
    provided_last_name: str | None
    match: bool
    confidence: float
    reason: str
    needs_manual_review: bool = False

    def to_dict(self) -> dict:
        return {
            "extractedName": self.extracted_name,
            "providedFirstName": self.provided_first_name,
            "providedLastName": self.provided_last_name,
            "match": self.match,
            "confidence": self.confidence,
            "reason": self.reason,
            "needsManualReview": self.needs_manual_review,
        }


def normalize_name(name: str | None) -> str:
    """Uppercase, trim, collapse whitespace and drop punctuation."""
    if not name or not isinstance(name, str):
        return ""
    collapsed = " ".join(name.upper().split())
    return " ".join(_NON_WORD.sub("", collapsed).split())


def compare_names(
    extracted_name: str | None,
    provided_first_name: str | None,
    provided_last_name: str | None,
) -> NameMatchResult:
    """Compare a document name against the submitted first and last name."""

    def result(match: bool, confidence: float, reason: str, review: bool = False) -> NameMatchResult:
        return NameMatchResult(
            extracted_name=extracted_name,
            provided_first_name=provided_first_name,
            provided_last_name=provided_last_name,
            match=match,
            confidence=confidence,
            reason=reason,
            needs_manual_review=review,
        )

    extracted = normalize_name(extracted_name)
    first = normalize_name(provided_first_name)
    last = normalize_name(provided_last_name)

    if not extracted or not first or not last:
        return result(False, 0.0, "Missing name information for comparison", review=True)

    tokens = extracted.split(" ")
    first_matches = tokens[0] == first
    last_matches = tokens[-1] == last
    last_present = last in tokens[1:]

    # A plain two-part name is scored by its parts; a full-string match only
    # scores higher when the submitted given name itself has several words.
    if first_matches and last_matches and len(tokens) == 2:
        return result(True, CONFIDENCE_FIRST_AND_LAST, "Name matches Emirates ID")

    if extracted == f"{first} {last}":
        return result(True, CONFIDENCE_EXACT, "Name matches Emirates ID exactly")

    if first_matches and last_present:
        return result(True, CONFIDENCE_WITH_MIDDLE_NAMES, "Name matches Emirates ID (with middle names)")

    if first_matches:
        return result(
            False, CONFIDENCE_PARTIAL,
            "First name matches but last name differs. Manual review recommended.",
            review=True,
        )

    if last_matches:
        return result(
            False, CONFIDENCE_PARTIAL,
            "Last name matches but first name differs. Manual review recommended.",
            review=True,
        )

    return result(
        False, CONFIDENCE_NO_MATCH,
        "Name on Emirates ID does not match provided name. Manual review required.",
        review=True,
    )


def extract_name_from_text(text: str | None) -> str | None:
    """Pull a holder name out of raw OCR text, or None if nothing plausible."""
    if not text or not isinstance(text, str):
        return None

    for pattern in _NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        name = " ".join(match.group(1).split()).upper()
        parts = [p for p in name.split(" ") if len(p) > 1]
        if len(parts) >= 2 and 4 <= len(name) <= 100:
            return name

    return None
