"""
Booking intake pipeline.

Flow (strictly in this order, each step may short-circuit):
  1. Structural validation
  2. Route derivation
  3. Route-specific shipment rules
  4. OTP verification (mandatory)
  5. EID name verification (only when an EID front image and names are sent)
  6. AWB issuance
  7. Assembly and a single insert
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from courier_booking.awb.generator import AwbGenerator
from courier_booking.booking.assembler import assemble_booking, generate_reference_number
from courier_booking.booking.routes import derive_route, dial_codes_for
from courier_booking.booking.validation import (
    apply_shipment_rules,
    require_otp_fields,
    validate_structure,
)
from courier_booking.config import Settings
from courier_booking.exceptions import DocumentInvalidError, IdentityMismatchError
from courier_booking.identity.name_matcher import compare_names, extract_name_from_text
from courier_booking.otp.manager import OtpManager
from courier_booking.schemas.booking import BookingSubmission
from courier_booking.services.id_extraction_service import IdExtractionService
from courier_booking.store.document_store import BOOKINGS_COLLECTION, DocumentStore

logger = logging.getLogger("courier.pipeline")

IDENTITY_VERIFIED = "verified"
IDENTITY_MANUAL_REVIEW = "manual_review"


@dataclass
class BookingOutcome:
    booking_id: str
    awb: str
    reference_number: str
    route: str
    needs_manual_review: bool = False


class BookingPipeline:
    """Validates, verifies and persists one booking submission per call."""

    def __init__(
        self,
        store: DocumentStore,
        otp_manager: OtpManager,
        awb_generator: AwbGenerator,
        extractor: IdExtractionService,
        settings: Settings,
        logger: logging.Logger = logger,
    ):
        self.store = store
        self.otp_manager = otp_manager
        self.awb_generator = awb_generator
        self.extractor = extractor
        self.settings = settings
        self._logger = logger

    async def submit(self, submission: BookingSubmission) -> BookingOutcome:
        """Run the full pipeline on a submission.

        Raises:
            BookingIntakeError: Any terminal failure; see courier_booking.exceptions.
        """
        # Steps 1-3 and the OTP field check touch no collaborator.
        validate_structure(submission, max_address_length=self.settings.address_line_max_length)

        route = derive_route(submission.service)
        dial_codes = dial_codes_for(route)
        self._logger.info(
            "Route %s (sender %s, receiver %s)", route.value, dial_codes.sender, dial_codes.receiver
        )

        shipment = apply_shipment_rules(
            submission, route, declared_amount_ceiling=self.settings.declared_amount_ceiling
        )
        otp_phone, otp_code = require_otp_fields(submission)

        otp_verification = await self.otp_manager.verify(otp_phone, otp_code)

        identity_verification = await self._verify_identity(submission)

        awb = await self.awb_generator.issue_unique(
            route, max_attempts=self.settings.awb_max_attempts
        )
        reference_number = generate_reference_number()

        document = assemble_booking(
            submission,
            route=route,
            dial_codes=dial_codes,
            awb=awb,
            reference_number=reference_number,
            otp_verification=otp_verification,
            identity_verification=identity_verification,
            shipment=shipment,
        )
        booking_id = await self.store.insert_one(BOOKINGS_COLLECTION, document)

        needs_review = bool(identity_verification and identity_verification["needsManualReview"])
        self._logger.info(
            "Booking %s saved (awb=%s, ref=%s, items=%d, manual_review=%s)",
            booking_id, awb, reference_number, len(document["items"]), needs_review,
        )

        return BookingOutcome(
            booking_id=booking_id,
            awb=awb,
            reference_number=reference_number,
            route=route.value,
            needs_manual_review=needs_review,
        )

    async def _verify_identity(self, submission: BookingSubmission) -> dict | None:
        first_name = (submission.eid_front_image_first_name or "").strip()
        last_name = (submission.eid_front_image_last_name or "").strip()
        if not submission.eid_front_image or not first_name or not last_name:
            return None

        analysis = await self.extractor.analyze(submission.eid_front_image)
        if not analysis.is_target_document:
            raise DocumentInvalidError(
                "The uploaded front image is not a valid Emirates ID",
                side=analysis.side,
                documentConfidence=analysis.confidence,
            )

        snapshot = {
            "documentType": "emirates_id",
            "side": analysis.side,
            "documentConfidence": analysis.confidence,
            "requiresBackSide": analysis.requires_back_side,
            "checkedAt": datetime.now(timezone.utc).isoformat(),
        }

        extracted_name = analysis.extracted_name or extract_name_from_text(analysis.text)
        if not extracted_name:
            self._logger.info("EID name could not be extracted; flagging for manual review")
            return {
                **snapshot,
                "status": IDENTITY_MANUAL_REVIEW,
                "needsManualReview": True,
                "reason": "Name could not be extracted from Emirates ID",
                "nameMatch": None,
            }

        result = compare_names(extracted_name, first_name, last_name)
        if not result.match and result.confidence < self.settings.name_match_threshold:
            self._logger.info("EID name mismatch (confidence=%.2f)", result.confidence)
            raise IdentityMismatchError(
                result.reason,
                confidence=result.confidence,
                threshold=self.settings.name_match_threshold,
            )

        return {
            **snapshot,
            "status": IDENTITY_VERIFIED if result.match else IDENTITY_MANUAL_REVIEW,
            "needsManualReview": not result.match,
            "reason": result.reason,
            "nameMatch": result.to_dict(),
        }
