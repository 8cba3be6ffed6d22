"""Error taxonomy for the booking intake pipeline.

Every failure a caller can see is a ``BookingIntakeError`` carrying a stable
``code``, the HTTP status it renders as, and optional context fields that are
merged into the JSON error body (e.g. ``remainingAttempts``).
"""


class BookingIntakeError(Exception):
    """Base exception for booking intake failures."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class ValidationError(BookingIntakeError):
    """Malformed or missing input. Never retried."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(BookingIntakeError):
    """No pending OTP exists for the phone number."""

    code = "OTP_NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "No pending OTP found for this phone number. Please request a new OTP.", **context):
        super().__init__(message, **context)


class ExpiredError(BookingIntakeError):
    code = "OTP_EXPIRED"
    status_code = 410

    def __init__(self, message: str = "OTP has expired. Please request a new OTP.", **context):
        super().__init__(message, **context)


class AttemptsExhaustedError(BookingIntakeError):
    code = "OTP_ATTEMPTS_EXHAUSTED"
    status_code = 429

    def __init__(self, message: str = "Maximum verification attempts exceeded. Please request a new OTP.", **context):
        super().__init__(message, **context)


class MismatchError(BookingIntakeError):
    """Supplied OTP does not match the stored code."""

    code = "OTP_MISMATCH"
    status_code = 400

    def __init__(self, remaining_attempts: int, message: str = "Invalid OTP"):
        self.remaining_attempts = remaining_attempts
        super().__init__(message, remainingAttempts=remaining_attempts)


class DeliveryError(BookingIntakeError):
    """SMS gateway did not acknowledge the message."""

    code = "SMS_DELIVERY_FAILED"
    status_code = 502


class DocumentInvalidError(BookingIntakeError):
    """Uploaded image is not the expected identity document."""

    code = "DOCUMENT_INVALID"
    status_code = 422


class IdentityMismatchError(BookingIntakeError):
    """Name on the identity document does not match the submitted name."""

    code = "IDENTITY_MISMATCH"
    status_code = 422


class ExtractionError(BookingIntakeError):
    """Text-extraction service call failed."""

    code = "EXTRACTION_FAILED"
    status_code = 502


class GenerationExhaustedError(BookingIntakeError):
    """AWB collision retries exhausted. Safe to resubmit."""

    code = "AWB_GENERATION_EXHAUSTED"
    status_code = 503


class StorageError(BookingIntakeError):
    code = "STORAGE_ERROR"
    status_code = 500
