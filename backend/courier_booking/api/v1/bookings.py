from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from courier_booking.booking.pipeline import BookingPipeline
from courier_booking.dependencies import get_booking_pipeline
from courier_booking.schemas.booking import BookingResponse, BookingSubmission

router = APIRouter()


@router.post("", response_model=BookingResponse)
async def submit_booking(
    submission: BookingSubmission,
    pipeline: BookingPipeline = Depends(get_booking_pipeline),
) -> BookingResponse:
    outcome = await pipeline.submit(submission)
    return BookingResponse(
        reference_number=outcome.reference_number,
        awb=outcome.awb,
        booking_id=outcome.booking_id,
        timestamp=datetime.now(timezone.utc),
    )
