from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from courier_booking import __version__
from courier_booking.config import settings
from courier_booking.dependencies import get_store
from courier_booking.schemas.health import HealthResponse
from courier_booking.store.document_store import DocumentStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store: DocumentStore = Depends(get_store)) -> HealthResponse:
    db_status = "healthy" if await store.ping() else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        version=__version__,
    )
