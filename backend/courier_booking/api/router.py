from fastapi import APIRouter

from courier_booking.api.v1 import bookings, health, otp

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(otp.router, prefix="/otp", tags=["otp"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
