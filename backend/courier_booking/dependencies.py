from fastapi import Depends, Request

from courier_booking.awb.generator import AwbGenerator
from courier_booking.booking.pipeline import BookingPipeline
from courier_booking.config import settings
from courier_booking.otp.manager import OtpManager
from courier_booking.services.id_extraction_service import IdExtractionService
from courier_booking.services.sms_gateway import SmsGateway
from courier_booking.store.document_store import DocumentStore


# Long-lived collaborators are built once in the app lifespan and kept on app.state.
def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_sms_gateway(request: Request) -> SmsGateway:
    return request.app.state.sms_gateway


def get_extractor(request: Request) -> IdExtractionService:
    return request.app.state.extractor


def get_otp_manager(
    store: DocumentStore = Depends(get_store),
    sms_gateway: SmsGateway = Depends(get_sms_gateway),
) -> OtpManager:
    return OtpManager(store, sms_gateway, settings)


def get_awb_generator(store: DocumentStore = Depends(get_store)) -> AwbGenerator:
    return AwbGenerator(store)


def get_booking_pipeline(
    store: DocumentStore = Depends(get_store),
    otp_manager: OtpManager = Depends(get_otp_manager),
    awb_generator: AwbGenerator = Depends(get_awb_generator),
    extractor: IdExtractionService = Depends(get_extractor),
) -> BookingPipeline:
    return BookingPipeline(store, otp_manager, awb_generator, extractor, settings)
