from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from voucher_engine.models.booking import BookingStatus
from voucher_engine.services.errors import ErrorCode


class BookingResponse(BaseModel):
    id: str
    voucher_id: Optional[str] = None
    experience_id: str
    booking_date: datetime
    participants: int
    total_price: float
    special_requests: Optional[str] = None
    status: BookingStatus
    cancellation_date: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    rescheduled_count: int

    class Config:
        from_attributes = True


class CancelBookingRequest(BaseModel):
    cancellation_reason: str = Field(min_length=1, max_length=500)


class CancelBookingResponse(BaseModel):
    success: bool
    refund_eligible: bool = False
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None


class RescheduleBookingRequest(BaseModel):
    new_booking_date: datetime


class RescheduleBookingResponse(BaseModel):
    success: bool
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None
