from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from voucher_engine.core.database import get_db
from voucher_engine.core.security import CurrentUser, get_current_user
from voucher_engine.models.booking import Booking
from voucher_engine.schemas.booking import (
    BookingResponse,
    CancelBookingRequest,
    CancelBookingResponse,
    RescheduleBookingRequest,
    RescheduleBookingResponse,
)
from voucher_engine.services.booking_changes import cancel_booking, reschedule_booking
from voucher_engine.services.notifications import NotificationPublisher, get_publisher


router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/bookings/mine", response_model=list[BookingResponse])
def my_bookings(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.user_id == current_user.id)
        .order_by(Booking.booking_date.asc())
        .all()
    )


@router.post("/bookings/{booking_id}/cancel", response_model=CancelBookingResponse)
def cancel(
    booking_id: str,
    body: CancelBookingRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    publisher: NotificationPublisher = Depends(get_publisher),
) -> CancelBookingResponse:
    result = cancel_booking(
        db,
        booking_id=booking_id,
        reason=body.cancellation_reason,
        acting_user_id=current_user.id,
        publisher=publisher,
    )
    return CancelBookingResponse(
        success=result.success,
        refund_eligible=result.refund_eligible,
        error_code=result.error_code,
        error_message=result.error_message,
    )


@router.post("/bookings/{booking_id}/reschedule", response_model=RescheduleBookingResponse)
def reschedule(
    booking_id: str,
    body: RescheduleBookingRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RescheduleBookingResponse:
    result = reschedule_booking(
        db,
        booking_id=booking_id,
        new_booking_date=body.new_booking_date,
        acting_user_id=current_user.id,
    )
    return RescheduleBookingResponse(
        success=result.success,
        error_code=result.error_code,
        error_message=result.error_message,
    )
