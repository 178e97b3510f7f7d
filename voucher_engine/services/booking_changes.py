from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from voucher_engine.models.booking import Booking, BookingStatus
from voucher_engine.services.clock import as_utc, utcnow
from voucher_engine.services.errors import ErrorCode, TransientStoreError, error_message
from voucher_engine.services.modification_policy import ModificationPolicy, default_policy
from voucher_engine.services.notifications import NotificationPublisher, booking_cancelled_event, publish_after_commit
from voucher_engine.services.results import CancellationResult, RescheduleResult
from voucher_engine.services.store import transient_store_errors

logger = logging.getLogger(__name__)


def _lock_booking(db: Session, booking_id: str, acting_user_id: str | None = None) -> Booking | None:
    query = db.query(Booking).filter(Booking.id == booking_id)
    if acting_user_id is not None:
        # Other holders' bookings are reported as missing.
        query = query.filter(Booking.user_id == acting_user_id)
    return (
        query
        .with_for_update()
        .populate_existing()
        .first()
    )


def _message(code: ErrorCode, policy: ModificationPolicy) -> str:
    return error_message(code, hours=policy.window_hours)


def cancellation_rejection(booking: Booking, policy: ModificationPolicy, now: datetime) -> ErrorCode | None:
    if BookingStatus(booking.status) != BookingStatus.CONFIRMED:
        return ErrorCode.BOOKING_NOT_CANCELLABLE
    if not policy.window_open(booking.booking_date, now):
        return ErrorCode.MODIFICATION_WINDOW_CLOSED
    return None


def reschedule_rejection(
    booking: Booking,
    new_booking_date: datetime | None,
    policy: ModificationPolicy,
    now: datetime,
) -> ErrorCode | None:
    if BookingStatus(booking.status) != BookingStatus.CONFIRMED:
        return ErrorCode.BOOKING_NOT_RESCHEDULABLE
    if not policy.reschedule_allowed(booking.rescheduled_count):
        return ErrorCode.RESCHEDULE_LIMIT_REACHED
    # The window is measured against the date being moved, not the new one.
    if not policy.window_open(booking.booking_date, now):
        return ErrorCode.MODIFICATION_WINDOW_CLOSED
    if new_booking_date is None or as_utc(new_booking_date) <= now:
        return ErrorCode.INVALID_NEW_DATE
    return None


def cancel_booking(
    db: Session,
    *,
    booking_id: str,
    reason: str | None,
    acting_user_id: str | None = None,
    now: datetime | None = None,
    policy: ModificationPolicy | None = None,
    publisher: NotificationPublisher | None = None,
) -> CancellationResult:
    now = as_utc(now or utcnow())
    policy = policy or default_policy()
    reason = (reason or "").strip() or None

    def failure(code: ErrorCode) -> CancellationResult:
        return CancellationResult(
            success=False,
            refund_eligible=False,
            error_code=code,
            error_message=_message(code, policy),
        )

    with transient_store_errors(db, "cancel_booking"):
        booking = _lock_booking(db, booking_id, acting_user_id)
        if booking is None:
            db.rollback()
            return failure(ErrorCode.BOOKING_NOT_FOUND)

        rejection = cancellation_rejection(booking, policy, now)
        if rejection is not None:
            db.rollback()
            logger.info("cancel_booking.rejected booking_id=%s reason=%s", booking_id, rejection.value)
            return failure(rejection)

        refund_eligible = policy.refund_eligible(booking.booking_date, now)
        result = db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.booking_date == booking.booking_date,
            )
            .values(status=BookingStatus.CANCELLED, cancellation_date=now, cancellation_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return failure(
                _reevaluate(
                    db,
                    booking_id,
                    "cancel_booking",
                    lambda fresh: cancellation_rejection(fresh, policy, now),
                )
            )
        db.commit()

    logger.info("cancel_booking.success booking_id=%s refund_eligible=%s", booking_id, refund_eligible)
    publish_after_commit(publisher, booking_cancelled_event(booking, refund_eligible=refund_eligible))
    return CancellationResult(success=True, refund_eligible=refund_eligible)


def reschedule_booking(
    db: Session,
    *,
    booking_id: str,
    new_booking_date: datetime | None,
    acting_user_id: str | None = None,
    now: datetime | None = None,
    policy: ModificationPolicy | None = None,
) -> RescheduleResult:
    now = as_utc(now or utcnow())
    policy = policy or default_policy()
    new_booking_date = as_utc(new_booking_date)

    def failure(code: ErrorCode) -> RescheduleResult:
        return RescheduleResult(success=False, error_code=code, error_message=_message(code, policy))

    with transient_store_errors(db, "reschedule_booking"):
        booking = _lock_booking(db, booking_id, acting_user_id)
        if booking is None:
            db.rollback()
            return failure(ErrorCode.BOOKING_NOT_FOUND)

        rejection = reschedule_rejection(booking, new_booking_date, policy, now)
        if rejection is not None:
            db.rollback()
            logger.info("reschedule_booking.rejected booking_id=%s reason=%s", booking_id, rejection.value)
            return failure(rejection)

        checked_count = int(booking.rescheduled_count or 0)
        result = db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.booking_date == booking.booking_date,
                Booking.rescheduled_count == checked_count,
            )
            .values(booking_date=new_booking_date, rescheduled_count=checked_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return failure(
                _reevaluate(
                    db,
                    booking_id,
                    "reschedule_booking",
                    lambda fresh: reschedule_rejection(fresh, new_booking_date, policy, now),
                )
            )
        db.commit()

    logger.info("reschedule_booking.success booking_id=%s rescheduled_count=%s", booking_id, checked_count + 1)
    return RescheduleResult(success=True)


def _reevaluate(db: Session, booking_id: str, operation: str, rejection_for) -> ErrorCode:
    """A guarded write matched no row: report why against the row as it is now."""
    fresh = db.query(Booking).filter(Booking.id == booking_id).populate_existing().first()
    rejection = ErrorCode.BOOKING_NOT_FOUND if fresh is None else rejection_for(fresh)
    db.rollback()
    if rejection is not None:
        logger.info("%s.lost_race booking_id=%s reason=%s", operation, booking_id, rejection.value)
        return rejection
    raise TransientStoreError(f"{operation}: booking {booking_id} changed concurrently, re-query and retry")
