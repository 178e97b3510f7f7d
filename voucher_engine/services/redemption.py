from __future__ import annotations

import logging
from datetime import datetime
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voucher_engine.models.booking import Booking, BookingStatus
from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.clock import as_utc, utcnow
from voucher_engine.services.errors import ErrorCode, error_message
from voucher_engine.services.notifications import NotificationPublisher, booking_confirmed_event, publish_after_commit
from voucher_engine.services.results import RedemptionResult
from voucher_engine.services.store import transient_store_errors
from voucher_engine.services.voucher_validator import assert_voucher_consistent, voucher_rejection

logger = logging.getLogger(__name__)


def _failure(code: ErrorCode, message: str | None = None) -> RedemptionResult:
    return RedemptionResult(success=False, error_code=code, error_message=message or error_message(code))


def _lock_voucher(db: Session, voucher_id: str) -> Voucher | None:
    return (
        db.query(Voucher)
        .filter(Voucher.id == voucher_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _claim_voucher(db: Session, voucher_id: str, booking_id: str, now: datetime) -> bool:
    # Guarded on status so a concurrent winner is detected even without row locks.
    result = db.execute(
        update(Voucher)
        .where(Voucher.id == voucher_id, Voucher.status == VoucherStatus.ACTIVE)
        .values(status=VoucherStatus.USED, redemption_date=now, linked_booking_id=booking_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def redeem_voucher(
    db: Session,
    *,
    voucher_id: str,
    user_id: str,
    booking_date: datetime,
    participants: int,
    special_requests: str | None = None,
    now: datetime | None = None,
    publisher: NotificationPublisher | None = None,
) -> RedemptionResult:
    """Turn an active voucher into a confirmed booking in one transaction.

    Every check the client already ran through validation is repeated here under the
    row lock. Either the booking is inserted and the voucher marked used, or nothing
    is written.
    """
    now = as_utc(now or utcnow())
    booking_date = as_utc(booking_date)

    with transient_store_errors(db, "redeem_voucher"):
        voucher = _lock_voucher(db, voucher_id)
        if voucher is None:
            db.rollback()
            return _failure(ErrorCode.VOUCHER_NOT_FOUND)

        if VoucherStatus(voucher.status) == VoucherStatus.USED:
            assert_voucher_consistent(voucher)
            db.rollback()
            logger.info("redeem_voucher.already_redeemed voucher_id=%s", voucher_id)
            return _failure(ErrorCode.VOUCHER_ALREADY_REDEEMED)

        rejection = voucher_rejection(voucher, now)
        if rejection is not None:
            db.rollback()
            reason, message = rejection
            logger.info("redeem_voucher.rejected voucher_id=%s reason=%s", voucher_id, reason.value)
            return _failure(reason, message)

        if participants is None or int(participants) < 1 or booking_date is None or booking_date < now:
            db.rollback()
            return _failure(ErrorCode.INVALID_BOOKING_PARAMETERS)

        booking_id = str(uuid4())
        experience_id = voucher.experience_id
        total_price = voucher.purchase_price

        if not _claim_voucher(db, voucher_id, booking_id, now):
            db.rollback()
            logger.info("redeem_voucher.lost_race voucher_id=%s", voucher_id)
            return _failure(ErrorCode.VOUCHER_ALREADY_REDEEMED)

        booking = Booking(
            id=booking_id,
            voucher_id=voucher_id,
            experience_id=experience_id,
            user_id=user_id,
            booking_date=booking_date,
            participants=int(participants),
            total_price=total_price,
            special_requests=(special_requests or "").strip() or None,
            status=BookingStatus.CONFIRMED,
            rescheduled_count=0,
        )
        db.add(booking)
        try:
            db.commit()
        except IntegrityError:
            # bookings.voucher_id is unique: another transaction linked this voucher first.
            db.rollback()
            logger.info("redeem_voucher.duplicate_booking voucher_id=%s", voucher_id)
            return _failure(ErrorCode.VOUCHER_ALREADY_REDEEMED)

    logger.info(
        "redeem_voucher.success voucher_id=%s booking_id=%s participants=%s",
        voucher_id,
        booking_id,
        participants,
    )
    publish_after_commit(publisher, booking_confirmed_event(booking))
    return RedemptionResult(success=True, booking_id=booking_id)
