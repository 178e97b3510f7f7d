from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.clock import as_utc, utcnow
from voucher_engine.services.errors import VOUCHER_STATUS_MESSAGES, ErrorCode, InvariantViolation, error_message
from voucher_engine.services.results import ValidationResult
from voucher_engine.services.store import transient_store_errors
from voucher_engine.services.voucher_codes import mask_voucher_code, normalize_voucher_code

logger = logging.getLogger(__name__)


def voucher_is_lapsed(voucher: Voucher, now: datetime) -> bool:
    return as_utc(now) > as_utc(voucher.expiry_date)


def assert_voucher_consistent(voucher: Voucher) -> None:
    is_used = VoucherStatus(voucher.status) == VoucherStatus.USED
    has_date = voucher.redemption_date is not None
    has_booking = voucher.linked_booking_id is not None
    if not (is_used == has_date == has_booking):
        raise InvariantViolation(
            f"voucher {voucher.id} has status={voucher.status} redemption_date set={has_date} "
            f"linked_booking_id set={has_booking}"
        )


def voucher_rejection(voucher: Voucher, now: datetime) -> tuple[ErrorCode, str] | None:
    """Status flag and live expiry check shared by validation and redemption.

    The stored status can still read ``active`` after expiry when the sweep has not
    run yet, so the date comparison is authoritative on its own.
    """
    status = VoucherStatus(voucher.status)
    if status != VoucherStatus.ACTIVE:
        message = VOUCHER_STATUS_MESSAGES.get(status.value) or error_message(ErrorCode.VOUCHER_NOT_ACTIVE)
        return ErrorCode.VOUCHER_NOT_ACTIVE, message
    if voucher_is_lapsed(voucher, now):
        return ErrorCode.VOUCHER_LAPSED, error_message(ErrorCode.VOUCHER_LAPSED)
    return None


def validate_voucher_code(db: Session, code: str | None, *, now: datetime | None = None) -> ValidationResult:
    now = now or utcnow()
    normalized = normalize_voucher_code(code)
    if not normalized:
        return ValidationResult(
            is_valid=False,
            error_code=ErrorCode.CODE_NOT_FOUND,
            error_message=error_message(ErrorCode.CODE_NOT_FOUND),
        )

    with transient_store_errors(db, "validate_voucher_code"):
        voucher = db.query(Voucher).filter(Voucher.code == normalized).first()

    if voucher is None:
        logger.info("validate_voucher_code.not_found code=%s", mask_voucher_code(normalized))
        return ValidationResult(
            is_valid=False,
            error_code=ErrorCode.CODE_NOT_FOUND,
            error_message=error_message(ErrorCode.CODE_NOT_FOUND),
        )

    rejection = voucher_rejection(voucher, now)
    if rejection is not None:
        reason, message = rejection
        logger.info("validate_voucher_code.rejected voucher_id=%s reason=%s", voucher.id, reason.value)
        return ValidationResult(
            is_valid=False,
            error_code=reason,
            error_message=message,
        )

    return ValidationResult(is_valid=True, experience_id=voucher.experience_id, voucher_id=voucher.id)
