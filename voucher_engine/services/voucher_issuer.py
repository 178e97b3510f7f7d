from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voucher_engine.core.settings import settings
from voucher_engine.models.experience import Experience
from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.clock import add_months, utcnow
from voucher_engine.services.errors import ErrorCode, VoucherCodeGenerationError, error_message
from voucher_engine.services.results import IssueResult
from voucher_engine.services.store import transient_store_errors
from voucher_engine.services.voucher_codes import generate_voucher_code, mask_voucher_code

logger = logging.getLogger(__name__)

MIN_VALIDITY_MONTHS = 1
MAX_VALIDITY_MONTHS = 36


def _failure(code: ErrorCode, **context: object) -> IssueResult:
    return IssueResult(success=False, error_code=code, error_message=error_message(code, **context))


def _code_taken(db: Session, code: str) -> bool:
    return db.query(Voucher.id).filter(Voucher.code == code).first() is not None


def issue_voucher(
    db: Session,
    *,
    experience_id: str,
    owner_user_id: str | None = None,
    purchase_price: Decimal | float | str | None = None,
    validity_months: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
    max_attempts: int | None = None,
) -> IssueResult:
    now = now or utcnow()
    months = settings.voucher_default_validity_months if validity_months is None else int(validity_months)
    if not (MIN_VALIDITY_MONTHS <= months <= MAX_VALIDITY_MONTHS):
        return _failure(
            ErrorCode.INVALID_VALIDITY_PERIOD,
            min_months=MIN_VALIDITY_MONTHS,
            max_months=MAX_VALIDITY_MONTHS,
        )

    with transient_store_errors(db, "issue_voucher"):
        experience = db.query(Experience).filter(Experience.id == experience_id).first()
        if experience is None:
            return _failure(ErrorCode.EXPERIENCE_NOT_FOUND)
        if not experience.is_active:
            return _failure(ErrorCode.EXPERIENCE_INACTIVE)

        price = Decimal(str(purchase_price if purchase_price is not None else experience.price))
        expiry_date = add_months(now, months)
        attempts = max_attempts or settings.voucher_code_max_attempts

        for attempt in range(1, attempts + 1):
            code = generate_voucher_code(now)
            voucher = Voucher(
                code=code,
                experience_id=experience.id,
                owner_user_id=owner_user_id,
                purchase_price=price,
                status=VoucherStatus.ACTIVE,
                issue_date=now,
                expiry_date=expiry_date,
                qr_code_data=code,
                notes=notes or None,
            )
            db.add(voucher)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if not _code_taken(db, code):
                    raise
                logger.warning("issue_voucher.code_collision attempt=%s code=%s", attempt, mask_voucher_code(code))
                continue
            db.refresh(voucher)
            logger.info(
                "issue_voucher.success voucher_id=%s experience_id=%s expiry_date=%s",
                voucher.id,
                experience.id,
                expiry_date.isoformat(),
            )
            return IssueResult(success=True, voucher=voucher)

    raise VoucherCodeGenerationError(f"Could not allocate a unique voucher code after {attempts} attempts")
