from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from voucher_engine.models.voucher import Voucher, VoucherStatus
from voucher_engine.services.clock import as_utc, utcnow
from voucher_engine.services.results import SweepResult
from voucher_engine.services.store import transient_store_errors

logger = logging.getLogger(__name__)


def sweep_expired_vouchers(db: Session, *, now: datetime | None = None) -> SweepResult:
    """Flip active vouchers past their expiry date to expired.

    Only ``active`` rows are selected, so used, exchanged and transferred vouchers
    are never touched and a second run with the same clock updates nothing.
    """
    now = as_utc(now or utcnow())
    with transient_store_errors(db, "sweep_expired_vouchers"):
        result = db.execute(
            update(Voucher)
            .where(Voucher.status == VoucherStatus.ACTIVE, Voucher.expiry_date < now)
            .values(status=VoucherStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        updated = int(result.rowcount or 0)
        db.commit()
    logger.info("sweep_expired_vouchers.done updated_count=%s", updated)
    return SweepResult(updated_count=updated)
