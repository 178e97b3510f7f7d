"""Scheduled entry point for the voucher expiry sweep (run daily from cron or a one-off job)."""

from dotenv import load_dotenv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

load_dotenv(".env")

import logging

from voucher_engine.core.database import SessionLocal
from voucher_engine.core.settings import settings
from voucher_engine.services.errors import TransientStoreError
from voucher_engine.services.expiry_sweeper import sweep_expired_vouchers

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("sweep_expired_vouchers")


def main() -> int:
    db = SessionLocal()
    try:
        result = sweep_expired_vouchers(db)
    except TransientStoreError:
        logger.exception("sweep_expired_vouchers.retry_later")
        return 75
    finally:
        db.close()
    logger.info("sweep_expired_vouchers.finished updated_count=%s", result.updated_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
