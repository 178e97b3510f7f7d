from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from voucher_engine.services.errors import TransientStoreError

logger = logging.getLogger(__name__)


@contextmanager
def transient_store_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise store timeouts, lock waits and serialization failures as retryable."""
    try:
        yield
    except OperationalError as exc:
        db.rollback()
        logger.warning("%s.transient_store_error error=%s", operation, type(getattr(exc, "orig", exc)).__name__)
        raise TransientStoreError(f"{operation} could not complete, the store is busy or unreachable") from exc
