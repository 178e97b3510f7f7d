from __future__ import annotations

import re
import secrets
import string
from datetime import datetime

from voucher_engine.services.clock import utcnow

CODE_PREFIX = "EXP"
CODE_SUFFIX_LENGTH = 8
CODE_ALPHABET = string.ascii_uppercase + string.digits
VOUCHER_CODE_RE = re.compile(r"^EXP-\d{4}-[A-Z0-9]{8}$")


def generate_voucher_code(now: datetime | None = None) -> str:
    now = now or utcnow()
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{CODE_PREFIX}-{now.year:04d}-{suffix}"


def normalize_voucher_code(code: str | None) -> str:
    return str(code or "").strip().upper()


def is_well_formed(code: str | None) -> bool:
    return bool(VOUCHER_CODE_RE.match(normalize_voucher_code(code)))


def mask_voucher_code(code: str | None) -> str:
    normalized = normalize_voucher_code(code)
    if len(normalized) <= 4:
        return "****"
    return f"{normalized[:-4]}****"
