from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from voucher_engine.services.errors import ErrorCode


@dataclass(frozen=True)
class IssueResult:
    success: bool
    voucher: Any = None
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    experience_id: str | None = None
    voucher_id: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class RedemptionResult:
    success: bool
    booking_id: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    refund_eligible: bool = False
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class RescheduleResult:
    success: bool
    error_code: ErrorCode | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class SweepResult:
    updated_count: int
