from __future__ import annotations

import enum


class ErrorCategory(str, enum.Enum):
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    POLICY_VIOLATION = "policy_violation"
    INPUT_VALIDATION = "input_validation"
    TRANSIENT = "transient"


class ErrorCode(str, enum.Enum):
    CODE_NOT_FOUND = "CodeNotFound"
    VOUCHER_NOT_FOUND = "VoucherNotFound"
    BOOKING_NOT_FOUND = "BookingNotFound"
    EXPERIENCE_NOT_FOUND = "ExperienceNotFound"

    VOUCHER_NOT_ACTIVE = "VoucherNotActive"
    VOUCHER_LAPSED = "VoucherLapsed"
    VOUCHER_ALREADY_REDEEMED = "VoucherAlreadyRedeemed"
    BOOKING_NOT_CANCELLABLE = "BookingNotCancellable"
    BOOKING_NOT_RESCHEDULABLE = "BookingNotReschedulable"

    MODIFICATION_WINDOW_CLOSED = "ModificationWindowClosed"
    RESCHEDULE_LIMIT_REACHED = "RescheduleLimitReached"

    INVALID_BOOKING_PARAMETERS = "InvalidBookingParameters"
    INVALID_NEW_DATE = "InvalidNewDate"
    EXPERIENCE_INACTIVE = "ExperienceInactive"
    INVALID_VALIDITY_PERIOD = "InvalidValidityPeriod"

    @property
    def category(self) -> ErrorCategory:
        return ERROR_CATEGORIES[self]


ERROR_CATEGORIES: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.CODE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.VOUCHER_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.EXPERIENCE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.VOUCHER_NOT_ACTIVE: ErrorCategory.INVALID_STATE,
    ErrorCode.VOUCHER_LAPSED: ErrorCategory.INVALID_STATE,
    ErrorCode.VOUCHER_ALREADY_REDEEMED: ErrorCategory.INVALID_STATE,
    ErrorCode.BOOKING_NOT_CANCELLABLE: ErrorCategory.INVALID_STATE,
    ErrorCode.BOOKING_NOT_RESCHEDULABLE: ErrorCategory.INVALID_STATE,
    ErrorCode.MODIFICATION_WINDOW_CLOSED: ErrorCategory.POLICY_VIOLATION,
    ErrorCode.RESCHEDULE_LIMIT_REACHED: ErrorCategory.POLICY_VIOLATION,
    ErrorCode.INVALID_BOOKING_PARAMETERS: ErrorCategory.INPUT_VALIDATION,
    ErrorCode.INVALID_NEW_DATE: ErrorCategory.INPUT_VALIDATION,
    ErrorCode.EXPERIENCE_INACTIVE: ErrorCategory.INPUT_VALIDATION,
    ErrorCode.INVALID_VALIDITY_PERIOD: ErrorCategory.INPUT_VALIDATION,
}


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.CODE_NOT_FOUND: "No voucher exists with this code",
    ErrorCode.VOUCHER_NOT_FOUND: "Voucher not found",
    ErrorCode.BOOKING_NOT_FOUND: "Booking not found",
    ErrorCode.EXPERIENCE_NOT_FOUND: "Experience not found",
    ErrorCode.VOUCHER_NOT_ACTIVE: "This voucher can no longer be used",
    ErrorCode.VOUCHER_LAPSED: "This voucher has expired",
    ErrorCode.VOUCHER_ALREADY_REDEEMED: "This voucher was already used",
    ErrorCode.BOOKING_NOT_CANCELLABLE: "Only confirmed bookings can be cancelled",
    ErrorCode.BOOKING_NOT_RESCHEDULABLE: "Only confirmed bookings can be rescheduled",
    ErrorCode.MODIFICATION_WINDOW_CLOSED: "Changes are only allowed up to {hours} hours before your experience",
    ErrorCode.RESCHEDULE_LIMIT_REACHED: "This booking has already used its free reschedule",
    ErrorCode.INVALID_BOOKING_PARAMETERS: "Choose a future date and at least one participant",
    ErrorCode.INVALID_NEW_DATE: "The new date must be in the future",
    ErrorCode.EXPERIENCE_INACTIVE: "This experience is not available",
    ErrorCode.INVALID_VALIDITY_PERIOD: "Validity must be between {min_months} and {max_months} months",
}

# VoucherNotActive is reported per stored status so the holder knows why.
VOUCHER_STATUS_MESSAGES: dict[str, str] = {
    "used": "This voucher was already used",
    "expired": "This voucher has expired",
    "exchanged": "This voucher was exchanged for another experience",
    "transferred": "This voucher was transferred to another person",
}


def error_message(code: ErrorCode, **context: object) -> str:
    template = ERROR_MESSAGES[code]
    try:
        return template.format(**context)
    except (KeyError, IndexError):
        return template


class EngineError(RuntimeError):
    pass


class TransientStoreError(EngineError):
    """The store timed out, was unreachable, or a guarded write lost a race. Retry after re-querying."""

    retryable = True


class InvariantViolation(EngineError):
    pass


class VoucherCodeGenerationError(EngineError):
    pass
