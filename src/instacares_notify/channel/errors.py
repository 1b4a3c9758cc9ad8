"""Provider error translation — maps provider-specific failures to stable categories."""

from enum import Enum


class ErrorCategory(Enum):
    INVALID_NUMBER = "INVALID_NUMBER"
    UNSUPPORTED_NUMBER_TYPE = "UNSUPPORTED_NUMBER_TYPE"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    CONTENT_POLICY = "CONTENT_POLICY"
    MISSING_CONTACT = "MISSING_CONTACT"

    @property
    def is_retryable(self) -> bool:
        return self in RETRYABLE_CATEGORIES


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.RATE_LIMITED,
        ErrorCategory.TIMEOUT,
        ErrorCategory.PROVIDER_ERROR,
    }
)

_TWILIO_ERROR_CODES = {
    21211: (ErrorCategory.INVALID_NUMBER, "Invalid phone number"),
    21614: (ErrorCategory.UNSUPPORTED_NUMBER_TYPE, "Phone number cannot receive SMS"),
    21612: (ErrorCategory.UNSUPPORTED_NUMBER_TYPE, "Phone number cannot receive SMS"),
    21408: (ErrorCategory.PERMISSION_DENIED, "SMS not permitted to this region"),
    20429: (ErrorCategory.RATE_LIMITED, "Provider rate limit exceeded"),
}


def translate_twilio_error(code: int | str | None, message: str | None) -> tuple[ErrorCategory, str]:
    """Return the category and user-facing message for a Twilio error code."""
    try:
        numeric = int(code) if code is not None else None
    except (TypeError, ValueError):
        numeric = None

    if numeric in _TWILIO_ERROR_CODES:
        return _TWILIO_ERROR_CODES[numeric]
    return ErrorCategory.PROVIDER_ERROR, message or "SMS delivery failed"


def translate_resend_status(status_code: int | None, message: str | None) -> tuple[ErrorCategory, str]:
    """Return the category and message for a Resend HTTP error response.

    A `status_code` of None means the request never got a response
    (connection reset, DNS failure); those are treated as provider errors.
    """
    if status_code in (401, 403):
        return ErrorCategory.PERMISSION_DENIED, message or "Email provider rejected credentials"
    if status_code == 422:
        return ErrorCategory.INVALID_ADDRESS, message or "Invalid email address"
    if status_code == 429:
        return ErrorCategory.RATE_LIMITED, message or "Provider rate limit exceeded"
    return ErrorCategory.PROVIDER_ERROR, message or "Email delivery failed"
