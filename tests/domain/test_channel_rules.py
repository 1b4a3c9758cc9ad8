"""Tests for SMS number/content rules and provider error translation."""

import pytest
from instacares_notify.channel.errors import (
    ErrorCategory,
    translate_resend_status,
    translate_twilio_error,
)
from instacares_notify.channel.senders import (
    ChannelResult,
    ContentPolicyViolation,
    InvalidPhoneNumber,
    default_subject,
    normalize_phone,
    validate_sms_content,
)


# ---------------------------------------------------------------
# Phone normalization
# ---------------------------------------------------------------
class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("5551234567", "+15551234567"),
            ("(555) 123-4567", "+15551234567"),
            ("15551234567", "+15551234567"),
            ("+1 555 123 4567", "+15551234567"),
            ("+44 20 7946 0958", "+442079460958"),
        ],
    )
    def test_normalizes_to_e164(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["", "12345", "555-1234", "1234567890123456"])
    def test_rejects_invalid_lengths(self, raw):
        with pytest.raises(InvalidPhoneNumber):
            normalize_phone(raw)

    def test_rejects_none(self):
        with pytest.raises(InvalidPhoneNumber):
            normalize_phone(None)


# ---------------------------------------------------------------
# SMS content policy
# ---------------------------------------------------------------
class TestSMSContentPolicy:
    def test_accepts_plain_message(self):
        validate_sms_content("Your booking is confirmed for 3pm.", "BOOKING_CONFIRMATION")

    def test_accepts_exactly_max_length(self):
        validate_sms_content("a" * 1600, "BOOKING_REMINDER")

    def test_rejects_over_max_length(self):
        with pytest.raises(ContentPolicyViolation, match="maximum length"):
            validate_sms_content("a" * 1700, "BOOKING_REMINDER")

    def test_marketing_requires_stop(self):
        with pytest.raises(ContentPolicyViolation, match="STOP"):
            validate_sms_content("Spring discounts on sitters!", "MARKETING_UPDATE")

    def test_marketing_stop_check_is_case_insensitive(self):
        validate_sms_content("Spring discounts. Text stop to unsubscribe", "MARKETING_UPDATE")

    @pytest.mark.parametrize(
        "body",
        [
            "Win $$$ today",
            "FREE! sitting hours",
            "urgent: please click here",
            "Limited time only offer",
        ],
    )
    def test_rejects_spam_patterns(self, body):
        with pytest.raises(ContentPolicyViolation, match="spam"):
            validate_sms_content(body, "BOOKING_REMINDER")

    def test_free_without_exclamation_is_allowed(self):
        validate_sms_content("Cancellation is free up to 24 hours before.", "BOOKING_CANCELLED")


# ---------------------------------------------------------------
# Provider error translation
# ---------------------------------------------------------------
class TestTwilioErrorTranslation:
    @pytest.mark.parametrize(
        "code, category",
        [
            (21211, ErrorCategory.INVALID_NUMBER),
            (21614, ErrorCategory.UNSUPPORTED_NUMBER_TYPE),
            (21612, ErrorCategory.UNSUPPORTED_NUMBER_TYPE),
            (21408, ErrorCategory.PERMISSION_DENIED),
            (20429, ErrorCategory.RATE_LIMITED),
            ("21211", ErrorCategory.INVALID_NUMBER),
        ],
    )
    def test_known_codes(self, code, category):
        assert translate_twilio_error(code, "raw")[0] == category

    def test_known_code_uses_friendly_message(self):
        assert translate_twilio_error(21211, "The 'To' number is not valid") == (
            ErrorCategory.INVALID_NUMBER,
            "Invalid phone number",
        )

    def test_unknown_code_keeps_provider_message(self):
        assert translate_twilio_error(30008, "Unknown error") == (ErrorCategory.PROVIDER_ERROR, "Unknown error")

    def test_missing_code_is_provider_error(self):
        assert translate_twilio_error(None, None) == (ErrorCategory.PROVIDER_ERROR, "SMS delivery failed")


class TestResendStatusTranslation:
    @pytest.mark.parametrize(
        "status, category",
        [
            (401, ErrorCategory.PERMISSION_DENIED),
            (403, ErrorCategory.PERMISSION_DENIED),
            (422, ErrorCategory.INVALID_ADDRESS),
            (429, ErrorCategory.RATE_LIMITED),
            (500, ErrorCategory.PROVIDER_ERROR),
            (None, ErrorCategory.PROVIDER_ERROR),
        ],
    )
    def test_status_codes(self, status, category):
        assert translate_resend_status(status, None)[0] == category


class TestRetryableCategories:
    @pytest.mark.parametrize(
        "category",
        [ErrorCategory.RATE_LIMITED, ErrorCategory.TIMEOUT, ErrorCategory.PROVIDER_ERROR],
    )
    def test_transient_categories_are_retryable(self, category):
        assert category.is_retryable is True
        assert ChannelResult.failed(category, "boom").retryable is True

    @pytest.mark.parametrize(
        "category",
        [
            ErrorCategory.INVALID_NUMBER,
            ErrorCategory.UNSUPPORTED_NUMBER_TYPE,
            ErrorCategory.PERMISSION_DENIED,
            ErrorCategory.INVALID_ADDRESS,
            ErrorCategory.CONTENT_POLICY,
            ErrorCategory.MISSING_CONTACT,
        ],
    )
    def test_permanent_categories_are_not_retryable(self, category):
        assert category.is_retryable is False

    def test_success_is_never_retryable(self):
        assert ChannelResult.sent("SM1").retryable is False


def test_default_subject_is_readable():
    assert default_subject("BOOKING_REMINDER") == "Instacares: BOOKING REMINDER"
