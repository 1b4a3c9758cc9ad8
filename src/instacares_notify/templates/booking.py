"""Booking lifecycle templates — requests, confirmations, cancellations, reminders, reviews."""

from instacares_notify.notification.notification import NotificationPriority, NotificationType
from instacares_notify.templates.base import RenderedContent, html_layout


class BookingRequestTemplate:
    notification_type = NotificationType.BOOKING_REQUEST.value
    template_id = "booking_request"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        parent_name = context.get("parent_name", "A parent")
        date = context.get("date", "TBD")
        time = context.get("time", "TBD")
        content = f"New booking request from {parent_name} for {date} at {time}. Open your dashboard to respond."
        return RenderedContent(
            template_id=cls.template_id,
            subject=f"New Booking from {parent_name}",
            content=content,
            html_content=html_layout(
                "New Booking Request",
                [f"{parent_name} would like to book you.", "Open your dashboard to accept or decline."],
                {"Date": date, "Time": time},
            ),
            sms_content=f"Instacares URGENT: New booking from {parent_name} for {time}. Open your dashboard to respond.",
            priority=cls.default_priority,
        )


class BookingConfirmationTemplate:
    notification_type = NotificationType.BOOKING_CONFIRMATION.value
    template_id = "booking_confirmation"
    default_priority = NotificationPriority.NORMAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        caregiver_name = context.get("caregiver_name", "your caregiver")
        parent_name = context.get("parent_name", "there")
        date = context.get("date", "TBD")
        time = context.get("time", "TBD")
        total = context.get("total_amount", "0.00")
        details = {"Date": date, "Time": time, "Total Amount": f"${total}"}
        if context.get("duration") is not None:
            details["Duration"] = f"{context['duration']} hours"
        if context.get("booking_id"):
            details["Booking ID"] = context["booking_id"]

        return RenderedContent(
            template_id=cls.template_id,
            subject=f"Booking Confirmed with {caregiver_name}",
            content=f"Your booking with {caregiver_name} on {date} at {time} has been confirmed. Total: ${total}",
            html_content=html_layout(
                "Booking Confirmed!",
                [f"Hi {parent_name},", f"Your booking with {caregiver_name} has been confirmed."],
                details,
            ),
            sms_content=f"Instacares: Booking confirmed with {caregiver_name} on {date} at {time}. Total: ${total}",
            priority=cls.default_priority,
        )


class BookingCancelledTemplate:
    notification_type = NotificationType.BOOKING_CANCELLED.value
    template_id = "booking_cancelled"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        booking_id = context.get("booking_id", "N/A")
        booking_date = context.get("booking_date", "your booking date")
        cancelled_by = context.get("cancelled_by", "the other party")
        reason = context.get("reason")
        paragraphs = [f"Your booking for {booking_date} has been cancelled by {cancelled_by}."]
        if reason:
            paragraphs.append(f"Reason: {reason}")

        return RenderedContent(
            template_id=cls.template_id,
            subject=f"Booking Cancelled - {booking_id}",
            content=" ".join(paragraphs),
            html_content=html_layout("Booking Cancelled", paragraphs),
            sms_content=(
                f"Instacares: Your booking for {booking_date} has been cancelled by {cancelled_by}. "
                "Check your email for details."
            ),
            priority=cls.default_priority,
        )


class BookingReminderTemplate:
    notification_type = NotificationType.BOOKING_REMINDER.value
    template_id = "booking_reminder"
    default_priority = NotificationPriority.NORMAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        caregiver_name = context.get("caregiver_name", "your caregiver")
        date = context.get("date", "TBD")
        time = context.get("time", "TBD")
        content = f"Reminder: your booking with {caregiver_name} is on {date} at {time}."
        return RenderedContent(
            template_id=cls.template_id,
            subject=f"Upcoming Booking with {caregiver_name}",
            content=content,
            html_content=html_layout("Booking Reminder", [content]),
            sms_content=f"Instacares Reminder: {content}",
            priority=cls.default_priority,
        )


class ReviewRequestTemplate:
    notification_type = NotificationType.REVIEW_REQUEST.value
    template_id = "review_request"
    default_priority = NotificationPriority.LOW.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        caregiver_name = context.get("caregiver_name", "your caregiver")
        content = f"How was your booking with {caregiver_name}? Leave a review to help other families."
        return RenderedContent(
            template_id=cls.template_id,
            subject=f"How was your time with {caregiver_name}?",
            content=content,
            html_content=html_layout("Share Your Experience", [content]),
            sms_content=f"Instacares Reminder: {content}",
            priority=cls.default_priority,
        )
