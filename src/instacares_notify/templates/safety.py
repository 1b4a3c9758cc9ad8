"""Child safety templates — pickup, dropoff and emergency alerts."""

from instacares_notify.notification.notification import NotificationPriority, NotificationType
from instacares_notify.templates.base import RenderedContent, html_layout


class PickupReminderTemplate:
    notification_type = NotificationType.PICKUP_REMINDER.value
    template_id = "critical_pickup_reminder"
    default_priority = NotificationPriority.CRITICAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        child_name = context.get("child_name", "Your child")
        pickup_time = context.get("pickup_time", "the scheduled time")
        location = context.get("location", "the agreed location")
        parent_name = context.get("parent_name", "Parent")
        emergency_contact = context.get("emergency_contact", "N/A")

        return RenderedContent(
            template_id=cls.template_id,
            subject=f"\U0001f6a8 URGENT: Pickup Required - {child_name}",
            content=(
                f"URGENT PICKUP REMINDER: {child_name} needs pickup at {pickup_time} from {location}. "
                f"Emergency contact: {emergency_contact}"
            ),
            html_content=html_layout(
                "Urgent Pickup Reminder",
                [f"{child_name} needs pickup at {pickup_time} from {location}."],
                {"Emergency contact": emergency_contact},
            ),
            sms_content=(
                f"\U0001f6a8 URGENT PICKUP REMINDER: {child_name} needs pickup at {pickup_time} from {location}. "
                f"Parent: {parent_name}. Emergency: {emergency_contact}. Confirm receipt by replying RECEIVED."
            ),
            priority=cls.default_priority,
        )


class DropoffConfirmationTemplate:
    notification_type = NotificationType.DROPOFF_CONFIRMATION.value
    template_id = "dropoff_confirmation"
    default_priority = NotificationPriority.HIGH.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        child_name = context.get("child_name", "Your child")
        caregiver_name = context.get("caregiver_name", "the caregiver")
        dropoff_time = context.get("dropoff_time", "the scheduled time")
        location = context.get("location", "the agreed location")
        photo_url = context.get("photo_url")

        content = (
            f"✅ DROPOFF CONFIRMED: {child_name} safely dropped off with {caregiver_name} "
            f"at {dropoff_time} at {location}."
        )
        if photo_url:
            content += f" Photo: {photo_url}"
        content += " Reply STOP to opt out."

        return RenderedContent(
            template_id=cls.template_id,
            subject=f"Dropoff Confirmed - {child_name}",
            content=content,
            html_content=html_layout(
                "Dropoff Confirmed",
                [f"{child_name} was safely dropped off with {caregiver_name}."],
                {"Time": dropoff_time, "Location": location},
            ),
            sms_content=content,
            priority=cls.default_priority,
        )


class EmergencyAlertTemplate:
    notification_type = NotificationType.EMERGENCY_ALERT.value
    template_id = "emergency_alert"
    default_priority = NotificationPriority.CRITICAL.value

    @classmethod
    def render(cls, context: dict) -> RenderedContent:
        child_name = context.get("child_name", "your child")
        situation = context.get("situation", "An emergency")
        location = context.get("location", "an unknown location")
        contact_number = context.get("contact_number", "your caregiver")

        content = (
            f"EMERGENCY ALERT: {situation} involving {child_name} at {location}. "
            f"Call {contact_number} IMMEDIATELY."
        )
        return RenderedContent(
            template_id=cls.template_id,
            subject=f"\U0001f6a8 EMERGENCY ALERT - {child_name}",
            content=content,
            html_content=html_layout("Emergency Alert", [content]),
            sms_content=(
                f"\U0001f6a8 EMERGENCY ALERT: {situation} involving {child_name} at {location}. "
                f"Call {contact_number} IMMEDIATELY. This is an automated emergency notification."
            ),
            priority=cls.default_priority,
        )
