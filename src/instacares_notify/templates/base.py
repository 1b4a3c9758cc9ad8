"""Rendered content shared by every template."""

from dataclasses import dataclass
from html import escape

from instacares_notify.notification.notification import NotificationPriority


@dataclass(frozen=True)
class RenderedContent:
    template_id: str
    subject: str
    content: str
    html_content: str | None = None
    sms_content: str | None = None
    priority: str = NotificationPriority.NORMAL.value


def html_layout(heading: str, paragraphs: list[str], details: dict | None = None) -> str:
    """Wrap text in the standard Instacares email layout. All values are escaped."""
    body = "".join(f"<p>{escape(str(p))}</p>" for p in paragraphs)
    if details:
        rows = "".join(f"<p><strong>{escape(str(k))}:</strong> {escape(str(v))}</p>" for k, v in details.items())
        body += f'<div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">{rows}</div>'
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h1 style="color: #e11d48;">{escape(heading)}</h1>'
        f"{body}"
        '<hr style="margin-top: 40px; border: none; border-top: 1px solid #e5e7eb;">'
        '<p style="color: #6b7280; font-size: 12px;">'
        "This is an automated message from Instacares. Please do not reply to this email."
        "</p></div>"
    )
