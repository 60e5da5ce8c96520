import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from fastapi import BackgroundTasks

from calbook.core.config import settings
from calbook.models.appointment import Appointment
from calbook.models.owner import Owner

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, html_body: str) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _slot_display(appointment: Appointment) -> tuple[str, str]:
    start = appointment.appointment_datetime_utc
    end = appointment.end_datetime_utc
    return (
        start.strftime("%A, %B %d, %Y"),
        f"{start:%I:%M %p} – {end:%I:%M %p} (UTC)",
    )


def build_guest_confirmation_html(appointment: Appointment, owner_name: str) -> str:
    date_str, time_str = _slot_display(appointment)
    message_section = ""
    if appointment.guest_message:
        message_section = (
            '<p style="margin:0 0 8px 0;color:#374151;"><strong>Your message:</strong></p>'
            f'<p style="margin:0 0 24px 0;color:#6b7280;">{escape(appointment.guest_message)}</p>'
        )
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Meeting Confirmed</title></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#f3f4f6;padding:40px 16px;">
  <div style="max-width:560px;margin:0 auto;background:#ffffff;border-radius:12px;padding:32px;">
    <h1 style="margin:0 0 8px 0;font-size:22px;color:#111827;">Meeting Confirmed</h1>
    <p style="margin:0 0 24px 0;color:#6b7280;">Hi {escape(appointment.guest_name)}, your {appointment.duration_minutes} min meeting with {escape(owner_name)} is booked.</p>
    <p style="margin:0;font-weight:600;color:#111827;">{date_str}</p>
    <p style="margin:0 0 24px 0;font-weight:600;color:#111827;">{time_str}</p>
    {message_section}
    <p style="margin:0;font-size:13px;color:#6b7280;">{escape(settings.site_name)}</p>
  </div>
</body>
</html>
"""


def build_owner_notification_html(appointment: Appointment) -> str:
    date_str, time_str = _slot_display(appointment)
    message = escape(appointment.guest_message) if appointment.guest_message else "(none)"
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>New Booking</title></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
  <h1 style="font-size:20px;">New booking</h1>
  <p><strong>Guest:</strong> {escape(appointment.guest_name)} &lt;{escape(appointment.guest_email)}&gt;</p>
  <p><strong>When:</strong> {date_str}, {time_str}</p>
  <p><strong>Message:</strong> {message}</p>
</body>
</html>
"""


def send_guest_confirmation_email(appointment: Appointment, owner_name: str) -> None:
    subject = f"{settings.site_name} – Meeting with {owner_name} confirmed"
    _send_email_sync(
        appointment.guest_email, subject, build_guest_confirmation_html(appointment, owner_name)
    )


def send_owner_notification_email(appointment: Appointment, owner_email: str) -> None:
    subject = f"{settings.site_name} – New booking from {appointment.guest_name}"
    _send_email_sync(owner_email, subject, build_owner_notification_html(appointment))


class EmailNotifier:
    """Queues confirmation emails on the request's background tasks (sync SMTP)."""

    def __init__(self, background_tasks: BackgroundTasks, owner: Owner) -> None:
        self._background_tasks = background_tasks
        self._owner = owner

    def send_confirmation(self, appointment: Appointment) -> None:
        self._background_tasks.add_task(
            send_guest_confirmation_email,
            appointment=appointment,
            owner_name=self._owner.display_name,
        )
        self._background_tasks.add_task(
            send_owner_notification_email,
            appointment=appointment,
            owner_email=self._owner.email,
        )
