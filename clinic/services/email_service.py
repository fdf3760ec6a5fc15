from email.message import EmailMessage
from datetime import datetime
from typing import Callable, Optional
import logging
import smtplib
import ssl

from ..core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """SMTP sender for patient and account notifications."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email or user
        self.use_tls = use_tls

    def _build_message(self, to_email: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def send_email(self, to_email: str, subject: str, html: str) -> None:
        if not self.host or not self.from_email:
            logger.warning("SMTP is not configured, skipping email '%s' to %s", subject, to_email)
            return

        msg = self._build_message(to_email, subject, html)
        with smtplib.SMTP(self.host, self.port) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info("Sent email '%s' to %s", subject, to_email)

    def send_welcome_email(self, to_email: str, name: str) -> None:
        self.send_email(
            to_email,
            "Welcome to the clinic",
            f"<h1>Welcome, {name}!</h1><p>Your account has been created.</p>",
        )

    def send_new_appointment_notification(self, to_email: str, doctor_name: str, date_time: datetime) -> None:
        self.send_email(
            to_email,
            "Appointment requested",
            f"<h1>Medical Consultation</h1>"
            f"<p>Your appointment with Dr. {doctor_name} on {date_time:%Y-%m-%d} has been received "
            f"and is awaiting scheduling.</p>",
        )

    def send_appointment_confirmation(self, to_email: str, doctor_name: str, date_time: datetime) -> None:
        self.send_email(
            to_email,
            "Appointment scheduled",
            f"<h1>Your appointment is confirmed</h1>"
            f"<p>Dr. {doctor_name} will see you on {date_time:%Y-%m-%d} at {date_time:%H:%M}.</p>",
        )

    def send_appointment_update(self, to_email: str, status: str) -> None:
        self.send_email(
            to_email,
            "Appointment Update",
            f"<h1>Your appointment status has been updated to {status}</h1>",
        )

    def send_password_reset_email(self, to_email: str, reset_token: str) -> None:
        self.send_email(
            to_email,
            "Password reset",
            f"<p>Use this token to reset your password within the next hour:</p><p><b>{reset_token}</b></p>",
        )


def deliver_safely(send: Callable[..., None], *args, **kwargs) -> None:
    """Run an email send as a fire-and-forget task; failures are only logged."""
    try:
        send(*args, **kwargs)
    except Exception:
        logger.exception("Email delivery via %s failed", getattr(send, "__name__", send))


email_service = EmailService(
    host=settings.SMTP_HOST,
    port=settings.SMTP_PORT,
    user=settings.SMTP_USER,
    password=settings.SMTP_PASSWORD,
    from_email=settings.SMTP_FROM,
    use_tls=settings.SMTP_TLS,
)


def get_email_service() -> EmailService:
    """Email service dependency."""
    return email_service
