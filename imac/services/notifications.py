"""
Out-of-band delivery of password reset tokens.

The auth service only generates and persists the token; a notifier hands it to
the user. With SMTP configured an email is sent, otherwise the link is logged
(masked, and only in dev).
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, NamedTuple, Protocol

from imac.core.security import mask_sensitive

if TYPE_CHECKING:
    from imac.core.config import Settings

logger = logging.getLogger(__name__)


class ResetDelivery(NamedTuple):
    """A reset token waiting to be handed to a notifier."""

    user_id: int
    email: str
    token: str


class PasswordResetNotifier(Protocol):
    def send_password_reset(self, user_id: int, email: str, token: str) -> None: ...


def build_reset_link(settings: "Settings", token: str) -> str:
    return f"{settings.FRONTEND_URL}/reset-password?token={token}"


class LoggingResetNotifier:
    """Development notifier: logs a masked reset link instead of sending mail."""

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings

    def send_password_reset(self, user_id: int, email: str, token: str) -> None:
        if self.settings.APP_ENV == "dev":
            logger.info(
                "Password reset token generated (dev)",
                extra={
                    "user_id": user_id,
                    "email": mask_sensitive(email, 3),
                    "reset_link": mask_sensitive(build_reset_link(self.settings, token), 20),
                    "token_preview": f"{token[:8]}...",
                },
            )
        else:
            logger.info("Password reset token generated", extra={"user_id": user_id})


class SmtpResetNotifier:
    """Sends the reset link by email over SMTP."""

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings

    def _build_message(self, email: str, token: str) -> MIMEMultipart:
        link = build_reset_link(self.settings, token)
        minutes = self.settings.PASSWORD_RESET_EXPIRE_MINUTES

        msg = MIMEMultipart("alternative")
        msg["From"] = self.settings.SMTP_FROM
        msg["To"] = email
        msg["Subject"] = "IMAC - Password reset"

        text_content = (
            "A password reset was requested for your IMAC account.\n\n"
            f"Open this link to choose a new password (valid for {minutes} minutes):\n"
            f"{link}\n\n"
            "If you did not request this, you can ignore this email."
        )
        html_content = f"""
        <html>
          <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
            <h2>IMAC - Password reset</h2>
            <p>A password reset was requested for your IMAC account.</p>
            <p><a href="{link}">Choose a new password</a> (valid for {minutes} minutes).</p>
            <p style="font-size: 12px; color: #888;">
              If you did not request this, you can ignore this email.
            </p>
          </body>
        </html>
        """
        msg.attach(MIMEText(text_content, "plain", "utf-8"))
        msg.attach(MIMEText(html_content, "html", "utf-8"))
        return msg

    def send_password_reset(self, user_id: int, email: str, token: str) -> None:
        msg = self._build_message(email, token)
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD is not None:
                server.login(
                    self.settings.SMTP_USERNAME,
                    self.settings.SMTP_PASSWORD.get_secret_value(),
                )
            server.send_message(msg)
        logger.info("Password reset email sent", extra={"user_id": user_id})


def get_reset_notifier(settings: "Settings") -> PasswordResetNotifier:
    """SMTP notifier when SMTP_HOST is configured, logging notifier otherwise."""
    if settings.SMTP_HOST:
        return SmtpResetNotifier(settings)
    return LoggingResetNotifier(settings)
