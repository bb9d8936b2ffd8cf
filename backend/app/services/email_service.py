"""
Outgoing email (password reset and password changed notifications)
"""
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging_config import LoggingConfig
from app.core.metrics import emails_sent_total

logger = LoggingConfig.get_logger(__name__)

_RESET_TEXT = """{greeting}

You requested a password reset. Please click the link below to reset your password:

{link}

This link will expire in {ttl_text}.

If you didn't request this, please ignore this email.

Regards,
{sender} Team"""

_RESET_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Password Reset Request</h2>
  <p>{greeting}</p>
  <p>You requested a password reset. Please click the button below to reset your password:</p>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{link}" style="background-color: #4CAF50; color: white; padding: 12px 20px; text-decoration: none; border-radius: 4px; display: inline-block;">Reset Password</a>
  </div>
  <p>This link will expire in {ttl_text}.</p>
  <p>If you didn't request this, please ignore this email.</p>
  <p>Regards,<br>{sender} Team</p>
  <div style="margin-top: 20px; padding-top: 20px; border-top: 1px solid #eee; font-size: 12px; color: #777;">
    <p>If the button doesn't work, copy and paste this link into your browser:</p>
    <p>{link}</p>
  </div>
</div>
"""

_CHANGED_TEXT = """{greeting}

Your password has been successfully changed.

If you didn't make this change, please contact our support team immediately.

Regards,
{sender} Team"""

_CHANGED_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Password Changed</h2>
  <p>{greeting}</p>
  <p>Your password has been successfully changed.</p>
  <p>If you didn't make this change, please contact our support team immediately.</p>
  <p>Regards,<br>{sender} Team</p>
</div>
"""


def _greeting(name: Optional[str]) -> str:
    return f"Hello {name}," if name else "Hello,"


def _ttl_text(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


class EmailService:
    """SMTP delivery of account emails. Send methods return False instead of raising."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_reset_link(self, token: str) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/reset-password?token={token}"

    def _build_message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((self.settings.email_sender_name, self.settings.email_from))
        msg["To"] = to
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage):
        settings = self.settings
        timeout = settings.email_timeout_seconds

        # Port 465 is implicit TLS, everything else upgrades with STARTTLS
        if settings.email_port == 465:
            with smtplib.SMTP_SSL(settings.email_host, settings.email_port, timeout=timeout) as smtp:
                if settings.email_user:
                    smtp.login(settings.email_user, settings.email_pass or "")
                smtp.send_message(msg)
            return

        with smtplib.SMTP(settings.email_host, settings.email_port, timeout=timeout) as smtp:
            if settings.email_user:
                smtp.starttls()
                smtp.login(settings.email_user, settings.email_pass or "")
            smtp.send_message(msg)

    def _send(self, template: str, msg: EmailMessage) -> bool:
        try:
            self._deliver(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                f"Error sending {template} email: {e}",
                extra={"template": template, "error_type": type(e).__name__}
            )
            emails_sent_total.labels(template=template, status="failed").inc()
            return False

        logger.info(f"Sent {template} email", extra={"template": template})
        emails_sent_total.labels(template=template, status="sent").inc()
        return True

    def send_password_reset_email(self, to: str, token: str, name: Optional[str] = None) -> bool:
        """Send the reset link; True when the SMTP server accepted the message"""
        link = self.build_reset_link(token)
        greeting = _greeting(name)
        ttl_text = _ttl_text(self.settings.password_reset_token_ttl_minutes)
        sender = self.settings.email_sender_name

        text = _RESET_TEXT.format(greeting=greeting, link=link, ttl_text=ttl_text, sender=sender)
        html = _RESET_HTML.format(
            greeting=escape(greeting), link=escape(link), ttl_text=ttl_text, sender=escape(sender)
        )
        msg = self._build_message(to, "Reset Your Password", text, html)
        return self._send("password_reset", msg)

    def send_password_changed_email(self, to: str, name: Optional[str] = None) -> bool:
        """Confirm a completed password change"""
        greeting = _greeting(name)
        sender = self.settings.email_sender_name

        text = _CHANGED_TEXT.format(greeting=greeting, sender=sender)
        html = _CHANGED_HTML.format(greeting=escape(greeting), sender=escape(sender))
        msg = self._build_message(to, "Your Password Has Been Changed", text, html)
        return self._send("password_changed", msg)
