"""Email delivery for verification codes, approval decisions and password resets.

Sends through Resend when an API key is configured, otherwise SMTP when a
host is configured. In development with neither, messages are logged and
reported as delivered. Every send is bounded by ``email_timeout_seconds`` and
the outcome is returned as a ``DeliveryResult``; nothing is raised.
"""
import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional, Protocol

import resend

from turfease.config import get_settings
from turfease.models.base import ApprovalStatus
from turfease.services.email_templates import (
    owner_approved_template,
    owner_rejected_template,
    password_reset_template,
    verification_code_template,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    transport: Optional[str] = None


class Notifier(Protocol):
    async def send_verification_code(
        self, email: str, code: str, display_name: str, resend: bool = False
    ) -> DeliveryResult: ...

    async def send_approval_decision(
        self, email: str, display_name: str, business_name: str, decision: str, notes: Optional[str]
    ) -> DeliveryResult: ...

    async def send_password_reset(self, email: str, display_name: str, reset_url: str) -> DeliveryResult: ...


class EmailNotificationService:
    """Notification collaborator backed by transactional email."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    @property
    def transport(self) -> str:
        if self.settings.resend_api_key:
            return "resend"
        if self.settings.smtp_host:
            return "smtp"
        if self.settings.is_development:
            return "console"
        return "none"

    async def send_verification_code(
        self, email: str, code: str, display_name: str, resend: bool = False
    ) -> DeliveryResult:
        subject, html, text = verification_code_template(
            display_name, code, self.settings.otp_ttl_minutes, resend=resend
        )
        if self.transport == "console":
            # Development only; codes are never logged once a real transport exists
            logger.info(f"[dev email] verification code for {email}: {code}")
        return await self.send_email(email, subject, html, text)

    async def send_approval_decision(
        self,
        email: str,
        display_name: str,
        business_name: str,
        decision: str,
        notes: Optional[str] = None,
    ) -> DeliveryResult:
        if decision == ApprovalStatus.APPROVED.value:
            login_url = f"{self.settings.frontend_url.rstrip('/')}/login"
            subject, html, text = owner_approved_template(display_name, business_name or "", login_url)
        else:
            subject, html, text = owner_rejected_template(display_name, business_name or "", notes)
        return await self.send_email(email, subject, html, text)

    async def send_password_reset(self, email: str, display_name: str, reset_url: str) -> DeliveryResult:
        subject, html, text = password_reset_template(
            display_name, reset_url, self.settings.password_reset_ttl_minutes
        )
        if self.transport == "console":
            logger.info(f"[dev email] password reset link for {email}: {reset_url}")
        return await self.send_email(email, subject, html, text)

    async def send_email(self, to: str, subject: str, html: str, text: str = "") -> DeliveryResult:
        """Deliver one message through the configured transport."""
        transport = self.transport
        if transport == "console":
            logger.info(f"[dev email] to={to} subject={subject!r}")
            return DeliveryResult(success=True, message_id="dev-console", transport=transport)
        if transport == "none":
            logger.error("No email transport configured (RESEND_API_KEY / SMTP_HOST missing)")
            return DeliveryResult(success=False, error="email_not_configured")

        send = self._send_via_resend if transport == "resend" else self._send_via_smtp
        try:
            message_id = await asyncio.wait_for(
                asyncio.to_thread(send, to, subject, html, text),
                timeout=self.settings.email_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Email to {to} timed out after {self.settings.email_timeout_seconds}s via {transport}")
            return DeliveryResult(success=False, error="timeout", transport=transport)
        except Exception as e:
            logger.error(f"Email to {to} failed via {transport}: {e}")
            return DeliveryResult(success=False, error=str(e), transport=transport)

        logger.info(f"Email sent to {to} via {transport}: {subject!r}")
        return DeliveryResult(success=True, message_id=message_id, transport=transport)

    def _send_via_resend(self, to: str, subject: str, html: str, text: str) -> Optional[str]:
        resend.api_key = self.settings.resend_api_key
        params = {
            "from": self.settings.email_from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text
        response = resend.Emails.send(params)
        if isinstance(response, dict):
            return response.get("id")
        return getattr(response, "id", None)

    def _send_via_smtp(self, to: str, subject: str, html: str, text: str) -> str:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.email_from_address
        msg["To"] = to
        msg["Message-ID"] = make_msgid()
        if text:
            msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        host, port = self.settings.smtp_host, self.settings.smtp_port
        timeout = self.settings.email_timeout_seconds
        context = ssl.create_default_context()
        if port == 465:
            server = smtplib.SMTP_SSL(host, port, context=context, timeout=timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=timeout)
            if self.settings.smtp_use_tls:
                server.starttls(context=context)
        try:
            if self.settings.smtp_username:
                server.login(self.settings.smtp_username, self.settings.smtp_password)
            sender = self.settings.email_from_address.split("<")[-1].rstrip(">")
            server.sendmail(sender, [to], msg.as_string())
        finally:
            server.quit()
        return msg["Message-ID"]
