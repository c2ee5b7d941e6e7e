"""
Email delivery via SMTP (primary) with Resend as secondary transport
Templates are MJML, compiled to HTML and sent with a plain-text alternative
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Awaitable, Callable, Optional

import resend
from mjml import mjml2html

from .config import (
    EMAIL_RETRY_BACKOFF_MS,
    EMAIL_SEND_ATTEMPTS,
    FROM_EMAIL,
    RESEND_API_KEY,
    SMTP_HOST,
    SMTP_PASS,
    SMTP_PORT,
    SMTP_SECURE,
    SMTP_USER,
)
from .errors import NotificationFailed

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class OutgoingEmail:
    to: list[str]
    subject: str
    mjml_content: str
    text: str
    attachments: list[EmailAttachment] = field(default_factory=list)
    reply_to: Optional[str] = None


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml2html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise ValueError(f"Failed to compile MJML template: {str(e)}") from e


class SmtpTransport:
    """Plain smtplib delivery; a fresh connection per message"""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        secure: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        # Implicit TLS; otherwise STARTTLS when the server offers it
        self.secure = secure or port == 465
        self.timeout = timeout

    def _build_message(self, email: OutgoingEmail, html: str, sender: str) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = email.subject
        msg["From"] = sender
        msg["To"] = ", ".join(email.to)
        if email.reply_to:
            msg["Reply-To"] = email.reply_to

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(email.text, "plain", "utf-8"))
        body.attach(MIMEText(html, "html", "utf-8"))
        msg.attach(body)

        for attachment in email.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            part = MIMEBase(maintype, subtype or "octet-stream")
            part.set_payload(attachment.content)
            encoders.encode_base64(part)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)
        return msg

    def _send_sync(self, email: OutgoingEmail, html: str, sender: str) -> None:
        msg = self._build_message(email, html, sender)
        context = ssl.create_default_context()
        if self.secure:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            if not self.secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
            if self.username:
                server.login(self.username, self.password or "")
            server.sendmail(sender.split("<")[-1].rstrip(">"), email.to, msg.as_string())
        finally:
            server.quit()

    async def send(self, email: OutgoingEmail, html: str, sender: str) -> None:
        # smtplib blocks; keep it off the event loop
        await asyncio.to_thread(self._send_sync, email, html, sender)


class ResendTransport:
    name = "resend"

    def __init__(self, api_key: str):
        resend.api_key = api_key

    def _send_sync(self, email: OutgoingEmail, html: str, sender: str) -> None:
        email_data = {
            "from": sender,
            "to": email.to,
            "subject": email.subject,
            "html": html,
            "text": email.text,
        }
        if email.reply_to:
            email_data["reply_to"] = email.reply_to
        if email.attachments:
            email_data["attachments"] = [
                {"filename": attachment.filename, "content": list(attachment.content)}
                for attachment in email.attachments
            ]
        response = resend.Emails.send(email_data)
        logger.debug(f"Resend response: {response}")

    async def send(self, email: OutgoingEmail, html: str, sender: str) -> None:
        await asyncio.to_thread(self._send_sync, email, html, sender)


class EmailService:
    """
    Sends through the configured transports in order.

    Each transport gets `attempts` tries with linear backoff
    (backoff_ms, 2 * backoff_ms, ...) before the next one is used.
    """

    def __init__(
        self,
        transports: list,
        from_address: str = FROM_EMAIL,
        attempts: int = EMAIL_SEND_ATTEMPTS,
        backoff_ms: int = EMAIL_RETRY_BACKOFF_MS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transports = transports
        self.from_address = from_address
        self.attempts = max(1, attempts)
        self.backoff_ms = backoff_ms
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self.transports)

    async def _try_transport(self, transport, email: OutgoingEmail, html: str) -> None:
        for attempt in range(1, self.attempts + 1):
            try:
                await transport.send(email, html, self.from_address)
                return
            except Exception as e:
                logger.warning(
                    f"⚠️ {transport.name} attempt {attempt}/{self.attempts} failed "
                    f"for '{email.subject}': {e}"
                )
                if attempt == self.attempts:
                    raise
                await self._sleep(self.backoff_ms * attempt / 1000)

    async def send_with_fallback(self, email: OutgoingEmail) -> str:
        """
        Deliver one email.

        Returns:
            Name of the transport that delivered it

        Raises:
            NotificationFailed: No transport configured, or every transport failed
        """
        if not self.transports:
            logger.error("❌ No email service configured - SMTP_HOST and RESEND_API_KEY missing")
            raise NotificationFailed("Email service not configured", operation="send_email")

        html = compile_mjml_to_html(email.mjml_content)

        last_error: Optional[Exception] = None
        for transport in self.transports:
            try:
                logger.info(f"📧 Sending '{email.subject}' via {transport.name} to {email.to}")
                await self._try_transport(transport, email, html)
                logger.info(f"✅ Email sent via {transport.name}: '{email.subject}'")
                return transport.name
            except Exception as e:
                last_error = e
                logger.warning(f"⚠️ {transport.name} failed, trying next transport: {e}")

        logger.error(f"❌ Email send error to {email.to}: {last_error}")
        raise NotificationFailed(
            "Failed to send email", operation="send_email"
        ) from last_error


def create_email_service() -> EmailService:
    """EmailService wired from SMTP_* and RESEND_API_KEY"""
    transports = []
    if SMTP_HOST:
        transports.append(
            SmtpTransport(
                host=SMTP_HOST,
                port=SMTP_PORT,
                username=SMTP_USER,
                password=SMTP_PASS,
                secure=SMTP_SECURE,
            )
        )
    if RESEND_API_KEY:
        transports.append(ResendTransport(RESEND_API_KEY))

    service = EmailService(transports)
    if not service.is_configured:
        logger.warning("⚠️ No mail transport configured; notifications will fail")
    return service
