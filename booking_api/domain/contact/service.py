"""Contact service - validation, CAPTCHA check and owner notification"""

import logging
from typing import Optional, Protocol

from ...errors import InvalidInput
from ...shared.validators import optional_text, require_text, validate_email
from .schemas import ContactMessage, ContactRequest

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


class CaptchaVerifier(Protocol):
    async def verify(self, token: Optional[str], ip: Optional[str] = None) -> bool: ...


class ContactNotifier(Protocol):
    async def notify_contact(
        self, name: str, email: str, phone: Optional[str], message: str, ip: str
    ) -> None: ...


class ContactService:
    def __init__(self, notifier: ContactNotifier, captcha_verifier: CaptchaVerifier):
        self.notifier = notifier
        self.captcha_verifier = captcha_verifier

    @staticmethod
    def validate(request: ContactRequest) -> ContactMessage:
        """
        Raises:
            InvalidInput: With a field -> message map
        """
        errors: dict[str, str] = {}
        values: dict[str, Optional[str]] = {}

        for field_name, func, args in (
            ("name", require_text, (request.name, "Name")),
            ("email", require_text, (request.email, "Email", 254)),
            ("phone", optional_text, (request.phone, "Phone", 50)),
            ("message", require_text, (request.message, "Message", MAX_MESSAGE_LENGTH)),
        ):
            try:
                values[field_name] = func(*args)
            except ValueError as e:
                errors[field_name] = str(e)

        if "email" not in errors:
            try:
                values["email"] = validate_email(values["email"])
            except ValueError as e:
                errors["email"] = str(e)

        if errors:
            raise InvalidInput("Please provide name, email and message", errors)

        return ContactMessage(**values)

    async def submit(self, request: ContactRequest, ip: str) -> ContactMessage:
        """
        Validate, verify the CAPTCHA and forward the message to the owner.

        Raises:
            InvalidInput: Bad fields or failed CAPTCHA
            NotificationFailed: Owner notice could not be delivered
        """
        contact = self.validate(request)

        if not await self.captcha_verifier.verify(request.token, ip):
            raise InvalidInput("Captcha verification failed", {"token": "Invalid or missing token"})

        await self.notifier.notify_contact(
            contact.name, contact.email, contact.phone, contact.message, ip
        )
        logger.info(f"📨 Contact request from {contact.email} forwarded (ip={ip})")
        return contact
