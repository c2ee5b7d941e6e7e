"""
Notification Service - booking and contact emails

Booking notices run after the booking has been persisted, so their
failures are logged and never reach the caller. The contact owner notice
is the whole point of the contact request and therefore raises.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import BUSINESS_DOMAIN, BUSINESS_NAME, CONTACT_NOTIFICATION_EMAIL, FROM_EMAIL
from ..domain.scheduling.schemas import BookingNotice
from ..email_service import EmailAttachment, EmailService, OutgoingEmail
from ..email_templates import (
    booking_confirmation_template,
    booking_confirmation_text,
    booking_owner_notice_template,
    booking_owner_notice_text,
    contact_autoreply_template,
    contact_autoreply_text,
    contact_owner_notice_template,
    contact_owner_notice_text,
)
from .calendar_invite import ICS_CONTENT_TYPE, ICS_FILENAME, build_invite

logger = logging.getLogger(__name__)


def format_when(value: datetime) -> str:
    """e.g. 'Tuesday, 14 October 2025, 15:30'"""
    return value.strftime("%A, %d %B %Y, %H:%M")


class NotificationService:
    def __init__(
        self,
        email_service: EmailService,
        owner_email: str = CONTACT_NOTIFICATION_EMAIL,
        organizer_email: str = FROM_EMAIL,
        business_name: str = BUSINESS_NAME,
        business_domain: str = BUSINESS_DOMAIN,
    ):
        self.email_service = email_service
        self.owner_email = owner_email
        self.organizer_email = organizer_email
        self.business_name = business_name
        self.business_domain = business_domain

    def build_booking_invite(self, notice: BookingNotice) -> str:
        return build_invite(
            uid=f"{notice.booking_id}@{self.business_domain}",
            start_utc=notice.start_utc,
            end_utc=notice.end_utc,
            summary=f"{notice.duration_minutes}-min introductory call with {self.business_name}",
            description=f"Introductory call with {notice.name}\nEmail: {notice.email}",
            organizer_name=self.business_name,
            organizer_email=self.organizer_email,
            attendee_email=notice.email,
            attendee_name=notice.name,
        )

    async def notify_booking(self, notice: BookingNotice) -> None:
        """Owner notice, then customer confirmation with the calendar invite"""
        when = format_when(notice.start_local)

        owner_email = OutgoingEmail(
            to=[self.owner_email],
            subject=f"New booking: {notice.name}",
            mjml_content=booking_owner_notice_template(
                notice.name,
                notice.email,
                notice.phone,
                when,
                notice.timezone,
                notice.duration_minutes,
                notice.booking_id,
            ),
            text=booking_owner_notice_text(
                notice.name,
                notice.email,
                notice.phone,
                when,
                notice.timezone,
                notice.duration_minutes,
                notice.booking_id,
            ),
            reply_to=notice.email,
        )
        try:
            await self.email_service.send_with_fallback(owner_email)
        except Exception as e:
            logger.error(f"❌ Owner notice for booking {notice.booking_id} failed: {e}")

        customer_email = OutgoingEmail(
            to=[notice.email],
            subject=f"Confirmed: your {notice.duration_minutes}-minute introductory call",
            mjml_content=booking_confirmation_template(
                notice.name, when, notice.timezone, notice.duration_minutes
            ),
            text=booking_confirmation_text(
                notice.name, when, notice.timezone, notice.duration_minutes
            ),
            attachments=[
                EmailAttachment(
                    filename=ICS_FILENAME,
                    content=self.build_booking_invite(notice).encode("utf-8"),
                    content_type=ICS_CONTENT_TYPE,
                )
            ],
        )
        try:
            await self.email_service.send_with_fallback(customer_email)
        except Exception as e:
            logger.error(f"❌ Confirmation for booking {notice.booking_id} failed: {e}")

    async def notify_contact(
        self,
        name: str,
        email: str,
        phone: Optional[str],
        message: str,
        ip: str,
        received_at: Optional[datetime] = None,
    ) -> None:
        """
        Forward a contact request to the owner.

        Raises:
            NotificationFailed: If no transport could deliver it
        """
        received = (received_at or datetime.now(timezone.utc)).isoformat()
        await self.email_service.send_with_fallback(
            OutgoingEmail(
                to=[self.owner_email],
                subject=f"New contact request from {name}",
                mjml_content=contact_owner_notice_template(
                    name, email, phone, message, ip, received
                ),
                text=contact_owner_notice_text(name, email, phone, message, ip, received),
                reply_to=email,
            )
        )

    async def send_contact_autoreply(self, name: str, email: str) -> None:
        """Best-effort acknowledgement to the sender"""
        try:
            await self.email_service.send_with_fallback(
                OutgoingEmail(
                    to=[email],
                    subject=f"Thanks for your message - {self.business_name}",
                    mjml_content=contact_autoreply_template(name),
                    text=contact_autoreply_text(name),
                )
            )
        except Exception as e:
            logger.warning(f"⚠️ Contact autoreply to {email} failed: {e}")
