"""
MJML Email Templates
Booking and contact emails using MJML for responsive, cross-client compatibility.
Each MJML template has a plain-text counterpart sent as the alternative part.
"""

from html import escape
from typing import Optional

from .config import BUSINESS_DOMAIN, BUSINESS_NAME

THEME = {
    "primary": "#4f46e5",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    is_owner_email: bool = False,
) -> str:
    """Base MJML template wrapper for all emails"""

    footer_notice = ""
    if is_owner_email:
        footer_notice = f"""
        <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
          Sent by the {escape(BUSINESS_NAME)} website backend.
        </mj-text>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{escape(title)}</mj-title>
        <mj-preview>{escape(preview_text)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 0 40px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{THEME['primary']}" padding="0">
              {escape(BUSINESS_NAME)}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 32px 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {escape(title)}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              <a href="https://{BUSINESS_DOMAIN}" style="color: #64748b; text-decoration: none;">{escape(BUSINESS_DOMAIN)}</a>
            </mj-text>
            {footer_notice}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    return "\n".join(
        f"""
    <mj-text padding="4px 0" font-size="15px">
      <strong>{escape(label)}:</strong> {escape(value)}
    </mj-text>"""
        for label, value in rows
    )


def _multiline(value: str) -> str:
    return escape(value).replace("\n", "<br />")


# ============================================
# Booking
# ============================================


def booking_confirmation_template(
    customer_name: str,
    when: str,
    timezone: str,
    duration_minutes: int,
) -> str:
    """Booking confirmed, sent to the customer with the calendar invite attached"""
    content = f"""
    <mj-text>
      Hi {escape(customer_name)},
    </mj-text>

    <mj-text>
      Thank you, your {duration_minutes}-minute introductory call with
      <strong>{escape(BUSINESS_NAME)}</strong> is confirmed.
    </mj-text>

    <mj-text align="center" font-size="18px" font-weight="600" color="{THEME['success']}" padding="20px 0 8px 0">
      ✓ {escape(when)}
    </mj-text>

    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" padding="0 0 20px 0">
      {escape(timezone)}
    </mj-text>

    <mj-text>
      The attached invitation adds the appointment to your calendar.
      Just reply to this email if you need to reschedule.
    </mj-text>
    """

    return get_base_template(
        title="Your appointment is confirmed",
        preview_text=f"Appointment confirmed for {when}",
        content_sections=content,
    )


def booking_confirmation_text(
    customer_name: str, when: str, timezone: str, duration_minutes: int
) -> str:
    return (
        f"Hi {customer_name},\n\n"
        f"Thank you, your {duration_minutes}-minute introductory call is confirmed for "
        f"{when} ({timezone}).\n\n"
        f"Best regards,\nthe {BUSINESS_NAME} team\n"
    )


def booking_owner_notice_template(
    customer_name: str,
    customer_email: str,
    phone: Optional[str],
    when: str,
    timezone: str,
    duration_minutes: int,
    booking_id: str,
) -> str:
    """New booking notice for the business owner"""
    content = _detail_rows(
        [
            ("Name", customer_name),
            ("Email", customer_email),
            ("Phone", phone or "(none)"),
            ("Start", f"{when} ({timezone})"),
            ("Duration", f"{duration_minutes} min"),
            ("Booking ID", booking_id),
        ]
    )

    return get_base_template(
        title=f"New booking: {customer_name}",
        preview_text=f"{customer_name} booked {when}",
        content_sections=content,
        is_owner_email=True,
    )


def booking_owner_notice_text(
    customer_name: str,
    customer_email: str,
    phone: Optional[str],
    when: str,
    timezone: str,
    duration_minutes: int,
    booking_id: str,
) -> str:
    return (
        f"Name: {customer_name}\n"
        f"Email: {customer_email}\n"
        f"Phone: {phone or '(none)'}\n"
        f"Start: {when} ({timezone})\n"
        f"Duration: {duration_minutes} min\n"
        f"Booking ID: {booking_id}\n"
    )


# ============================================
# Contact form
# ============================================


def contact_owner_notice_template(
    sender_name: str,
    sender_email: str,
    phone: Optional[str],
    message: str,
    ip: str,
    received_at: str,
) -> str:
    """Contact form submission forwarded to the business owner"""
    content = _detail_rows(
        [
            ("Name", sender_name),
            ("Email", sender_email),
            ("Phone", phone or "(none)"),
        ]
    )
    content += f"""
    <mj-text padding="20px 0 4px 0" font-size="15px">
      <strong>Message:</strong>
    </mj-text>
    <mj-text padding="0 0 20px 0" font-size="15px" color="{THEME['text_primary']}">
      {_multiline(message)}
    </mj-text>
    <mj-text font-size="13px" color="{THEME['text_muted']}" padding="0">
      IP: {escape(ip)} · Received: {escape(received_at)}
    </mj-text>
    """

    return get_base_template(
        title=f"New contact request from {sender_name}",
        preview_text=message[:100],
        content_sections=content,
        is_owner_email=True,
    )


def contact_owner_notice_text(
    sender_name: str,
    sender_email: str,
    phone: Optional[str],
    message: str,
    ip: str,
    received_at: str,
) -> str:
    return "\n".join(
        [
            f"Name: {sender_name}",
            f"Email: {sender_email}",
            f"Phone: {phone or '(none)'}",
            "Message:",
            message,
            "",
            f"IP: {ip}",
            f"Received: {received_at}",
        ]
    )


def contact_autoreply_template(sender_name: str) -> str:
    """Acknowledgement sent to whoever submitted the contact form"""
    content = f"""
    <mj-text>
      Hi {escape(sender_name)},
    </mj-text>

    <mj-text>
      Thank you for your message! We have received your request and will get
      back to you as soon as possible.
    </mj-text>
    """

    return get_base_template(
        title="Thanks for your message",
        preview_text=f"{BUSINESS_NAME} received your message",
        content_sections=content,
    )


def contact_autoreply_text(sender_name: str) -> str:
    return (
        f"Hi {sender_name},\n\n"
        "Thank you for your message! We have received your request and will get back "
        "to you as soon as possible.\n\n"
        f"Best regards,\n{BUSINESS_NAME}\n"
    )
