"""Shared validation utilities"""

import re
from typing import Optional

# Basic syntactic check; deliverability is the mail transport's problem
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip()

    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")

    return email


def require_text(value: Optional[str], label: str, max_length: int = 200) -> str:
    """
    Require a non-blank string.

    Raises:
        ValueError: If value is missing, blank or longer than max_length
    """
    if value is None or not str(value).strip():
        raise ValueError(f"{label} is required")
    value = str(value).strip()
    if len(value) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return value


def optional_text(value: Optional[str], label: str, max_length: int = 200) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return require_text(value, label, max_length)


def client_ip(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    """First X-Forwarded-For entry, else the socket peer address"""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer or "unknown"
