"""Contact domain schemas"""

from typing import Optional

from pydantic import BaseModel


class ContactRequest(BaseModel):
    """
    Contact form body.

    Fields are Optional so ContactService can report every problem at once.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    token: Optional[str] = None  # Cloudflare Turnstile response


class ContactMessage(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    message: str


class ContactResponse(BaseModel):
    message: str
