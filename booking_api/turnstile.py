"""
Cloudflare Turnstile CAPTCHA verification
"""

import logging
from typing import Optional

import httpx

from .config import ALLOW_CONTACT_NO_CAPTCHA, TURNSTILE_SECRET

logger = logging.getLogger(__name__)

SITEVERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class TurnstileVerifier:
    """
    Verifies Turnstile tokens against Cloudflare siteverify.

    Fails closed: a missing secret, a network error or an unreadable
    response all count as a failed verification. Only `allow_bypass`
    (ALLOW_CONTACT_NO_CAPTCHA, for local development) skips the check.
    """

    def __init__(
        self,
        secret: Optional[str] = TURNSTILE_SECRET,
        allow_bypass: bool = ALLOW_CONTACT_NO_CAPTCHA,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret = secret
        self.allow_bypass = allow_bypass
        self.timeout = timeout
        self._transport = transport

    async def verify(self, token: Optional[str], ip: Optional[str] = None) -> bool:
        """
        Verify a Turnstile token.

        Args:
            token: Turnstile token from the client
            ip: Client IP address (optional)

        Returns:
            True if verification succeeded or is bypassed
        """
        if self.allow_bypass:
            logger.info("ALLOW_CONTACT_NO_CAPTCHA is true - skipping CAPTCHA verification")
            return True

        if not self.secret:
            logger.error("❌ TURNSTILE_SECRET not configured - rejecting CAPTCHA")
            return False

        if not token:
            return False

        data = {"secret": self.secret, "response": token}
        if ip:
            data["remoteip"] = ip

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(SITEVERIFY_URL, data=data)
                result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Turnstile verification error: {str(e)}")
            return False

        success = result.get("success") is True
        if success:
            logger.info(f"✅ Turnstile verification successful for IP: {ip}")
        else:
            logger.warning(
                f"❌ Turnstile verification failed for IP: {ip} - Errors: {result.get('error-codes', [])}"
            )
        return success
