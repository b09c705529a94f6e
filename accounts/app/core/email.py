"""Email delivery of verification codes and password reset links via Resend."""

import asyncio
import logging
from typing import Protocol

from accounts.app.core.errors import DeliveryError

logger = logging.getLogger(__name__)

# Lazy import — resend is only needed when a message is actually sent
_resend = None


def _get_resend(api_key: str):
    global _resend
    if _resend is None:
        import resend
        _resend = resend
    _resend.api_key = api_key
    return _resend


class Notifier(Protocol):
    """Delivers secrets to an address; raises DeliveryError on failure."""

    async def send_verification_code(self, email: str, name: str, code: str) -> None: ...

    async def send_reset_link(self, email: str, name: str, token: str) -> None: ...


def render_verification(name: str, code: str) -> tuple[str, str]:
    text = (
        f"Hello {name},\n\n"
        f"Your verification code is: {code}\n\n"
        "This code will expire in 24 hours.\n\n"
        "If you did not create an account, please ignore this email."
    )
    html = f"""
    <h2>Verify Your Email Address</h2>
    <p>Hello {name},</p>
    <p>Thank you for registering! Use the following code to verify your account:</p>
    <p style="font-size: 24px; font-weight: bold; letter-spacing: 5px;">{code}</p>
    <p>This code will expire in 24 hours.</p>
    <p>If you did not create an account, please ignore this email.</p>
    """
    return text, html


def render_reset(name: str, reset_link: str) -> tuple[str, str]:
    text = (
        f"Hello {name},\n\n"
        "You requested a password reset. Open the following link to choose a new "
        f"password: {reset_link}\n\n"
        "This link will expire in 10 minutes.\n\n"
        "If you did not request a password reset, please ignore this email."
    )
    html = f"""
    <h2>Reset Your Password</h2>
    <p>Hello {name},</p>
    <p>You requested a password reset. Click the link below to set a new password:</p>
    <p><a href="{reset_link}">Reset Password</a></p>
    <p>This link will expire in 10 minutes.</p>
    <p>If you did not request a password reset, please ignore this email.</p>
    """
    return text, html


class ResendNotifier:
    """Notifier backed by the Resend API.

    A send that outlives ``timeout`` is reported as a DeliveryError, but the
    worker thread running it cannot be cancelled, so the email may still go
    out after the caller has revoked the secret it carries. A fresh code or
    link can always be requested again.
    """

    def __init__(self, api_key: str, from_address: str, reset_url_base: str, timeout: float = 15.0):
        self.api_key = api_key
        self.from_address = from_address
        self.reset_url_base = reset_url_base.rstrip("/")
        self.timeout = timeout

    def reset_link(self, token: str) -> str:
        return f"{self.reset_url_base}/reset-password?token={token}"

    async def _send(self, email: str, subject: str, text: str, html: str) -> None:
        try:
            resend = _get_resend(self.api_key)
            await asyncio.wait_for(
                asyncio.to_thread(resend.Emails.send, {
                    "from": self.from_address,
                    "to": [email],
                    "subject": subject,
                    "text": text,
                    "html": html,
                }),
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.exception("Failed to send '%s' email to %s", subject, email)
            raise DeliveryError("Email could not be sent") from exc
        logger.info("'%s' email sent to %s", subject, email)

    async def send_verification_code(self, email: str, name: str, code: str) -> None:
        text, html = render_verification(name, code)
        await self._send(email, "Email Verification Code", text, html)

    async def send_reset_link(self, email: str, name: str, token: str) -> None:
        text, html = render_reset(name, self.reset_link(token))
        await self._send(email, "Password Reset", text, html)
