from __future__ import annotations

import logging
from html import escape
from typing import Optional

import requests

from ..core.config import (
    EMAIL_FROM,
    EMAIL_REQUEST_TIMEOUT_SECONDS,
    EMAILS_ENABLED,
    FRONTEND_BASE_URL,
    PASSWORD_RESET_TTL_MINUTES,
    RESEND_API_KEY,
    RESEND_API_URL,
)

logger = logging.getLogger(__name__)


def _frame(title: str, body: str, link: str, label: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
        'background: #111; color: #fff; padding: 40px; border-radius: 8px;">'
        f'<h1 style="color: #d00024; margin-bottom: 24px;">{title}</h1>'
        f'<p style="font-size: 16px; line-height: 1.6; margin-bottom: 24px;">{body}</p>'
        f'<a href="{link}" style="display: inline-block; background: #d00024; color: #fff; '
        f'padding: 12px 32px; border-radius: 6px; text-decoration: none; font-weight: bold;">{label}</a>'
        f'<p style="font-size: 14px; color: #888; margin-top: 32px;">Or copy this link: {link}</p>'
        "</div>"
    )


class EmailService:
    """Transactional mail through the Resend HTTP API.

    Sends never raise: a failed delivery is logged and reported as ``False`` so
    the operation that triggered it carries on.
    """

    def __init__(
        self,
        api_key: str = RESEND_API_KEY,
        api_url: str = RESEND_API_URL,
        sender: str = EMAIL_FROM,
        base_url: str = FRONTEND_BASE_URL,
        timeout: int = EMAIL_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def enabled(self) -> bool:
        return EMAILS_ENABLED and bool(self.api_key)

    def send_verification_email(self, address: str, name: str, token: str) -> bool:
        link = f"{self.base_url}/verify?token={token}"
        html = _frame(
            f"Welcome to NexarOS, {escape(name)}!",
            "Thank you for creating your NexarOS account. "
            "Please verify your email address to unlock all features.",
            link,
            "Verify Email",
        )
        return self._send(address, "Verify your NexarOS account", html)

    def send_password_reset_email(self, address: str, name: str, token: str) -> bool:
        link = f"{self.base_url}/reset-password?token={token}"
        html = _frame(
            f"Reset your password, {escape(name)}",
            "We received a request to reset your NexarOS password. "
            f"This link expires in {PASSWORD_RESET_TTL_MINUTES} minutes.",
            link,
            "Reset Password",
        )
        return self._send(address, "Reset your NexarOS password", html)

    def _send(self, to: str, subject: str, html: str) -> bool:
        if not self.enabled():
            logger.warning("Email delivery disabled; skipped %r to %s", subject, to)
            return False
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        try:
            resp = self.session.post(self.api_url, headers=headers, json=body, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException:
            logger.exception("Failed to send %r to %s", subject, to)
            return False
        logger.info("Sent %r to %s", subject, to)
        return True


email_service = EmailService()
