"""
Outgoing mail.

The mailer lives on ``app.state.mailer``. ``LogMailer`` only records that a
message went out; the body carries a live token and is never logged.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import Request

log = structlog.get_logger()


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


class LogMailer:
    # TODO: deliver through an SMTP relay once one is provisioned.
    async def send(self, message: EmailMessage) -> None:
        log.info("mail.sent", to=message.to, subject=message.subject)


def get_mailer(request: Request) -> LogMailer:
    """FastAPI dependency returning the application's mailer."""
    return request.app.state.mailer


def password_reset_message(to: str, username: str, link: str, ttl_seconds: int) -> EmailMessage:
    minutes = ttl_seconds // 60
    body = (
        f"Hi {username},\n\n"
        "We received a request to reset your password. Open the link below to "
        "choose a new one:\n\n"
        f"{link}\n\n"
        f"This link expires in {minutes} minutes. If you did not ask for a reset, "
        "you can ignore this email.\n"
    )
    return EmailMessage(to=to, subject="Reset your password", body=body)


def verification_message(to: str, username: str, link: str, ttl_seconds: int) -> EmailMessage:
    hours = ttl_seconds // 3600
    body = (
        f"Hello {username},\n\n"
        "Please confirm your email address by opening the link below:\n\n"
        f"{link}\n\n"
        f"This link expires in {hours} hours.\n"
    )
    return EmailMessage(to=to, subject="Verify your email address", body=body)
