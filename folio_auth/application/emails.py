"""Outbound notification messages. Delivery happens in the outbox worker."""
from __future__ import annotations

from folio_auth.domain.entities import Credential
from folio_auth.domain.ports.email_port import OutboundEmail
from folio_auth.domain.ports.outbox_repository import OutboxRepositoryPort

EMAIL_TOPIC = "email.send"


def _greeting(user: Credential) -> str:
    return f"Hi {user.first_name}," if user.first_name else "Hi,"


def verification_email(user: Credential, token: str, frontend_url: str) -> OutboundEmail:
    url = f"{frontend_url.rstrip('/')}/verify-email?token={token}"
    return OutboundEmail(
        to=str(user.email),
        subject="Please verify your email address",
        body=f"{_greeting(user)}\n\nConfirm your email address: {url}\n",
    )


def password_reset_email(
    user: Credential, token: str, frontend_url: str, expiry_hours: int
) -> OutboundEmail:
    url = f"{frontend_url.rstrip('/')}/reset-password?token={token}"
    return OutboundEmail(
        to=str(user.email),
        subject="Password Reset Request",
        body=(
            f"{_greeting(user)}\n\nReset your password: {url}\n"
            f"The link expires in {expiry_hours} hour(s).\n"
        ),
    )


def password_changed_email(user: Credential) -> OutboundEmail:
    return OutboundEmail(
        to=str(user.email),
        subject="Password Changed Successfully",
        body=(
            f"{_greeting(user)}\n\nYour password was just changed. "
            "If this wasn't you, reset it immediately.\n"
        ),
    )


async def enqueue_email(outbox: OutboxRepositoryPort, message: OutboundEmail) -> str:
    return await outbox.enqueue(topic=EMAIL_TOPIC, payload=message.as_payload())
