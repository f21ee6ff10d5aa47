from __future__ import annotations

from typing import Iterable, Optional, Protocol

from folio_auth.domain.entities import Credential


class CredentialRepositoryPort(Protocol):
    """
    Persistent store of user credentials.

    Without ``with_secrets`` the password hash and TOTP secret come back as None.
    """

    async def find_by_email(
        self, email: str, *, with_secrets: bool = False
    ) -> Optional[Credential]:
        """Fetch by normalized email. Return None if not found."""

    async def find_by_id(
        self, user_id: str, *, with_secrets: bool = False
    ) -> Optional[Credential]:
        """Fetch by id. Return None if not found."""

    async def find_by_verification_token(self, token_hash: str) -> Optional[Credential]:
        """Fetch the user holding this email-verification token digest."""

    async def find_by_reset_token(self, token_hash: str) -> Optional[Credential]:
        """Fetch the user holding this password-reset token digest (with secrets)."""

    async def create(self, credential: Credential) -> Credential:
        """Insert a new credential and return it with id/created_at filled in."""

    async def save(self, credential: Credential, fields: Iterable[str]) -> None:
        """
        Write back only the named columns, leaving the rest of the row as
        other transactions left it. Secret columns are only accepted when the
        credential was loaded with them (``secrets_loaded``).
        """
