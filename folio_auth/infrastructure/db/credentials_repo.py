from __future__ import annotations

import uuid
from typing import Any, Iterable, Optional

import psycopg
from psycopg.rows import dict_row

from folio_auth.domain.entities import Credential
from folio_auth.domain.errors import EmailAlreadyRegistered
from folio_auth.domain.ports.credential_repository import CredentialRepositoryPort

_PUBLIC_COLUMNS = """
    id, email, first_name, last_name, role, active, verified,
    failed_login_attempts, lock_until, totp_enabled, last_login,
    verification_token_hash, verification_expires,
    reset_token_hash, reset_expires, created_at
"""
_SECRET_COLUMNS = "password_hash, totp_secret"


def _select(with_secrets: bool) -> str:
    cols = _PUBLIC_COLUMNS
    if with_secrets:
        cols = f"{cols}, {_SECRET_COLUMNS}"
    return f"SELECT {cols} FROM users"


def _to_credential(row: dict[str, Any], with_secrets: bool) -> Credential:
    return Credential(
        id=str(row["id"]),
        email=str(row["email"]),
        password_hash=row.get("password_hash") if with_secrets else None,
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        role=row["role"],
        active=bool(row["active"]),
        verified=bool(row["verified"]),
        failed_login_attempts=row["failed_login_attempts"] or 0,
        lock_until=row["lock_until"],
        totp_secret=row.get("totp_secret") if with_secrets else None,
        totp_enabled=bool(row["totp_enabled"]),
        last_login=row["last_login"],
        verification_token_hash=row["verification_token_hash"],
        verification_expires=row["verification_expires"],
        reset_token_hash=row["reset_token_hash"],
        reset_expires=row["reset_expires"],
        created_at=row["created_at"],
        secrets_loaded=with_secrets,
    )


class PgCredentialRepository(CredentialRepositoryPort):
    """
    Postgres implementation of CredentialRepositoryPort.

    NOTE:
    - This repo is constructed with an *active async connection* supplied by the UoW.
    - It does not commit; the UnitOfWork controls the transaction boundary.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def _fetch_one(
        self, where: str, params: tuple, with_secrets: bool
    ) -> Optional[Credential]:
        sql = f"{_select(with_secrets)} WHERE {where}"
        async with self._conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(sql, params)
            row = await cur.fetchone()
        if not row:
            return None
        return _to_credential(row, with_secrets)

    async def find_by_email(
        self, email: str, *, with_secrets: bool = False
    ) -> Optional[Credential]:
        return await self._fetch_one("email = LOWER(TRIM(%s))", (email,), with_secrets)

    async def find_by_id(
        self, user_id: str, *, with_secrets: bool = False
    ) -> Optional[Credential]:
        try:
            uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self._fetch_one("id = %s::uuid", (user_id,), with_secrets)

    async def find_by_verification_token(self, token_hash: str) -> Optional[Credential]:
        return await self._fetch_one(
            "verification_token_hash = %s", (token_hash,), False
        )

    async def find_by_reset_token(self, token_hash: str) -> Optional[Credential]:
        return await self._fetch_one("reset_token_hash = %s", (token_hash,), True)

    async def create(self, credential: Credential) -> Credential:
        sql = f"""
        INSERT INTO users (
            email, password_hash, first_name, last_name, role, active, verified,
            verification_token_hash, verification_expires
        )
        VALUES (LOWER(TRIM(%s)), %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING {_PUBLIC_COLUMNS}, {_SECRET_COLUMNS}
        """
        params = (
            credential.email,
            credential.password_hash,
            credential.first_name,
            credential.last_name,
            credential.role,
            credential.active,
            credential.verified,
            credential.verification_token_hash,
            credential.verification_expires,
        )
        try:
            async with self._conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(sql, params)
                row = await cur.fetchone()
        except psycopg.errors.UniqueViolation as e:
            raise EmailAlreadyRegistered() from e

        if not row:
            raise RuntimeError("create returned no row")
        return _to_credential(row, with_secrets=True)

    async def save(self, credential: Credential, fields: Iterable[str]) -> None:
        names = credential.changed_fields(fields)
        if not names:
            return
        # names come from MUTABLE_FIELDS, never from the caller's data
        assignments = ", ".join(f"{name} = %s" for name in names)
        params: list[Any] = [getattr(credential, name) for name in names]
        params.append(credential.id)
        sql = f"""
        UPDATE users
        SET {assignments}, updated_at = now()
        WHERE id = %s::uuid
        """
        async with self._conn.cursor() as cur:
            await cur.execute(sql, params)
