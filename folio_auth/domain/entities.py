from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Literal

Role = Literal["admin", "manager", "user"]
ROLES: tuple[str, ...] = ("admin", "manager", "user")

# Fields that never leave the credential store unless explicitly requested.
SECRET_FIELDS = ("password_hash", "totp_secret")
# Columns a store may write back after the row exists.
MUTABLE_FIELDS = (
    "email",
    "first_name",
    "last_name",
    "role",
    "active",
    "verified",
    "failed_login_attempts",
    "lock_until",
    "totp_enabled",
    "last_login",
    "verification_token_hash",
    "verification_expires",
    "reset_token_hash",
    "reset_expires",
) + SECRET_FIELDS


def _dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Credential:
    id: str | None = None
    email: str | None = None
    password_hash: str | None = None
    first_name: str = ""
    last_name: str = ""
    role: Role = "user"
    active: bool = True
    verified: bool = False
    failed_login_attempts: int = 0
    lock_until: datetime | None = None
    totp_secret: str | None = None
    totp_enabled: bool = False
    last_login: datetime | None = None
    verification_token_hash: str | None = None
    verification_expires: datetime | None = None
    reset_token_hash: str | None = None
    reset_expires: datetime | None = None
    created_at: datetime | None = None
    # set by the store when password_hash / totp_secret were actually loaded
    secrets_loaded: bool = field(default=False, repr=False, compare=False)

    def __post_init__(self):
        if self.email:
            self.email = self.email.strip().lower()
            if not self.email:
                raise ValueError("email cannot be empty")
        else:
            raise ValueError("email is required")
        if self.role not in ROLES:
            raise ValueError(f"unknown role: {self.role}")

    def changed_fields(self, fields: Iterable[str]) -> tuple[str, ...]:
        """Validate a save's column list; secret columns need ``secrets_loaded``."""
        names = tuple(dict.fromkeys(fields))
        unknown = [n for n in names if n not in MUTABLE_FIELDS]
        if unknown:
            raise ValueError(f"not writable: {', '.join(unknown)}")
        if not self.secrets_loaded and any(n in SECRET_FIELDS for n in names):
            raise ValueError("secret fields were not loaded")
        return names

    def without_secrets(self) -> "Credential":
        c = Credential(**self.__dict__)
        for name in SECRET_FIELDS:
            setattr(c, name, None)
        c.secrets_loaded = False
        return c

    def public_snapshot(self) -> dict[str, Any]:
        """JSON-safe view used by the user cache; carries no secrets."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "active": self.active,
            "verified": self.verified,
            "totp_enabled": self.totp_enabled,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "Credential":
        return cls(
            id=data["id"],
            email=data["email"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=data.get("role", "user"),
            active=bool(data.get("active", True)),
            verified=bool(data.get("verified", False)),
            totp_enabled=bool(data.get("totp_enabled", False)),
            last_login=_dt(data.get("last_login")),
            created_at=_dt(data.get("created_at")),
        )


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    role: str
    issued_at: int = 0
    expires_at: int = 0


@dataclass
class AuthContext:
    """Identity attached to a request after authentication."""

    user: Credential
    token: str
    claims: TokenClaims
