from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from folio_auth.domain.entities import Credential


class Envelope(BaseModel):
    status: Literal["success", "fail", "error"] = "success"
    message: str = "Success"
    data: Optional[Any] = None


class UserOut(BaseModel):
    id: str = Field(..., description="The id of the user")
    email: str = Field(..., description="The email of the user")
    first_name: str = ""
    last_name: str = ""
    role: str
    verified: bool
    two_factor_enabled: bool = False
    last_login: Optional[datetime] = None

    @classmethod
    def from_credential(cls, user: Credential) -> "UserOut":
        return cls(
            id=str(user.id),
            email=str(user.email),
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            verified=user.verified,
            two_factor_enabled=user.totp_enabled,
            last_login=user.last_login,
        )


class PublicUserOut(BaseModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None


class SessionOut(BaseModel):
    user: UserOut
    token: str
    require_two_factor: bool = False


class TotpSetupOut(BaseModel):
    secret: str
    otpauth_uri: str


def success(data: Any = None, message: str = "Success") -> Envelope:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return Envelope(status="success", message=message, data=data)
