import re
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator

# min 8 chars, at least one lowercase, uppercase, digit and special character
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


def _strong_password(value: str) -> str:
    if not _PASSWORD_RE.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase "
            "letter, one number, and one special character"
        )
    return value


StrongPassword = Annotated[
    str, Field(min_length=8, max_length=128), AfterValidator(_strong_password)
]


class RegisterIn(BaseModel):
    email: EmailStr = Field(..., description="The email of the user", max_length=255)
    password: StrongPassword
    confirm_password: str
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember: bool = False


class OneTimeTokenIn(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)


class EmailIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)
    password: StrongPassword
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ChangePasswordIn(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if self.new_password == self.current_password:
            raise ValueError("New password must differ from the current one")
        return self


class TotpCodeIn(BaseModel):
    code: str = Field(..., pattern=r"^\d{6}$")


class PasswordIn(BaseModel):
    password: str = Field(..., min_length=1)


class AdminUserUpdateIn(BaseModel):
    role: Optional[Literal["admin", "manager", "user"]] = None
    active: Optional[bool] = None
    verified: Optional[bool] = None
