class DomainError(Exception):
    """Base class for all domain-level errors."""

    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# Error kinds. The presentation layer maps each kind to one HTTP status.


class BadRequest(DomainError):
    default_message = "Bad request"


class Unauthenticated(DomainError):
    default_message = "Authentication required. Please log in."


class Forbidden(DomainError):
    default_message = "Forbidden"


class NotFound(DomainError):
    default_message = "Resource not found"


class Conflict(DomainError):
    default_message = "Resource conflict"


# Primary credentials


class InvalidCredentials(Unauthenticated):
    """Unknown email or wrong password; the two are never distinguished."""

    default_message = "Invalid email or password"


class AccountLocked(Unauthenticated):
    """Too many consecutive failures; remaining lock time is not disclosed."""

    default_message = (
        "Account is temporarily locked due to too many failed login attempts. "
        "Please try again later."
    )


class AccountDeactivated(Unauthenticated):
    default_message = "Your account has been deactivated. Please contact support."


class IncorrectPassword(BadRequest):
    """Re-authentication of an already authenticated user failed."""

    default_message = "Password is incorrect"


# Bearer tokens


class MissingToken(Unauthenticated):
    default_message = "Authentication required. Please log in."


class InvalidToken(Unauthenticated):
    """Malformed, badly signed, expired or revoked token."""

    default_message = "Invalid or expired token. Please log in again."


class RevokedToken(InvalidToken):
    pass


class RevocationCheckUnavailable(InvalidToken):
    """Revocation state could not be read and the ledger is configured fail-closed."""


class IdentityUnavailable(Unauthenticated):
    """Token subject no longer exists or has been deactivated."""

    default_message = "User not found or inactive. Please log in again."


# Authorization


class RoleNotAllowed(Forbidden):
    default_message = "Access denied for this role"


class EmailNotVerified(Forbidden):
    default_message = (
        "Email verification required. "
        "Please verify your email address before proceeding."
    )


class SecondFactorRequired(Forbidden):
    default_message = "Two-factor authentication required."


# Second factor


class SetupExpired(BadRequest):
    default_message = "TOTP setup has expired. Please try again."


class InvalidCode(BadRequest):
    default_message = "Invalid TOTP code. Please try again."


class TwoFactorNotEnabled(BadRequest):
    default_message = "Two-factor authentication is not set up"


# Account lifecycle


class InvalidOneTimeToken(BadRequest):
    """Email verification or password reset token unknown or expired."""

    default_message = "Invalid or expired token"


class EmailAlreadyVerified(BadRequest):
    default_message = "Email is already verified"


class UserNotFound(NotFound):
    """No user matches the lookup criteria (e.g., id)."""

    default_message = "User not found"


class EmailAlreadyRegistered(Conflict):
    """User with the given email already exists."""

    default_message = "User with this email already exists"
