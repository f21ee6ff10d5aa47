"""Key layout of the ephemeral state cache."""


def revoked_token(token: str) -> str:
    return f"token_blacklist:{token}"


def totp_setup(user_id: str) -> str:
    return f"totp_setup:{user_id}"


def totp_verified(user_id: str) -> str:
    return f"totp_verified:{user_id}"


def user(user_id: str) -> str:
    return f"user:{user_id}"
