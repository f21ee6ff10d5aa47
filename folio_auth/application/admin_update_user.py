import logging

from folio_auth.application.user_cache import UserCache
from folio_auth.domain.entities import ROLES, Credential
from folio_auth.domain.errors import BadRequest, UserNotFound
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort

logger = logging.getLogger(__name__)


async def admin_update_user(
    uow: UnitOfWorkPort,
    user_cache: UserCache,
    user_id: str,
    *,
    role: str | None = None,
    active: bool | None = None,
    verified: bool | None = None,
    actor_id: str | None = None,
) -> Credential:
    """
    Administrative change of auth-relevant flags. Deactivation takes effect
    on the target's next request through the active-account check.
    """
    if role is not None and role not in ROLES:
        raise BadRequest(f"Unknown role: {role}")

    async with uow as transaction:
        user = await transaction.credentials.find_by_id(user_id)
        if user is None:
            raise UserNotFound()

        changes = {"role": role, "active": active, "verified": verified}
        changed = [name for name, value in changes.items() if value is not None]
        for name in changed:
            setattr(user, name, changes[name])
        await transaction.credentials.save(user, changed)
        await transaction.commit()

    await user_cache.invalidate(user_id)
    logger.info(
        "user updated by admin",
        extra={"user_id": user_id, "actor_id": actor_id, "role": user.role, "active": user.active},
    )
    return user
