from typing import Annotated

from fastapi import APIRouter, Depends

from folio_auth.application.admin_update_user import admin_update_user
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.entities import AuthContext
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.presentation.dependencies import get_uow, get_user_cache
from folio_auth.presentation.security import require_roles, second_factor
from folio_auth.schemas.requests import AdminUserUpdateIn
from folio_auth.schemas.responses import Envelope, UserOut, success

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_roles("admin"))],
)


@router.patch("/users/{user_id}", response_model=Envelope)
async def patch_user(
    user_id: str,
    body: AdminUserUpdateIn,
    context: Annotated[AuthContext, Depends(second_factor)],
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
):
    user = await admin_update_user(
        uow,
        user_cache,
        user_id,
        role=body.role,
        active=body.active,
        verified=body.verified,
        actor_id=str(context.user.id),
    )
    return success(UserOut.from_credential(user), message="User updated successfully")
