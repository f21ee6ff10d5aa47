from typing import Annotated, Callable, Optional

from fastapi import APIRouter, Depends

from folio_auth.application.deactivate_account import deactivate_account
from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.user_cache import UserCache
from folio_auth.domain.entities import AuthContext
from folio_auth.domain.errors import UserNotFound
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.presentation.dependencies import (
    get_revocation_ledger,
    get_uow,
    get_user_cache,
    get_verify_password,
)
from folio_auth.presentation.security import SessionEndingAuth, optional_auth
from folio_auth.schemas.requests import PasswordIn
from folio_auth.schemas.responses import Envelope, PublicUserOut, success

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/deactivate", response_model=Envelope)
async def post_deactivate(
    body: PasswordIn,
    context: SessionEndingAuth,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    ledger: Annotated[RevocationLedger, Depends(get_revocation_ledger)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
    verify_password: Annotated[
        Callable[[str, str | None], bool], Depends(get_verify_password)
    ],
):
    await deactivate_account(
        uow=uow,
        ledger=ledger,
        user_cache=user_cache,
        user_id=str(context.user.id),
        password=body.password,
        token=context.token,
        verify_password=verify_password,
    )
    return success(message="Account deactivated successfully")


@router.get("/{user_id}/public", response_model=Envelope)
async def get_public_profile(
    user_id: str,
    uow: Annotated[UnitOfWorkPort, Depends(get_uow)],
    viewer: Annotated[Optional[AuthContext], Depends(optional_auth)],
):
    async with uow as tx:
        user = await tx.credentials.find_by_id(user_id)
        # read only; no commit needed
    if user is None or not user.active:
        raise UserNotFound()

    # the address is only shown to its owner and to admins
    show_email = viewer is not None and (
        viewer.user.id == user.id or viewer.user.role == "admin"
    )
    return success(
        PublicUserOut(
            id=str(user.id),
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email if show_email else None,
        )
    )
