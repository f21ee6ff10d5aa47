"""FastAPI dependencies wrapping the request authenticator."""
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, Response

from folio_auth.application import authenticate as auth
from folio_auth.application.authenticate import RequestAuthenticator
from folio_auth.domain.entities import AuthContext
from folio_auth.presentation.dependencies import get_authenticator

logger = logging.getLogger(__name__)

NEW_TOKEN_HEADER = "X-New-Token"

Authenticator = Annotated[RequestAuthenticator, Depends(get_authenticator)]


async def current_auth(
    authenticator: Authenticator,
    authorization: Annotated[Optional[str], Header()] = None,
) -> AuthContext:
    return await authenticator.authenticate(authorization)


async def optional_auth(
    authenticator: Authenticator,
    authorization: Annotated[Optional[str], Header()] = None,
) -> Optional[AuthContext]:
    return await authenticator.authenticate_optional(authorization)


CurrentAuth = Annotated[AuthContext, Depends(current_auth)]


async def refreshed_auth(
    context: CurrentAuth, authenticator: Authenticator, response: Response
) -> AuthContext:
    """Authenticated, plus a soft refresh surfaced in ``X-New-Token``."""
    new_token = authenticator.refreshed_token(context)
    if new_token:
        logger.info("token refreshed", extra={"user_id": context.user.id})
        response.headers[NEW_TOKEN_HEADER] = new_token
    return context


RefreshedAuth = Annotated[AuthContext, Depends(refreshed_auth)]


async def verified_email(context: RefreshedAuth) -> AuthContext:
    auth.require_verified_email(context)
    return context


async def second_factor(
    context: RefreshedAuth, authenticator: Authenticator
) -> AuthContext:
    await authenticator.require_second_factor(context)
    return context


async def second_factor_no_refresh(
    context: CurrentAuth, authenticator: Authenticator
) -> AuthContext:
    """For routes that revoke the presented token; no ``X-New-Token`` is issued."""
    await authenticator.require_second_factor(context)
    return context


SessionEndingAuth = Annotated[AuthContext, Depends(second_factor_no_refresh)]


def require_roles(*roles: str):
    async def _check(context: RefreshedAuth) -> AuthContext:
        auth.require_roles(context, roles)
        return context

    return _check
