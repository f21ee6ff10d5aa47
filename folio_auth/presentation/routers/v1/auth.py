from typing import Annotated, Callable

from fastapi import APIRouter, Depends, Response, status

from folio_auth.application.change_password import change_password
from folio_auth.application.login_user import login_user
from folio_auth.application.logout_user import logout_user
from folio_auth.application.password_reset import forgot_password, reset_password
from folio_auth.application.register_user import register_user
from folio_auth.application.revocation import RevocationLedger
from folio_auth.application.two_factor import TwoFactorController
from folio_auth.application.user_cache import UserCache
from folio_auth.application.verify_email import resend_verification, verify_email
from folio_auth.domain.entities import AuthContext
from folio_auth.domain.lockout import LockoutPolicy
from folio_auth.domain.ports.unit_of_work import UnitOfWorkPort
from folio_auth.infrastructure.security.tokens import TokenCodec
from folio_auth.presentation.dependencies import (
    get_app_settings,
    get_hash_password,
    get_lockout_policy,
    get_revocation_ledger,
    get_token_codec,
    get_two_factor,
    get_uow,
    get_user_cache,
    get_verify_password,
)
from folio_auth.presentation.security import (
    CurrentAuth,
    RefreshedAuth,
    SessionEndingAuth,
    second_factor,
    verified_email,
)
from folio_auth.schemas.requests import (
    ChangePasswordIn,
    EmailIn,
    LoginIn,
    OneTimeTokenIn,
    PasswordIn,
    RegisterIn,
    ResetPasswordIn,
    TotpCodeIn,
)
from folio_auth.schemas.responses import (
    Envelope,
    SessionOut,
    TotpSetupOut,
    UserOut,
    success,
)
from folio_auth.settings import Settings

router = APIRouter(prefix="/auth", tags=["Auth"])

Uow = Annotated[UnitOfWorkPort, Depends(get_uow)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
HashPassword = Annotated[Callable[..., str], Depends(get_hash_password)]
VerifyPassword = Annotated[Callable[[str, str | None], bool], Depends(get_verify_password)]
Users = Annotated[UserCache, Depends(get_user_cache)]
Ledger = Annotated[RevocationLedger, Depends(get_revocation_ledger)]
TwoFactor = Annotated[TwoFactorController, Depends(get_two_factor)]

# state-changing routes: TOTP users must have passed login-verify
SecondFactorAuth = Annotated[AuthContext, Depends(second_factor)]


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Envelope)
async def post_register(
    body: RegisterIn,
    uow: Uow,
    tokens: Annotated[TokenCodec, Depends(get_token_codec)],
    hash_password: HashPassword,
    settings: AppSettings,
):
    user, token = await register_user(
        uow=uow,
        tokens=tokens,
        email=body.email,
        password=body.password,
        hash_password=hash_password,
        first_name=body.first_name,
        last_name=body.last_name,
        frontend_url=settings.frontend_url,
        verification_ttl_seconds=settings.verification_token_ttl_seconds,
        token_ttl_seconds=settings.token_ttl_seconds,
    )
    return success(
        SessionOut(user=UserOut.from_credential(user), token=token),
        message="Registration successful. Please check your email to verify your account.",
    )


@router.post("/login", response_model=Envelope)
async def post_login(
    body: LoginIn,
    uow: Uow,
    lockout: Annotated[LockoutPolicy, Depends(get_lockout_policy)],
    tokens: Annotated[TokenCodec, Depends(get_token_codec)],
    verify_password: VerifyPassword,
    settings: AppSettings,
):
    result = await login_user(
        uow=uow,
        lockout=lockout,
        tokens=tokens,
        verify_password=verify_password,
        email=body.email,
        password=body.password,
        remember=body.remember,
        token_ttl_seconds=settings.token_ttl_seconds,
        remember_ttl_seconds=settings.remember_token_ttl_seconds,
    )
    message = (
        "Two-factor authentication required"
        if result.require_two_factor
        else "Login successful"
    )
    return success(
        SessionOut(
            user=UserOut.from_credential(result.user),
            token=result.token,
            require_two_factor=result.require_two_factor,
        ),
        message=message,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def post_logout(context: CurrentAuth, ledger: Ledger):
    await logout_user(ledger, context.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/verify-email", response_model=Envelope)
async def post_verify_email(body: OneTimeTokenIn, uow: Uow, user_cache: Users):
    await verify_email(uow=uow, user_cache=user_cache, token=body.token)
    return success(message="Email verified successfully")


@router.post("/resend-verification", response_model=Envelope)
async def post_resend_verification(
    context: SecondFactorAuth, uow: Uow, settings: AppSettings
):
    await resend_verification(
        uow=uow,
        user_id=str(context.user.id),
        frontend_url=settings.frontend_url,
        verification_ttl_seconds=settings.verification_token_ttl_seconds,
    )
    return success(message="Verification email sent")


@router.post("/forgot-password", response_model=Envelope)
async def post_forgot_password(body: EmailIn, uow: Uow, settings: AppSettings):
    await forgot_password(
        uow=uow,
        email=body.email,
        frontend_url=settings.frontend_url,
        reset_ttl_seconds=settings.reset_token_ttl_seconds,
    )
    # same answer whether or not the address is known
    return success(message="If that email exists, a password reset link has been sent")


@router.post("/reset-password", response_model=Envelope)
async def post_reset_password(
    body: ResetPasswordIn,
    uow: Uow,
    lockout: Annotated[LockoutPolicy, Depends(get_lockout_policy)],
    user_cache: Users,
    hash_password: HashPassword,
):
    await reset_password(
        uow=uow,
        lockout=lockout,
        user_cache=user_cache,
        token=body.token,
        new_password=body.password,
        hash_password=hash_password,
    )
    return success(message="Password reset successful. Please log in.")


@router.put("/change-password", response_model=Envelope)
async def put_change_password(
    body: ChangePasswordIn,
    context: SessionEndingAuth,
    uow: Uow,
    ledger: Ledger,
    user_cache: Users,
    hash_password: HashPassword,
    verify_password: VerifyPassword,
):
    await change_password(
        uow=uow,
        ledger=ledger,
        user_cache=user_cache,
        user_id=str(context.user.id),
        current_password=body.current_password,
        new_password=body.new_password,
        token=context.token,
        hash_password=hash_password,
        verify_password=verify_password,
    )
    return success(message="Password changed successfully. Please log in again.")


@router.get("/totp/setup", response_model=Envelope)
async def get_totp_setup(
    context: SecondFactorAuth,
    two_factor: TwoFactor,
    _verified: Annotated[AuthContext, Depends(verified_email)],
):
    setup = await two_factor.begin_setup(context.user)
    return success(TotpSetupOut(secret=setup.secret, otpauth_uri=setup.otpauth_uri))


@router.post("/totp/verify", response_model=Envelope)
async def post_totp_verify(
    body: TotpCodeIn,
    context: SecondFactorAuth,
    two_factor: TwoFactor,
    _verified: Annotated[AuthContext, Depends(verified_email)],
):
    await two_factor.verify_and_enable(str(context.user.id), body.code)
    return success(message="Two-factor authentication enabled")


@router.post("/totp/disable", response_model=Envelope)
async def post_totp_disable(
    body: PasswordIn,
    context: SecondFactorAuth,
    two_factor: TwoFactor,
    _verified: Annotated[AuthContext, Depends(verified_email)],
):
    await two_factor.disable(str(context.user.id), body.password)
    return success(message="Two-factor authentication disabled")


@router.post("/totp/login-verify", response_model=Envelope)
async def post_totp_login_verify(
    body: TotpCodeIn, context: RefreshedAuth, two_factor: TwoFactor
):
    user = await two_factor.verify_login(str(context.user.id), body.code)
    return success(UserOut.from_credential(user), message="Two-factor verification successful")


@router.get("/me", response_model=Envelope)
async def get_me(context: RefreshedAuth):
    return success(UserOut.from_credential(context.user))
