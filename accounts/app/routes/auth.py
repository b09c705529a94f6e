"""Authentication routes: registration, verification, login, password and account management."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from accounts.app.models.account import Account
from accounts.app.routes.deps import get_account_manager, get_current_account
from accounts.app.services.lifecycle import AccountManager

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ─────────────────────────────────────────────────────────


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str


class LoginRequest(CamelModel):
    email: str
    password: str


class VerifyEmailRequest(CamelModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: EmailStr
    code: str


class EmailRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class DeleteAccountRequest(CamelModel):
    password: str


class AccountView(CamelModel):
    """The one shape in which an account is shown to clients."""

    id: str
    first_name: str
    last_name: str
    email: str
    is_verified: bool
    created_at: datetime

    @classmethod
    def of(cls, account: Account) -> "AccountView":
        return cls(
            id=account.id,
            first_name=account.first_name,
            last_name=account.last_name,
            email=account.email,
            is_verified=account.is_verified,
            created_at=account.created_at,
        )


class Envelope(CamelModel):
    success: bool = True
    message: str | None = None
    token: str | None = None
    user: AccountView | None = None


RESET_SENT = "If your email is registered, you will receive a password reset link"


# ── Routes ──────────────────────────────────────────────────────────


@router.post("/register", response_model=Envelope, response_model_exclude_none=True, status_code=201)
async def register(body: RegisterRequest, manager: AccountManager = Depends(get_account_manager)):
    """Register a new account and email it a verification code."""
    await manager.register(body.first_name, body.last_name, body.email, body.password)
    return Envelope(
        message="User registered successfully. Please check your email to verify your account."
    )


@router.post("/login", response_model=Envelope, response_model_exclude_none=True)
async def login(body: LoginRequest, manager: AccountManager = Depends(get_account_manager)):
    """Log in with email and password. Returns a bearer token."""
    token, account = await manager.login(body.email, body.password)
    return Envelope(token=token, user=AccountView.of(account))


@router.post("/verify-email", response_model=Envelope, response_model_exclude_none=True)
async def verify_email(body: VerifyEmailRequest, manager: AccountManager = Depends(get_account_manager)):
    await manager.verify_email(body.email, body.code)
    return Envelope(message="Email verified successfully. You can now login.")


@router.post("/resend-verification", response_model=Envelope, response_model_exclude_none=True)
async def resend_verification(body: EmailRequest, manager: AccountManager = Depends(get_account_manager)):
    await manager.resend_verification(body.email)
    return Envelope(message="Verification code resent successfully")


@router.post("/forgot-password", response_model=Envelope, response_model_exclude_none=True)
async def forgot_password(body: EmailRequest, manager: AccountManager = Depends(get_account_manager)):
    """Request a password reset link.

    Always returns success (don't reveal if email exists).
    """
    await manager.forgot_password(body.email)
    return Envelope(message=RESET_SENT)


@router.put("/reset-password/{reset_token}", response_model=Envelope, response_model_exclude_none=True)
async def reset_password(
    reset_token: str,
    body: ResetPasswordRequest,
    manager: AccountManager = Depends(get_account_manager),
):
    await manager.reset_password(reset_token, body.password)
    return Envelope(message="Password reset successful. You can now login with your new password.")


@router.get("/me", response_model=Envelope, response_model_exclude_none=True)
async def me(account: Account = Depends(get_current_account)):
    """Current account info."""
    return Envelope(user=AccountView.of(account))


@router.put("/change-password", response_model=Envelope, response_model_exclude_none=True)
async def change_password(
    body: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    manager: AccountManager = Depends(get_account_manager),
):
    """Change password. Requires current password."""
    await manager.change_password(account.id, body.current_password, body.new_password)
    return Envelope(message="Password updated successfully")


@router.delete("/delete-account", response_model=Envelope, response_model_exclude_none=True)
async def delete_account(
    body: DeleteAccountRequest,
    account: Account = Depends(get_current_account),
    manager: AccountManager = Depends(get_account_manager),
):
    """Permanently delete the account. Requires password."""
    await manager.delete_account(account.id, body.password)
    return Envelope(message="Your account has been permanently deleted")
