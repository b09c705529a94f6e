"""Account lifecycle: registration, verification, login, password change/reset, deletion.

Each operation validates a secret (password, verification code or reset
token), checks timing and state preconditions, performs at most one state
mutation and at most one notification. Failures are raised as the typed
errors of ``accounts.app.core.errors``.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable

from email_validator import EmailNotValidError, validate_email

from accounts.app.core.config import LifecycleConfig
from accounts.app.core.email import Notifier
from accounts.app.core.errors import (
    AuthenticationError,
    ConflictError,
    DeliveryError,
    NotFoundError,
    ValidationError,
)
from accounts.app.core.security import (
    create_access_token,
    generate_reset_token,
    generate_verification_code,
    hash_password,
    hash_reset_token,
    pwd_context,
    secrets_match,
    verify_password,
)
from accounts.app.models.account import Account, utcnow
from accounts.app.services.store import AccountStore

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72

INVALID_CREDENTIALS = "Invalid credentials"
NOT_VERIFIED = "Account not verified. Please verify your email to login."
INVALID_CODE = "Invalid or expired verification code"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
USER_NOT_FOUND = "User not found"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _require(message: str, *values: str | None) -> None:
    if any(value is None or not str(value).strip() for value in values):
        raise ValidationError(message)


def _check_password_strength(password: str, message: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(message)
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class AccountManager:
    """State machine over a single Account per operation.

    Args:
        store: Credential store holding Account records.
        notifier: Delivers verification codes and reset links.
        config: Token and secret lifetimes, sender address.
        clock: Returns the current time (timezone-aware UTC).
    """

    def __init__(
        self,
        store: AccountStore,
        notifier: Notifier,
        config: LifecycleConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.notifier = notifier
        self.config = config
        self.clock = clock

    # ── Secret issuance ─────────────────────────────────────────────

    async def _issue_and_notify(
        self,
        account: Account,
        issue: Callable[[], str],
        notify: Callable[[str], Awaitable[None]],
        revoke: Callable[[], None],
        persist: Callable[[Account], Awaitable[Account]],
        surface_failure: bool,
    ) -> None:
        """Issue a secret, persist it, deliver it; revoke it again if delivery fails.

        With ``surface_failure`` False the DeliveryError is swallowed after the
        rollback, so the caller still reports success (forgot-password).
        """
        secret = issue()
        await persist(account)
        try:
            await notify(secret)
        except DeliveryError:
            revoke()
            await self.store.update(account)
            if surface_failure:
                raise
            logger.warning("Delivery to %s failed; pending secret revoked", account.email)

    async def _issue_verification_code(
        self,
        account: Account,
        persist: Callable[[Account], Awaitable[Account]],
    ) -> None:
        def issue() -> str:
            code = generate_verification_code()
            account.set_verification_code(code, self.clock() + self.config.code_ttl)
            return code

        await self._issue_and_notify(
            account,
            issue=issue,
            notify=lambda code: self.notifier.send_verification_code(
                account.email, account.full_name, code
            ),
            revoke=account.clear_verification_code,
            persist=persist,
            surface_failure=True,
        )

    # ── Operations ──────────────────────────────────────────────────

    async def register(self, first_name: str, last_name: str, email: str, password: str) -> Account:
        """Create an unverified account and send it a verification code."""
        _require("Please provide first name, last name, email and password",
                 first_name, last_name, email, password)
        first_name, last_name = first_name.strip(), last_name.strip()
        if len(first_name) < MIN_NAME_LENGTH:
            raise ValidationError("First name must be at least 2 characters")
        if len(last_name) < MIN_NAME_LENGTH:
            raise ValidationError("Last name must be at least 2 characters")
        email = normalize_email(email)
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValidationError("Please provide a valid email") from exc
        _check_password_strength(password, "Password must be at least 8 characters")

        existing = await self.store.find_by_email(email)
        if existing is not None:
            if existing.is_verified or existing.verification_code is not None:
                raise ConflictError("Email already registered")
            # Left behind by a registration whose code never got delivered
            logger.info("Reclaiming undelivered registration for %s", email)
            existing.first_name = first_name
            existing.last_name = last_name
            existing.password_hash = hash_password(password)
            await self._issue_verification_code(existing, persist=self.store.update)
            return existing

        account = Account(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=hash_password(password),
            is_verified=False,
        )
        await self._issue_verification_code(account, persist=self.store.insert)
        logger.info("Registered account %s", account.id)
        return account

    async def verify_email(self, email: str, code: str) -> Account:
        """Mark the account verified if ``code`` matches its unexpired pending code."""
        _require("Please provide verification code and email", email, code)
        account = await self.store.find_by_email(normalize_email(email))
        if account is None:
            raise AuthenticationError(INVALID_CODE, 400)
        if (
            account.verification_code is None
            or account.verification_code_expires_at is None
            or self.clock() > account.verification_code_expires_at
        ):
            raise AuthenticationError(INVALID_CODE, 400)
        if not secrets_match(code.strip(), account.verification_code):
            raise AuthenticationError(INVALID_CODE, 400)

        account.is_verified = True
        account.clear_verification_code()
        await self.store.update(account)
        logger.info("Verified account %s", account.id)
        return account

    async def resend_verification(self, email: str) -> None:
        """Replace any pending verification code with a fresh one and send it."""
        _require("Please provide your email", email)
        account = await self.store.find_by_email(normalize_email(email))
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)
        if account.is_verified:
            raise ValidationError("Email already verified")
        await self._issue_verification_code(account, persist=self.store.update)

    async def login(self, email: str, password: str) -> tuple[str, Account]:
        """Return a bearer token for a verified account with matching password."""
        _require("Please provide email and password", email, password)
        account = await self.store.find_by_email(normalize_email(email), include_password=True)
        if account is None:
            # Same hashing cost as a real comparison
            pwd_context.dummy_verify()
            logger.info("Failed login for unknown email")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not verify_password(password, account.password_hash):
            logger.info("Failed login for account %s", account.id)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.is_verified:
            logger.info("Login refused for unverified account %s", account.id)
            raise AuthenticationError(NOT_VERIFIED)

        token = create_access_token(
            account.id,
            self.config.token_secret,
            self.config.token_expire_minutes,
            self.config.token_algorithm,
        )
        logger.info("Logged in account %s", account.id)
        return token, account

    async def get_me(self, account_id: str) -> Account:
        account = await self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)
        return account

    async def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        _require("Please provide current and new password", current_password, new_password)
        _check_password_strength(new_password, "New password must be at least 8 characters long")
        account = await self.store.find_by_id(account_id, include_password=True)
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)
        if not verify_password(current_password, account.password_hash):
            logger.info("Password change rejected for account %s", account.id)
            raise AuthenticationError("Current password is incorrect. Please verify and try again.")

        account.password_hash = hash_password(new_password)
        await self.store.update(account)
        logger.info("Password changed for account %s", account.id)

    async def delete_account(self, account_id: str, password: str) -> None:
        _require("Please provide your password to confirm account deletion", password)
        account = await self.store.find_by_id(account_id, include_password=True)
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)
        if not verify_password(password, account.password_hash):
            logger.info("Account deletion rejected for account %s", account.id)
            raise AuthenticationError("Password is incorrect. Account deletion canceled.")

        await self.store.delete(account)
        logger.info("Deleted account %s", account_id)

    async def forgot_password(self, email: str) -> None:
        """Send a reset link if the account exists; never tells the caller which."""
        _require("Please provide your email address", email)
        account = await self.store.find_by_email(normalize_email(email))
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        def issue() -> str:
            token = generate_reset_token()
            account.set_reset_token(hash_reset_token(token), self.clock() + self.config.reset_ttl)
            return token

        await self._issue_and_notify(
            account,
            issue=issue,
            notify=lambda token: self.notifier.send_reset_link(
                account.email, account.full_name, token
            ),
            revoke=account.clear_reset_token,
            persist=self.store.update,
            surface_failure=False,
        )

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        """Replace the password of the account holding this unexpired reset token."""
        _require("Please provide a new password", new_password)
        _check_password_strength(new_password, "Password must be at least 8 characters long")
        _require(INVALID_RESET_TOKEN, reset_token)
        account = await self.store.find_by_reset_token(hash_reset_token(reset_token), self.clock())
        if account is None:
            raise AuthenticationError(INVALID_RESET_TOKEN, 400)

        account.password_hash = hash_password(new_password)
        account.clear_reset_token()
        await self.store.update(account)
        logger.info("Password reset for account %s", account.id)
