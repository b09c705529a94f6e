"""Shared route dependencies."""

from datetime import datetime
from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from accounts.app.core.config import LifecycleConfig, settings
from accounts.app.core.database import get_db
from accounts.app.core.email import Notifier, ResendNotifier
from accounts.app.core.errors import AuthenticationError
from accounts.app.core.security import decode_token
from accounts.app.models.account import Account, utcnow
from accounts.app.services.lifecycle import AccountManager
from accounts.app.services.store import AccountStore

bearer_scheme = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


def get_lifecycle_config() -> LifecycleConfig:
    return LifecycleConfig.from_settings(settings)


def get_notifier() -> Notifier:
    return ResendNotifier(
        api_key=settings.resend_api_key,
        from_address=settings.email_from,
        reset_url_base=settings.frontend_base_url,
        timeout=settings.email_timeout_seconds,
    )


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_account_manager(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    config: LifecycleConfig = Depends(get_lifecycle_config),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AccountManager:
    return AccountManager(AccountStore(db), notifier, config, clock=clock)


async def get_current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    config: LifecycleConfig = Depends(get_lifecycle_config),
    manager: AccountManager = Depends(get_account_manager),
) -> Account:
    """Validate the bearer token and return the account it names.

    Raises:
        AuthenticationError 401: Missing, invalid or expired token.
        NotFoundError 404: The account no longer exists.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(NOT_AUTHORIZED)

    account_id = decode_token(credentials.credentials, config.token_secret, config.token_algorithm)
    if not account_id:
        raise AuthenticationError(NOT_AUTHORIZED)

    return await manager.get_me(account_id)
