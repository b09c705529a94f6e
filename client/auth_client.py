"""Python client library for the account service API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthClientError(Exception):
    """Failed API call with the server's status code and message."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


@dataclass
class AccountView:
    """Account as returned by the service."""

    id: str
    first_name: str
    last_name: str
    email: str
    is_verified: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccountView:
        created = data.get("createdAt")
        return cls(
            id=data["id"],
            first_name=data["firstName"],
            last_name=data["lastName"],
            email=data["email"],
            is_verified=bool(data.get("isVerified", False)),
            created_at=datetime.fromisoformat(created.replace("Z", "+00:00")) if created else None,
        )


class AuthClient:
    """Async client for the account service.

    Usage:
        async with AuthClient("http://localhost:8000") as client:
            await client.login("a@x.com", "Passw0rd1")
            me = await client.me()
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the service (e.g. http://localhost:8000).
            token: Bearer token from an earlier login, if any.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> AuthClient:
        self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, *args) -> None:
        if self._session:
            await self._session.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with AuthClient(...)' context.")
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def _headers(self, auth: bool) -> dict[str, str]:
        if not auth:
            return {}
        if self.token is None:
            raise AuthClientError(401, "Not logged in")
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self, method: str, path: str, payload: Optional[dict] = None, auth: bool = False
    ) -> dict[str, Any]:
        """Send a request and return the success envelope.

        Raises:
            AuthClientError: On any non-2xx response or ``success: false`` body.
        """
        async with self.session.request(
            method, f"{self.base_url}{path}", json=payload, headers=self._headers(auth)
        ) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            if not isinstance(body, dict):
                body = {"success": False, "message": f"HTTP {resp.status}"}
            if resp.status >= 400 or not body.get("success", False):
                message = body.get("message") or f"HTTP {resp.status}"
                logger.warning("%s %s -> %d: %s", method, path, resp.status, message)
                raise AuthClientError(resp.status, message)
            return body

    async def register(self, first_name: str, last_name: str, email: str, password: str) -> str:
        body = await self._request("POST", "/auth/register", {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        })
        return body.get("message", "")

    async def verify_email(self, email: str, code: str) -> str:
        body = await self._request("POST", "/auth/verify-email", {"email": email, "code": code})
        return body.get("message", "")

    async def resend_verification(self, email: str) -> str:
        body = await self._request("POST", "/auth/resend-verification", {"email": email})
        return body.get("message", "")

    async def login(self, email: str, password: str) -> AccountView:
        """Log in and keep the returned bearer token for later calls."""
        body = await self._request("POST", "/auth/login", {"email": email, "password": password})
        self.token = body["token"]
        return AccountView.from_dict(body["user"])

    def logout(self) -> None:
        """Forget the bearer token. Tokens are stateless; nothing is sent."""
        self.token = None

    async def me(self) -> AccountView:
        body = await self._request("GET", "/auth/me", auth=True)
        return AccountView.from_dict(body["user"])

    async def change_password(self, current_password: str, new_password: str) -> str:
        """Change the password.

        The new password must differ from the current one; this is checked
        here before anything is sent.
        """
        if new_password == current_password:
            raise AuthClientError(400, "New password must be different from the current password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise AuthClientError(400, "New password must be at least 8 characters long")
        body = await self._request("PUT", "/auth/change-password", {
            "currentPassword": current_password,
            "newPassword": new_password,
        }, auth=True)
        return body.get("message", "")

    async def delete_account(self, password: str) -> str:
        body = await self._request("DELETE", "/auth/delete-account", {"password": password}, auth=True)
        self.token = None
        return body.get("message", "")

    async def forgot_password(self, email: str) -> str:
        body = await self._request("POST", "/auth/forgot-password", {"email": email})
        return body.get("message", "")

    async def reset_password(self, reset_token: str, password: str) -> str:
        body = await self._request("PUT", f"/auth/reset-password/{reset_token}", {"password": password})
        return body.get("message", "")
