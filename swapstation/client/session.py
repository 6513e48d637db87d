"""
Client-side auth state: the token store and the session facade over it.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from swapstation.client.errors import UnauthorizedError
from swapstation.config import settings
from swapstation.core import messages

if TYPE_CHECKING:
    from swapstation.client.services import AuthAPI

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("account_id", "email", "fullname", "permission")


class AuthStore:
    """Token plus a minimal profile; written to ``path`` only when the user asked to be remembered."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self.token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.remember_me = False

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "AuthStore":
        store = cls(Path(path or settings.auth_store_path).expanduser())
        if store.path.exists():
            try:
                data = json.loads(store.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable auth store %s: %s", store.path, exc)
                return store
            store.token = data.get("token")
            store.refresh_token = data.get("refresh_token")
            store.user = data.get("user")
            store.remember_me = True
        return store

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def save(
        self,
        token: str,
        user: Dict[str, Any],
        refresh_token: Optional[str] = None,
        remember_me: bool = False,
    ) -> None:
        self.token = token
        self.refresh_token = refresh_token
        self.user = {key: user.get(key) for key in PROFILE_FIELDS}
        self.remember_me = remember_me
        if self.path is None:
            return
        if remember_me:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({"token": token, "refresh_token": refresh_token, "user": self.user}),
                encoding="utf-8",
            )
        else:
            self.path.unlink(missing_ok=True)

    def clear(self) -> None:
        self.token = None
        self.refresh_token = None
        self.user = None
        self.remember_me = False
        if self.path is not None:
            self.path.unlink(missing_ok=True)


class AuthSession:
    """Current user and login/logout for the client."""

    def __init__(self, auth_api: "AuthAPI"):
        self.auth_api = auth_api
        self.store = auth_api.api.store

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.store.user

    @property
    def is_authenticated(self) -> bool:
        return self.store.is_authenticated

    async def login(self, email: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        return await self.auth_api.login(email, password, remember_me=remember_me)

    async def logout(self) -> None:
        try:
            await self.auth_api.logout()
        finally:
            self.store.clear()

    def require_user(self) -> Dict[str, Any]:
        """Gate for protected screens."""
        if not self.is_authenticated or self.user is None:
            raise UnauthorizedError(messages.SESSION_EXPIRED, 401)
        return self.user
