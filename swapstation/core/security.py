"""Security and authentication helpers for account JWT auth."""
from __future__ import annotations

import binascii
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import AuthenticationError, PermissionDeniedError
from swapstation.database import get_db
from swapstation.models import Account

ALGORITHM = "HS256"
REFRESH_TTL_MINUTES = 60 * 24 * 7
AUTH_SCHEME = HTTPBearer(auto_error=False)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _secret_key() -> str:
    return settings.secret_key.get_secret_value()


def hash_password(password: str, salt_hex: str | None = None, iterations: int | None = None) -> str:
    """Create pbkdf2_sha256 hash string."""
    salt_hex = salt_hex or secrets.token_hex(16)
    iterations = iterations or settings.password_hash_iterations
    dk = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), iterations
    )
    digest_hex = binascii.hexlify(dk).decode("ascii")
    return f"pbkdf2_sha256${iterations}${salt_hex}${digest_hex}"


def verify_password(password: str, encoded_hash: str) -> bool:
    """Verify pbkdf2_sha256 hash format: pbkdf2_sha256$iters$salt_hex$digest_hex."""
    try:
        algorithm, iter_str, salt_hex, _digest_hex = encoded_hash.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    try:
        expected = hash_password(password, salt_hex=salt_hex, iterations=int(iter_str))
    except ValueError:
        return False
    return hmac.compare_digest(expected, encoded_hash)


def create_access_token(
    subject: str, extra: Dict[str, Any] | None = None, expires_minutes: int | None = None
) -> str:
    ttl = expires_minutes or settings.token_ttl_minutes
    payload: Dict[str, Any] = {
        "sub": subject,
        "iat": int(now_utc().timestamp()),
        "exp": int((now_utc() + timedelta(minutes=ttl)).timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, _secret_key(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, _secret_key(), algorithms=[ALGORITHM])


def _account_from_credentials(
    creds: Optional[HTTPAuthorizationCredentials], db: Session
) -> Account:
    if creds is None or not creds.credentials:
        raise AuthenticationError(messages.INVALID_TOKEN)
    try:
        payload = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise AuthenticationError(messages.SESSION_EXPIRED)

    account_id = str(payload.get("sub", "")).strip()
    account = db.query(Account).filter(Account.account_id == account_id).first()
    if account is None:
        raise AuthenticationError(messages.USER_NOT_FOUND)
    if account.status != "active":
        raise PermissionDeniedError(messages.ACCOUNT_INACTIVE)
    return account


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(AUTH_SCHEME),
    db: Session = Depends(get_db),
) -> Account:
    return _account_from_credentials(creds, db)


def require_permission(*permissions: str) -> Callable[..., Account]:
    """Dependency factory that rejects accounts outside the given permissions with 403."""

    def checker(user: Account = Depends(get_current_user)) -> Account:
        if user.permission not in permissions:
            raise PermissionDeniedError(messages.FORBIDDEN)
        return user

    return checker
