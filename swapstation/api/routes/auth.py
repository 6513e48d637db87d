from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict

import jwt
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from swapstation.api.dependencies import ok
from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import AuthenticationError, ConflictError, PermissionDeniedError, ValidationError
from swapstation.core.security import (
    REFRESH_TTL_MINUTES,
    create_access_token,
    decode_token,
    get_current_user,
    hash_password,
    verify_password,
)
from swapstation.core.timeutils import isoformat_utc, utcnow
from swapstation.database import get_db
from swapstation.models import Account, PasswordResetToken
from swapstation.schemas.auth import (
    EmailVerificationRequest,
    ForgotPasswordRequest,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from swapstation.services import verification

logger = logging.getLogger(__name__)

router = APIRouter()


def account_payload(account: Account) -> Dict[str, Any]:
    return {
        "account_id": account.account_id,
        "username": account.username,
        "email": account.email,
        "fullname": account.fullname,
        "phone_number": account.phone_number,
        "citizen_id": account.citizen_id,
        "driving_license": account.driving_license,
        "permission": account.permission,
        "status": account.status,
        "created_at": isoformat_utc(account.created_at),
    }


def _expose_codes() -> bool:
    return settings.app_env in ("development", "test")


def _issue_tokens(account: Account) -> Dict[str, str]:
    return {
        "token": create_access_token(account.account_id, {"permission": account.permission}),
        "refresh_token": create_access_token(
            account.account_id, {"type": "refresh"}, expires_minutes=REFRESH_TTL_MINUTES
        ),
    }


@router.post("/request-verification")
async def request_verification(payload: EmailVerificationRequest, db: Session = Depends(get_db)) -> dict:
    if db.query(Account).filter(Account.email == payload.email).first():
        raise ConflictError(messages.EMAIL_IN_USE, {"email": messages.EMAIL_IN_USE})
    record = verification.issue_code(db, payload.email, verification.REGISTER)
    result: Dict[str, Any] = {"expires_in": settings.verification_code_ttl_minutes * 60}
    if _expose_codes():
        result["code"] = record.code
    return ok(result, messages.VERIFICATION_SENT)


@router.post("/verify-email")
async def verify_email(payload: VerifyEmailRequest, db: Session = Depends(get_db)) -> dict:
    verification.verify_email(db, payload.email, payload.code)
    return ok({"verified": True, "email": payload.email}, messages.EMAIL_VERIFIED)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    if db.query(Account).filter(Account.email == payload.email).first():
        raise ConflictError(messages.EMAIL_IN_USE, {"email": messages.EMAIL_IN_USE})
    if settings.require_email_verification:
        verification.consume_verification(db, payload.email)

    account = Account(
        username=payload.email.split("@")[0],
        email=payload.email,
        password_hash=hash_password(payload.password),
        fullname=payload.fullname,
        phone_number=payload.phone_number,
        citizen_id=payload.citizen_id,
        driving_license=payload.driving_license,
        permission="driver",
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info("Registered account %s", account.account_id)
    return ok({"account": account_payload(account)}, messages.REGISTER_SUCCESS)


@router.post("/login")
async def login(payload: LoginRequest, db: Session = Depends(get_db)) -> dict:
    account = db.query(Account).filter(Account.email == payload.email).first()
    if account is None or not verify_password(payload.password, account.password_hash):
        raise AuthenticationError(messages.INVALID_CREDENTIALS)
    if account.status != "active":
        raise PermissionDeniedError(messages.ACCOUNT_INACTIVE)

    return ok(
        {**_issue_tokens(account), "account": account_payload(account), "remember_me": payload.remember_me},
        messages.LOGIN_SUCCESS,
    )


@router.post("/logout")
async def logout(user: Account = Depends(get_current_user)) -> dict:
    logger.info("Account %s logged out", user.account_id)
    return ok(message=messages.LOGOUT_OK)


@router.post("/refresh")
async def refresh(payload: RefreshRequest, db: Session = Depends(get_db)) -> dict:
    try:
        claims = decode_token(payload.refresh_token)
    except jwt.PyJWTError:
        raise AuthenticationError(messages.SESSION_EXPIRED)
    if claims.get("type") != "refresh":
        raise AuthenticationError(messages.INVALID_TOKEN)

    account = db.query(Account).filter(Account.account_id == claims.get("sub")).first()
    if account is None:
        raise AuthenticationError(messages.USER_NOT_FOUND)
    if account.status != "active":
        raise PermissionDeniedError(messages.ACCOUNT_INACTIVE)
    return ok({**_issue_tokens(account), "account": account_payload(account)})


@router.get("/profile")
async def get_profile(user: Account = Depends(get_current_user)) -> dict:
    return ok({"account": account_payload(user)})


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    # Email is the login identity and cannot be changed here.
    user.fullname = payload.fullname
    user.phone_number = payload.phone
    user.citizen_id = payload.citizen_id
    user.driving_license = payload.driving_license
    db.commit()
    db.refresh(user)
    return ok({"account": account_payload(user)}, messages.PROFILE_UPDATED)


@router.post("/forgot-password")
async def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)) -> dict:
    account = db.query(Account).filter(Account.email == payload.email).first()
    result: Dict[str, Any] = {}
    if account is not None:
        token = PasswordResetToken(
            token=secrets.token_urlsafe(32),
            account_id=account.account_id,
            expires_at=utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes),
        )
        db.add(token)
        db.commit()
        link = f"{settings.password_reset_url}?token={token.token}"
        logger.info("Password reset link for %s: %s", account.email, link)
        code = verification.issue_code(db, account.email, verification.RESET)
        if _expose_codes():
            result["reset_token"] = token.token
            result["reset_code"] = code.code
    return ok(result, messages.RESET_EMAIL_SENT)


def _account_for_reset(db: Session, payload: ResetPasswordRequest) -> Account:
    if payload.token:
        record = db.get(PasswordResetToken, payload.token)
        if record is None or record.used or record.expires_at <= utcnow():
            raise ValidationError(messages.RESET_TOKEN_INVALID, {"token": messages.RESET_TOKEN_INVALID})
        record.used = True
        account = db.query(Account).filter(Account.account_id == record.account_id).first()
        if account is None:
            raise ValidationError(messages.RESET_TOKEN_INVALID, {"token": messages.RESET_TOKEN_INVALID})
        return account

    if not payload.email or not payload.code:
        raise ValidationError(messages.RESET_CREDENTIAL_REQUIRED, {"code": messages.RESET_CREDENTIAL_REQUIRED})
    verification.redeem_reset_code(db, payload.email, payload.code)
    account = db.query(Account).filter(Account.email == payload.email).first()
    if account is None:
        raise ValidationError(messages.OTP_INVALID, {"code": messages.OTP_INVALID})
    return account


@router.post("/reset-password")
async def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> dict:
    account = _account_for_reset(db, payload)
    account.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("Password reset for account %s", account.account_id)
    return ok(message=messages.PASSWORD_RESET_OK)


@router.post("/change-password")
async def change_password(
    payload: PasswordChangeRequest,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    if not verify_password(payload.current_password, user.password_hash):
        raise ValidationError(
            messages.WRONG_CURRENT_PASSWORD,
            {"current_password": messages.WRONG_CURRENT_PASSWORD},
        )
    user.password_hash = hash_password(payload.new_password)
    db.commit()
    return ok(message=messages.PASSWORD_CHANGED)
