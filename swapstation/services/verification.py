"""
Six-digit one-time codes for email verification and password reset.

Codes are "sent" by logging them; only the newest code for an email and
purpose is accepted.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import ValidationError
from swapstation.core.timeutils import utcnow
from swapstation.models import VerificationCode

logger = logging.getLogger(__name__)

REGISTER = "register"
RESET = "reset"
CODE_LENGTH = 6


def code_ttl() -> timedelta:
    return timedelta(minutes=settings.verification_code_ttl_minutes)


def _latest(db: Session, email: str, purpose: str) -> Optional[VerificationCode]:
    return (
        db.query(VerificationCode)
        .filter(VerificationCode.email == email, VerificationCode.purpose == purpose)
        .order_by(VerificationCode.code_id.desc())
        .first()
    )


def issue_code(db: Session, email: str, purpose: str, now: Optional[datetime] = None) -> VerificationCode:
    """Create a fresh code; earlier unused codes for the same email and purpose stop working."""
    now = now or utcnow()
    (
        db.query(VerificationCode)
        .filter(
            VerificationCode.email == email,
            VerificationCode.purpose == purpose,
            VerificationCode.used.is_(False),
        )
        .update({VerificationCode.used: True}, synchronize_session=False)
    )
    record = VerificationCode(
        email=email,
        purpose=purpose,
        code=f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}",
        expires_at=now + code_ttl(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Verification code (%s) for %s: %s", purpose, email, record.code)
    return record


def _invalid_code() -> ValidationError:
    return ValidationError(messages.OTP_INVALID, {"code": messages.OTP_INVALID})


def check_code(db: Session, email: str, code: str, purpose: str, now: Optional[datetime] = None) -> VerificationCode:
    now = now or utcnow()
    record = _latest(db, email, purpose)
    if record is None or record.used or record.expires_at <= now:
        raise _invalid_code()
    if not secrets.compare_digest(record.code, code):
        raise _invalid_code()
    return record


def verify_email(db: Session, email: str, code: str, now: Optional[datetime] = None) -> VerificationCode:
    """Mark the email as verified; registration must follow within the code lifetime."""
    now = now or utcnow()
    record = check_code(db, email, code, REGISTER, now)
    record.verified_at = now
    record.expires_at = now + code_ttl()
    db.commit()
    logger.info("Email %s verified", email)
    return record


def consume_verification(db: Session, email: str, now: Optional[datetime] = None) -> None:
    """Use up a verified registration code, or raise when the email was never verified."""
    now = now or utcnow()
    record = _latest(db, email, REGISTER)
    if record is None or record.used or record.verified_at is None or record.expires_at <= now:
        raise ValidationError(messages.EMAIL_NOT_VERIFIED, {"email": messages.EMAIL_NOT_VERIFIED})
    record.used = True


def redeem_reset_code(db: Session, email: str, code: str, now: Optional[datetime] = None) -> VerificationCode:
    record = check_code(db, email, code, RESET, now)
    record.used = True
    return record
