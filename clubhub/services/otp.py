from __future__ import annotations

import logging
import math
import secrets
from dataclasses import dataclass
from datetime import timedelta

from fastapi import HTTPException
from sqlmodel import Session, select

from ..config import settings
from ..models.auth import OtpCode
from ..models.common import as_utc, utcnow
from ..models.user import User, is_e164
from .tokens import TokenPair, issue_token_pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpLogin:
    user: User
    tokens: TokenPair
    created_user: bool


def generate_code() -> str:
    # 100000..999999, always six digits
    return str(100000 + secrets.randbelow(900000))


def request_otp(session: Session, phone: str) -> OtpCode:
    """
    Issue a login code for phone.

    Rate limit: while an unused code for the phone is younger than the resend
    window, refuse with 400 and tell the caller how long to wait.
    """
    if not is_e164(phone):
        raise HTTPException(status_code=400, detail="Invalid phone format. Must be E.164 (e.g., +1234567890)")

    now = utcnow()
    window = timedelta(seconds=settings.otp_resend_seconds)
    pending = session.exec(
        select(OtpCode).where(OtpCode.phone == phone, OtpCode.used == False)  # noqa: E712
    ).all()
    for otp in pending:
        age = now - as_utc(otp.created_at)
        if age < window:
            wait = math.ceil((window - age).total_seconds())
            raise HTTPException(status_code=400, detail=f"Rate limit exceeded. Please wait {wait} seconds.")

    otp = OtpCode(phone=phone, code=generate_code(), created_at=now)
    session.add(otp)
    session.commit()
    session.refresh(otp)

    if settings.should_log_otp_codes:
        logger.info("OTP for %s: %s", phone, otp.code)
    else:
        logger.info("OTP issued for %s", phone)
    return otp


def verify_otp(session: Session, phone: str, code: str) -> OtpLogin:
    """
    Consume a code and log the phone in, creating the user on first login.
    All failures are 401; the message says whether the code expired, was
    already used, or never matched.
    """
    if not phone or not code:
        raise HTTPException(status_code=400, detail="Phone and code are required")

    now = utcnow()
    ttl = timedelta(seconds=settings.otp_ttl_seconds)
    candidates = session.exec(
        select(OtpCode).where(OtpCode.phone == phone, OtpCode.code == code).order_by(OtpCode.id.desc())
    ).all()

    match = next((o for o in candidates if not o.used and now - as_utc(o.created_at) < ttl), None)
    if match is None:
        if any(not o.used for o in candidates):
            raise HTTPException(status_code=401, detail="Code expired (OTP codes expire after 5 minutes)")
        if candidates:
            raise HTTPException(status_code=401, detail="Code already used")
        raise HTTPException(status_code=401, detail="Invalid or expired OTP code")

    match.used = True
    session.add(match)

    created = False
    user = session.exec(select(User).where(User.phone == phone)).first()
    if not user:
        user = User(phone=phone)
        session.add(user)
        session.flush()
        created = True

    tokens = issue_token_pair(session, user.id)
    session.commit()
    session.refresh(user)
    return OtpLogin(user=user, tokens=tokens, created_user=created)
