from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, EmailStr, Field as PydField
from sqlmodel import Session, select

from ..database import get_db
from ..models.user import Gender, User, is_e164
from ..services import otp as otp_service
from ..services import tokens as token_service
from ..services.authz import bearer_token

router = APIRouter(prefix="/auth", tags=["auth"])


# -------------------------
# Schemas
# -------------------------

class RegisterRequest(BaseModel):
    """
    Registration payload. Only phone is required; the rest is profile.
    gender is kept as a plain string so an unknown value is a 400 with a clear
    message rather than a generic validation error.
    """
    phone: str = PydField(..., min_length=1)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    language: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    referrer: Optional[str] = None


class OtpRequest(BaseModel):
    phone: str = PydField(..., min_length=1)


class OtpVerify(BaseModel):
    phone: str = PydField(..., min_length=1)
    code: str = PydField(..., min_length=1)


class TokenPairOut(BaseModel):
    access_token: str
    refresh_token: str


class LoginOut(TokenPairOut):
    me: Dict[str, Any]


def profile(user: User) -> Dict[str, Any]:
    """
    Public shape of a user record.
    """
    data = user.model_dump(exclude={"created_at"})
    if user.gender is not None:
        data["gender"] = user.gender.value
    return data


# -------------------------
# Routes
# -------------------------

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    phone = payload.phone.strip()
    if not is_e164(phone):
        raise HTTPException(status_code=400, detail="Invalid phone format. Must be E.164 (e.g., +1234567890)")

    if db.exec(select(User).where(User.phone == phone)).first():
        raise HTTPException(status_code=409, detail="Phone number already registered")

    email = str(payload.email) if payload.email else None
    if email and db.exec(select(User).where(User.email == email)).first():
        raise HTTPException(status_code=409, detail="Email already in use")

    gender: Optional[Gender] = None
    if payload.gender:
        try:
            gender = Gender(payload.gender.strip().lower())
        except ValueError:
            raise HTTPException(status_code=400, detail='Gender must be "male" or "female"')

    user = User(
        phone=phone,
        email=email,
        first_name=payload.first_name or None,
        last_name=payload.last_name or None,
        nickname=payload.nickname or None,
        language=payload.language or "en",
        date_of_birth=payload.date_of_birth,
        gender=gender,
        referrer=payload.referrer or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return profile(user)


@router.post("/otp/request")
def request_otp(payload: OtpRequest, db: Session = Depends(get_db)) -> Dict[str, Any]:
    otp_service.request_otp(db, payload.phone.strip())
    return {"ok": True}


@router.post("/otp/verify", response_model=LoginOut)
def verify_otp(payload: OtpVerify, db: Session = Depends(get_db)) -> LoginOut:
    login = otp_service.verify_otp(db, payload.phone.strip(), payload.code.strip())
    u = login.user
    return LoginOut(
        access_token=login.tokens.access_token,
        refresh_token=login.tokens.refresh_token,
        me={
            "id": u.id,
            "phone": u.phone,
            "email": u.email,
            "first_name": u.first_name,
            "last_name": u.last_name,
        },
    )


@router.post("/refresh", response_model=TokenPairOut)
def refresh(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> TokenPairOut:
    """
    Rotate a refresh token (sent as the bearer token).
    """
    token = bearer_token(authorization)
    pair = token_service.rotate(db, token)
    db.commit()
    return TokenPairOut(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout")
def logout(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Revoke every token of the bearer's user. An expired (but genuine) token
    is still good enough to log out with.
    """
    token = bearer_token(authorization)
    claims = token_service.decode_token(token, verify_exp=False)
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    token_service.revoke_all(db, user_id)
    db.commit()
    return {"ok": True}
