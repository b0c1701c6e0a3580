import os

# Point the app's own engine at a throwaway database before anything imports it.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "test")

import itertools
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from clubhub.database import build_engine, get_db, init_db
from clubhub.main import app
from clubhub.models.auth import OtpCode
from clubhub.models.membership import Membership, MemberRole, MemberStatus

_phones = itertools.count(5550000)


class Person:
    """A logged-in test user: id, phone, tokens and ready-made headers."""

    def __init__(self, user: Dict, access_token: str, refresh_token: str):
        self.id = user["id"]
        self.phone = user["phone"]
        self.user = user
        self.access_token = access_token
        self.refresh_token = refresh_token

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


@pytest.fixture()
def engine():
    eng = build_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    """Open short-lived sessions between requests: `with session_factory() as s:`."""
    return lambda: Session(engine)


@pytest.fixture()
def client(engine):
    def _get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def next_phone() -> str:
    return f"+1555{next(_phones):07d}"


def latest_code(session_factory, phone: str) -> str:
    with session_factory() as s:
        otp = s.exec(select(OtpCode).where(OtpCode.phone == phone).order_by(OtpCode.id.desc())).first()
        assert otp is not None
        return otp.code


@pytest.fixture()
def login(client, session_factory):
    """
    Register a user (optional profile fields as kwargs) and log them in
    through the real OTP flow.
    """

    def _login(phone: str = None, **profile) -> Person:
        phone = phone or next_phone()
        resp = client.post("/auth/register", json={"phone": phone, **profile})
        assert resp.status_code == 201, resp.text
        assert client.post("/auth/otp/request", json={"phone": phone}).status_code == 200
        code = latest_code(session_factory, phone)
        resp = client.post("/auth/otp/verify", json={"phone": phone, "code": code})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return Person(body["me"], body["access_token"], body["refresh_token"])

    return _login


@pytest.fixture()
def make_club(client):
    def _make_club(owner: Person, **fields) -> Dict:
        payload = {"name": "Tennis Club", **fields}
        resp = client.post("/clubs", json=payload, headers=owner.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make_club


@pytest.fixture()
def add_member(session_factory):
    """Put a user straight into a club, bypassing invites/applications."""

    def _add_member(club_id: int, person: Person, role=MemberRole.MEMBER, status=MemberStatus.ACTIVE) -> None:
        with session_factory() as s:
            s.add(Membership(user_id=person.id, club_id=club_id, role=role, status=status))
            s.commit()

    return _add_member
