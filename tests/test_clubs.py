from sqlmodel import select

from clubhub.models.application import Application
from clubhub.models.audit_log import AuditLog
from clubhub.models.club import Club
from clubhub.models.event import Event
from clubhub.models.invite import Invite
from clubhub.models.membership import Membership


def test_create_club_makes_creator_admin(client, login, make_club):
    owner = login()
    club = make_club(owner, levels_accepted=["A", "B", "A", " "])
    assert club["levels_accepted"] == ["A", "B"]
    assert club["join_mode"] == "APPLY_TO_JOIN"

    me = client.get(f"/clubs/{club['id']}/members/me", headers=owner.headers).json()
    assert me["role"] == "ADMIN"
    assert me["status"] == "ACTIVE"

    mine = client.get("/clubs", headers=owner.headers).json()
    assert [c["id"] for c in mine] == [club["id"]]


def test_create_club_validation(client, login):
    owner = login()
    assert client.post("/clubs", json={"name": "   "}, headers=owner.headers).status_code == 400
    assert client.post("/clubs", json={}, headers=owner.headers).status_code == 400
    assert client.post("/clubs", json={"name": "X", "active_member_limit": 0}, headers=owner.headers).status_code == 400
    assert client.post("/clubs", json={"name": "X"}).status_code == 401


def test_get_club(client, login, make_club):
    owner, other = login(), login()
    club = make_club(owner)
    assert client.get(f"/clubs/{club['id']}", headers=other.headers).json()["name"] == "Tennis Club"
    assert client.get("/clubs/999", headers=other.headers).status_code == 404


def test_patch_club_is_admin_only(client, login, make_club, add_member):
    owner, member = login(), login()
    club = make_club(owner)
    add_member(club["id"], member)

    resp = client.patch(f"/clubs/{club['id']}", json={"name": "Renamed"}, headers=member.headers)
    assert resp.status_code == 403
    assert resp.json() == {"statusCode": 403, "message": "Admin access required"}

    resp = client.patch(
        f"/clubs/{club['id']}",
        json={"name": "Renamed", "join_mode": "INVITE_ONLY", "active_member_limit": 10},
        headers=owner.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Renamed"
    assert body["join_mode"] == "INVITE_ONLY"
    assert body["active_member_limit"] == 10

    resp = client.patch(f"/clubs/{club['id']}", json={"active_member_limit": None}, headers=owner.headers)
    assert resp.json()["active_member_limit"] is None
    assert resp.json()["name"] == "Renamed"


def test_disband_only_touches_that_club(client, login, make_club, session_factory):
    owner, applicant = login(), login()
    doomed = make_club(owner, name="Doomed")
    kept = make_club(owner, name="Kept")

    for club in (doomed, kept):
        cid = club["id"]
        assert client.post(f"/clubs/{cid}/invites", json={}, headers=owner.headers).status_code == 201
        assert client.post(f"/clubs/{cid}/applications", headers=applicant.headers).status_code == 201
        resp = client.post(
            f"/clubs/{cid}/events",
            json={"title": "Social", "start_time": "2030-01-01T18:00:00Z"},
            headers=owner.headers,
        )
        assert resp.status_code == 201
        assert client.post(f"/clubs/{cid}/events/{resp.json()['id']}/register", headers=owner.headers).status_code == 201

    assert client.post(f"/clubs/{doomed['id']}/disband", headers=applicant.headers).status_code == 403
    assert client.post(f"/clubs/{doomed['id']}/disband", headers=owner.headers).status_code == 204

    with session_factory() as s:
        for model in (Membership, Invite, Application, Event):
            assert s.exec(select(model).where(model.club_id == doomed["id"])).all() == []
            assert s.exec(select(model).where(model.club_id == kept["id"])).all() != []
        assert s.get(Club, doomed["id"]) is None
        actions = [a.action for a in s.exec(select(AuditLog).where(AuditLog.club_id == doomed["id"])).all()]
        assert "CLUB_DISBANDED" in actions

    assert client.get(f"/clubs/{doomed['id']}", headers=owner.headers).status_code == 404
    assert [c["id"] for c in client.get("/clubs", headers=owner.headers).json()] == [kept["id"]]


def test_delete_club(client, login, make_club, session_factory):
    owner = login()
    club = make_club(owner)
    assert client.delete(f"/clubs/{club['id']}", headers=owner.headers).status_code == 204
    assert client.get(f"/clubs/{club['id']}", headers=owner.headers).status_code == 404
    with session_factory() as s:
        actions = [a.action for a in s.exec(select(AuditLog).where(AuditLog.club_id == club["id"])).all()]
    assert "CLUB_DELETED" in actions


def test_search(client, login, make_club, add_member):
    owner, outsider = login(), login()
    open_club = make_club(owner, name="Open Padel", description="friendly games")
    make_club(owner, name="Secret Society", join_mode="INVITE_ONLY")
    make_club(owner, name="Full Padel", is_accepting_new_members=False)

    names = [c["name"] for c in client.get("/me/clubs/search", headers=outsider.headers).json()]
    assert names == ["Open Padel"]

    names = [c["name"] for c in client.get("/me/clubs/search?q=padel", headers=owner.headers).json()]
    assert names == ["Full Padel", "Open Padel"]

    names = [c["name"] for c in client.get("/me/clubs/search?q=FRIENDLY", headers=outsider.headers).json()]
    assert names == [open_club["name"]]


def test_patch_club_nulls_on_required_fields_are_ignored(client, login, make_club):
    owner = login()
    club = make_club(owner, name="Keepers", join_mode="INVITE_ONLY", is_accepting_new_members=False)

    resp = client.patch(
        f"/clubs/{club['id']}",
        json={"name": None, "type": None, "join_mode": None, "is_accepting_new_members": None, "rules": "be kind"},
        headers=owner.headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Keepers"
    assert body["type"] == "CASUAL"
    assert body["join_mode"] == "INVITE_ONLY"
    assert body["is_accepting_new_members"] is False
    assert body["rules"] == "be kind"
