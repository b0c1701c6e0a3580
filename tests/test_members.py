import random

from sqlmodel import select

from clubhub.models.membership import Membership, MemberRole, MemberStatus


def test_last_admin_cannot_leave(client, login, make_club):
    owner = login()
    club = make_club(owner)
    resp = client.delete(f"/clubs/{club['id']}/members/me", headers=owner.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot leave: you are the last active admin"


def test_admin_can_leave_when_another_admin_remains(client, login, make_club, add_member):
    owner, co_admin = login(), login()
    club = make_club(owner)
    add_member(club["id"], co_admin, role=MemberRole.ADMIN)

    assert client.delete(f"/clubs/{club['id']}/members/me", headers=owner.headers).status_code == 204
    assert client.delete(f"/clubs/{club['id']}/members/me", headers=co_admin.headers).status_code == 400
    assert client.get(f"/clubs/{club['id']}/members/me", headers=owner.headers).status_code == 404


def test_inactive_admin_does_not_count(client, login, make_club, add_member):
    owner, dormant = login(), login()
    club = make_club(owner)
    add_member(club["id"], dormant, role=MemberRole.ADMIN, status=MemberStatus.INACTIVE)
    assert client.delete(f"/clubs/{club['id']}/members/me", headers=owner.headers).status_code == 400


def test_leave_never_strands_a_club(client, login, make_club, add_member, session_factory):
    rng = random.Random(7)
    people = [login() for _ in range(5)]
    club = make_club(people[0])
    for p in people[1:]:
        add_member(club["id"], p, role=rng.choice([MemberRole.ADMIN, MemberRole.MEMBER]))

    for _ in range(15):
        who = rng.choice(people)
        client.delete(f"/clubs/{club['id']}/members/me", headers=who.headers)
        with session_factory() as s:
            admins = s.exec(
                select(Membership).where(
                    Membership.club_id == club["id"],
                    Membership.role == MemberRole.ADMIN,
                    Membership.status == MemberStatus.ACTIVE,
                )
            ).all()
        assert len(admins) >= 1


def test_member_listing_visibility(client, login, make_club, add_member):
    owner = login(email="owner@example.com")
    shy = login(email="shy@example.com")
    open_ = login(email="open@example.com")
    club = make_club(owner)
    add_member(club["id"], shy)
    add_member(club["id"], open_)

    resp = client.patch(
        f"/clubs/{club['id']}/members/me/settings",
        json={"show_phone_to_members": True, "show_email_to_members": True},
        headers=open_.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["show_phone_to_members"] is True

    as_member = {m["user_id"]: m for m in client.get(f"/clubs/{club['id']}/members", headers=shy.headers).json()}
    assert as_member[open_.id]["user"]["phone"] == open_.phone
    assert as_member[open_.id]["user"]["email"] == "open@example.com"
    assert as_member[owner.id]["user"]["phone"] is None
    assert all("admin_notes" not in m for m in as_member.values())

    as_admin = {m["user_id"]: m for m in client.get(f"/clubs/{club['id']}/members", headers=owner.headers).json()}
    assert as_admin[shy.id]["user"]["phone"] == shy.phone
    assert as_admin[shy.id]["user"]["email"] == "shy@example.com"
    assert "admin_notes" in as_admin[shy.id]


def test_listing_requires_active_membership(client, login, make_club, add_member):
    owner, gone, outsider = login(), login(), login()
    club = make_club(owner)
    add_member(club["id"], gone, status=MemberStatus.REMOVED)
    assert client.get(f"/clubs/{club['id']}/members", headers=outsider.headers).status_code == 403
    assert client.get(f"/clubs/{club['id']}/members", headers=gone.headers).status_code == 403

    # admins see removed rows, members do not
    add_member(club["id"], outsider)
    ids = [m["user_id"] for m in client.get(f"/clubs/{club['id']}/members", headers=outsider.headers).json()]
    assert gone.id not in ids
    ids = [m["user_id"] for m in client.get(f"/clubs/{club['id']}/members", headers=owner.headers).json()]
    assert gone.id in ids


def test_admin_update(client, login, make_club, add_member):
    owner, member = login(), login()
    club = make_club(owner)
    add_member(club["id"], member)

    url = f"/clubs/{club['id']}/members/by-user/{member.id}"
    assert client.patch(url, json={"role": "ADMIN"}, headers=member.headers).status_code == 403

    resp = client.patch(url, json={"role": "ADMIN", "admin_notes": "captain"}, headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "ADMIN"
    assert resp.json()["admin_notes"] == "captain"

    # the subject sees their own row, without the notes
    mine = client.get(url, headers=member.headers).json()
    assert mine["role"] == "ADMIN"
    assert "admin_notes" not in mine

    resp = client.patch(url, json={"status": "INACTIVE"}, headers=owner.headers)
    assert resp.json()["status"] == "INACTIVE"
    assert resp.json()["admin_notes"] == "captain"

    assert client.patch(
        f"/clubs/{club['id']}/members/by-user/999", json={"role": "ADMIN"}, headers=owner.headers
    ).status_code == 404


def test_admin_update_can_demote_last_admin(client, login, make_club):
    owner = login()
    club = make_club(owner)
    resp = client.patch(
        f"/clubs/{club['id']}/members/by-user/{owner.id}", json={"role": "MEMBER"}, headers=owner.headers
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "MEMBER"


def test_get_member_self_or_admin(client, login, make_club, add_member):
    owner, a, b = login(), login(), login()
    club = make_club(owner)
    add_member(club["id"], a)
    add_member(club["id"], b)

    assert client.get(f"/clubs/{club['id']}/members/by-user/{b.id}", headers=a.headers).status_code == 403
    resp = client.get(f"/clubs/{club['id']}/members/by-user/{b.id}", headers=owner.headers)
    assert resp.status_code == 200
    assert "admin_notes" in resp.json()


def test_settings_only_own_row(client, login, make_club):
    owner, outsider = login(), login()
    club = make_club(owner)
    resp = client.patch(
        f"/clubs/{club['id']}/members/me/settings", json={"show_phone_to_members": True}, headers=outsider.headers
    )
    assert resp.status_code == 404
