from sqlmodel import select

from clubhub.models.membership import MemberStatus
from clubhub.models.notification import Notification


def _event(client, club_id, admin, **fields):
    payload = {"title": "Ladder night", "start_time": "2030-05-01T18:00:00Z", **fields}
    resp = client.post(f"/clubs/{club_id}/events", json=payload, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_event_validation(client, login, make_club, add_member):
    owner, member = login(), login()
    club = make_club(owner)
    add_member(club["id"], member)
    url = f"/clubs/{club['id']}/events"

    assert client.post(url, json={"title": "x", "start_time": "2030-01-01T10:00:00Z"}, headers=member.headers).status_code == 403

    resp = client.post(url, json={"title": "  ", "start_time": "2030-01-01T10:00:00Z"}, headers=owner.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Event title is required"

    resp = client.post(url, json={"title": "Open day"}, headers=owner.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Start time is required"

    resp = client.post(
        url,
        json={"title": "Backwards", "start_time": "2030-01-01T10:00:00Z", "end_time": "2030-01-01T09:00:00Z"},
        headers=owner.headers,
    )
    assert resp.status_code == 400

    resp = client.post(
        url, json={"title": "Tiny", "start_time": "2030-01-01T10:00:00Z", "max_participants": 0}, headers=owner.headers
    )
    assert resp.status_code == 400


def test_create_event_notifies_other_members(client, login, make_club, add_member, session_factory):
    owner, member, gone = login(), login(), login()
    club = make_club(owner, name="Night Owls")
    add_member(club["id"], member)
    add_member(club["id"], gone, status=MemberStatus.REMOVED)

    event = _event(client, club["id"], owner)
    assert event["registration_count"] == 0
    assert event["is_registered"] is False

    with session_factory() as s:
        notes = s.exec(select(Notification).where(Notification.type == "EVENT_CREATED")).all()
    assert [n.user_id for n in notes] == [member.id]
    assert "Night Owls" in notes[0].body


def test_list_and_get_are_member_only(client, login, make_club, add_member):
    owner, member, outsider = login(), login(), login()
    club = make_club(owner)
    add_member(club["id"], member)
    later = _event(client, club["id"], owner, title="Later", start_time="2030-06-01T10:00:00Z")
    sooner = _event(client, club["id"], owner, title="Sooner", start_time="2030-02-01T10:00:00Z")

    listed = client.get(f"/clubs/{club['id']}/events", headers=member.headers).json()
    assert [e["id"] for e in listed] == [sooner["id"], later["id"]]

    assert client.get(f"/clubs/{club['id']}/events", headers=outsider.headers).status_code == 403
    assert client.get(f"/clubs/{club['id']}/events/{later['id']}", headers=outsider.headers).status_code == 403
    assert client.get(f"/clubs/{club['id']}/events/{later['id']}", headers=member.headers).json()["title"] == "Later"
    assert client.get(f"/clubs/{club['id']}/events/999", headers=member.headers).status_code == 404


def test_register_and_unregister(client, login, make_club, add_member):
    owner, member = login(), login()
    club = make_club(owner)
    add_member(club["id"], member)
    event = _event(client, club["id"], owner)
    url = f"/clubs/{club['id']}/events/{event['id']}/register"

    resp = client.post(url, headers=member.headers)
    assert resp.status_code == 201
    assert resp.json()["status"] == "REGISTERED"
    assert client.post(url, headers=member.headers).status_code == 409

    got = client.get(f"/clubs/{club['id']}/events/{event['id']}", headers=member.headers).json()
    assert got["registration_count"] == 1
    assert got["is_registered"] is True
    got = client.get(f"/clubs/{club['id']}/events/{event['id']}", headers=owner.headers).json()
    assert got["is_registered"] is False

    resp = client.delete(url, headers=member.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert client.delete(url, headers=member.headers).status_code == 404

    # registering again after cancelling is allowed
    assert client.post(url, headers=member.headers).status_code == 201


def test_full_event(client, login, make_club, add_member):
    owner, a, b = login(), login(), login()
    club = make_club(owner)
    add_member(club["id"], a)
    add_member(club["id"], b)
    event = _event(client, club["id"], owner, max_participants=1)
    url = f"/clubs/{club['id']}/events/{event['id']}/register"

    assert client.post(url, headers=a.headers).status_code == 201
    resp = client.post(url, headers=b.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Event is full"

    # an already-registered user can always drop out
    assert client.delete(url, headers=a.headers).status_code == 200
    assert client.post(url, headers=b.headers).status_code == 201


def test_unregister_after_leaving_club(client, login, make_club, add_member):
    owner, member = login(), login()
    club = make_club(owner)
    add_member(club["id"], member)
    event = _event(client, club["id"], owner)
    url = f"/clubs/{club['id']}/events/{event['id']}/register"

    assert client.post(url, headers=member.headers).status_code == 201
    assert client.delete(f"/clubs/{club['id']}/members/me", headers=member.headers).status_code == 204
    assert client.post(url, headers=member.headers).status_code == 403
    assert client.delete(url, headers=member.headers).status_code == 200
