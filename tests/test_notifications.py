def _pending_application(client, login, make_club):
    owner, applicant = login(), login()
    club = make_club(owner)
    resp = client.post(f"/clubs/{club['id']}/applications", headers=applicant.headers)
    assert resp.status_code == 201
    return owner, applicant, club


def test_list_and_mark_read(client, login, make_club):
    owner, applicant, club = _pending_application(client, login, make_club)
    client.post(f"/clubs/{club['id']}/applications", headers=login().headers)

    notes = client.get("/me/notifications", headers=owner.headers).json()
    assert len(notes) == 2
    assert all(n["type"] == "APPLICATION_SUBMITTED" and n["club_id"] == club["id"] for n in notes)
    assert notes[0]["id"] > notes[1]["id"]

    resp = client.post(f"/me/notifications/{notes[0]['id']}/read", headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["read"] is True

    unread = client.get("/me/notifications?unread_only=true", headers=owner.headers).json()
    assert [n["id"] for n in unread] == [notes[1]["id"]]

    assert client.post("/me/notifications", headers=owner.headers).json() == {"ok": True, "updated": 1}
    assert client.get("/me/notifications?unread_only=true", headers=owner.headers).json() == []


def test_cannot_touch_someone_elses_notification(client, login, make_club):
    owner, applicant, club = _pending_application(client, login, make_club)
    note_id = client.get("/me/notifications", headers=owner.headers).json()[0]["id"]
    assert client.post(f"/me/notifications/{note_id}/read", headers=applicant.headers).status_code == 404


def test_notifications_survive_disband(client, login, make_club):
    owner, applicant, club = _pending_application(client, login, make_club)
    assert client.post(f"/clubs/{club['id']}/disband", headers=owner.headers).status_code == 204
    assert len(client.get("/me/notifications", headers=owner.headers).json()) == 1
