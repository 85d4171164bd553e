from app import app
from deps import get_admin_secret
from conftest import PUBLIC_HOST, START


def test_admin_disabled_without_secret(client):
    app.dependency_overrides[get_admin_secret] = lambda: ""

    response = client.post("/admin/meetings", headers={"Authorization": "Bearer anything"})

    assert response.status_code == 501
    assert response.json()["detail"] == "ADMIN_SECRET not configured"


def test_admin_requires_bearer_secret(client):
    assert client.post("/admin/meetings").status_code == 401
    assert client.post("/admin/meetings", headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.post("/admin/meetings", headers={"Authorization": "Basic test-admin-secret"}).status_code == 401


def test_create_meeting(client, auth_headers, state):
    response = client.post("/admin/meetings", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"meetingId", "room", "createdAt", "expiresAt", "maxParticipants"}
    assert data["createdAt"] == int(START * 1000)
    assert data["expiresAt"] == int((START + 2 * 60 * 60) * 1000)
    assert data["maxParticipants"] == 3
    assert data["meetingId"] in state.meetings


def test_create_meeting_with_overrides(client, auth_headers):
    response = client.post(
        "/admin/meetings",
        headers=auth_headers,
        json={"maxParticipants": 2, "ttlSeconds": 600},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["maxParticipants"] == 2
    assert data["expiresAt"] - data["createdAt"] == 600 * 1000


def test_create_meeting_rejects_bad_capacity(client, auth_headers):
    response = client.post("/admin/meetings", headers=auth_headers, json={"maxParticipants": 0})
    assert response.status_code == 422


def test_invite(client, auth_headers, state):
    meeting = state.meetings.create()

    response = client.post(f"/admin/meetings/{meeting.meeting_id}/invite", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["meetingId"] == meeting.meeting_id
    assert data["url"] == f"{PUBLIC_HOST}/r/{data['token']}"
    assert data["meetingExpiresAt"] == int(meeting.expires_at * 1000)
    assert data["token"] in state.tokens


def test_invite_unknown_meeting(client, auth_headers):
    response = client.post("/admin/meetings/nope/invite", headers=auth_headers)
    assert response.status_code == 404


def test_invite_expired_meeting(client, auth_headers, state, clock):
    meeting = state.meetings.create(ttl=10)
    clock.advance(11)

    response = client.post(f"/admin/meetings/{meeting.meeting_id}/invite", headers=auth_headers)

    assert response.status_code == 410
    assert meeting.meeting_id not in state.meetings


def test_meeting_status(client, auth_headers, state):
    meeting = state.meetings.create(max_participants=1)
    state.meetings.record_join(meeting.meeting_id)

    response = client.get(f"/admin/meetings/{meeting.meeting_id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["joins"] == 1
    assert data["isFull"] is True
    assert data["onlinePeers"] == 0


def test_delete_meeting(client, auth_headers, state):
    meeting = state.meetings.create()

    assert client.delete(f"/admin/meetings/{meeting.meeting_id}", headers=auth_headers).status_code == 204
    assert client.delete(f"/admin/meetings/{meeting.meeting_id}", headers=auth_headers).status_code == 404
