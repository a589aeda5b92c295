import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.main import app
from app.models import Conversation


def test_open_private_conversation_once(client, db, auth_headers, alice, bob):
    response = client.post("/conversations/private", json={"user_id": bob.id}, headers=auth_headers(alice))
    assert response.status_code == 201
    conversation_id = response.json()["data"]["id"]

    response = client.post("/conversations/private", json={"user_id": alice.id}, headers=auth_headers(bob))
    assert response.status_code == 200
    assert response.json()["data"]["id"] == conversation_id
    assert db.query(Conversation).count() == 1


def test_private_conversation_with_self(client, auth_headers, alice):
    response = client.post("/conversations/private", json={"user_id": alice.id}, headers=auth_headers(alice))

    assert response.status_code == 400


def test_private_conversation_with_inactive_user(client, auth_headers, make_user, alice):
    ghost = make_user("ghost", is_active=False)

    response = client.post("/conversations/private", json={"user_id": ghost.id}, headers=auth_headers(alice))

    assert response.status_code == 404


def test_create_group_and_list(client, auth_headers, alice, bob, carol, private_chat):
    response = client.post(
        "/conversations/group",
        json={"title": " trio ", "member_ids": [bob.id, carol.id]},
        headers=auth_headers(alice),
    )
    assert response.status_code == 201
    group = response.json()["data"]
    assert group["type"] == "group"
    assert group["title"] == "trio"
    assert sorted(p["username"] for p in group["participants"]) == ["alice", "bob", "carol"]

    response = client.get("/conversations", headers=auth_headers(alice))
    assert [c["type"] for c in response.json()["data"]] == ["group", "private"]

    response = client.get("/conversations", headers=auth_headers(carol))
    assert [c["id"] for c in response.json()["data"]] == [group["id"]]


def test_group_needs_another_member(client, auth_headers, alice):
    response = client.post("/conversations/group", json={"member_ids": [alice.id]}, headers=auth_headers(alice))

    assert response.status_code == 400


def test_socket_answers_ping(client, alice, private_chat):
    token = create_access_token(alice.id, alice.role)

    with client.websocket_connect(f"/conversations/ws/{private_chat.id}?token={token}") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"


@pytest.mark.parametrize("query", ["", "?token=garbage"])
def test_socket_rejects_bad_token(query, private_chat):
    with TestClient(app).websocket_connect(f"/conversations/ws/{private_chat.id}{query}") as websocket:
        error = websocket.receive_json()

    assert error["success"] is False
    assert error["statusCode"] == 401


def test_socket_rejects_outsider(client, carol, private_chat):
    token = create_access_token(carol.id, carol.role)

    with client.websocket_connect(f"/conversations/ws/{private_chat.id}?token={token}") as websocket:
        error = websocket.receive_json()

    assert error["statusCode"] == 404
