import pytest

from app.database import TransactionScope
from app.models import DeletedMessage, Message, User, UserBlock


PASSWORD = "password123"


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def capture(to_email, otp, username):
        sent.append((to_email, otp))
        return True

    monkeypatch.setattr("app.api.routes.auth.send_otp_email", capture)
    monkeypatch.setattr("app.api.routes.auth.send_password_reset_email", capture)
    return sent


def register(client, username="dave", password=PASSWORD):
    return client.post("/auth/register", json={
        "username": username,
        "email": f"{username}@chato.io",
        "password": password,
        "confirm_password": password,
    })


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_register_verify_and_login(client, outbox):
    response = register(client)
    assert response.status_code == 201
    assert outbox[0][0] == "dave@chato.io"

    response = login(client, "dave@chato.io")
    assert response.status_code == 403

    response = client.post("/auth/verify-otp", json={"email": "dave@chato.io", "otp_code": int(outbox[0][1])})
    assert response.status_code == 200

    response = login(client, "dave@chato.io")
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "dave"


def test_register_twice_with_verified_account(client, outbox, alice):
    response = client.post("/auth/register", json={
        "username": "someone",
        "email": alice.email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })

    assert response.status_code == 409


def test_register_again_before_verifying_resends_otp(client, outbox):
    register(client)
    response = register(client)

    assert response.status_code == 200
    assert len(outbox) == 2


def test_register_with_mismatched_passwords(client, outbox):
    response = client.post("/auth/register", json={
        "username": "dave",
        "email": "dave@chato.io",
        "password": PASSWORD,
        "confirm_password": "password124",
    })

    assert response.status_code == 400
    assert outbox == []


def test_wrong_otp_is_rejected(client, outbox):
    register(client)
    wrong = 100000 if outbox[0][1] != "100000" else 100001

    response = client.post("/auth/verify-otp", json={"email": "dave@chato.io", "otp_code": wrong})

    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid OTP code")


def test_login_with_wrong_password(client, alice):
    response = login(client, alice.email, "not-the-password")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid email or password"


def test_password_reset(client, outbox, alice):
    response = client.post("/auth/forgot-password", json={"email": alice.email})
    assert response.status_code == 200

    response = client.post("/auth/verify-reset-otp", json={"email": alice.email, "otp_code": int(outbox[0][1])})
    assert response.status_code == 200
    reset_token = response.json()["data"]["reset_token"]

    response = client.post("/auth/reset-password", json={
        "reset_token": reset_token,
        "new_password": "brand-new-password",
        "confirm_password": "brand-new-password",
    })
    assert response.status_code == 200

    assert login(client, alice.email).status_code == 400
    assert login(client, alice.email, "brand-new-password").status_code == 200


def test_update_profile(client, auth_headers, alice):
    response = client.patch("/users/me", json={"bio": "hello there"}, headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json()["data"]["bio"] == "hello there"

    response = client.patch("/users/me", json={}, headers=auth_headers(alice))
    assert response.status_code == 400


def test_change_password(client, auth_headers, alice):
    response = client.post("/users/me/password", json={
        "current_password": PASSWORD,
        "new_password": "another-password",
        "confirm_password": "another-password",
    }, headers=auth_headers(alice))

    assert response.status_code == 200
    assert login(client, alice.email, "another-password").status_code == 200


def test_deactivated_account_loses_access(client, auth_headers, alice):
    headers = auth_headers(alice)

    response = client.post("/users/me/deactivate", json={"password": PASSWORD}, headers=headers)
    assert response.status_code == 204

    assert client.get("/users/me", headers=headers).status_code == 403
    assert login(client, alice.email).status_code == 403


def test_deactivated_account_reactivates_with_otp(client, outbox, auth_headers, alice):
    client.post("/users/me/deactivate", json={"password": PASSWORD}, headers=auth_headers(alice))

    response = client.post("/auth/resend-otp", json={"email": alice.email})
    assert response.status_code == 200

    response = client.post("/auth/verify-otp", json={"email": alice.email, "otp_code": int(outbox[0][1])})
    assert response.status_code == 200
    assert login(client, alice.email).status_code == 200


def test_delete_account_removes_messages_and_media(client, db, auth_headers, media, send, alice, bob, private_chat):
    send(alice, private_chat, "mine", files=[b"img"])
    send(bob, private_chat, "theirs")

    response = client.post("/users/me/delete", json={"password": PASSWORD}, headers=auth_headers(alice))

    assert response.status_code == 204
    assert db.query(User).filter(User.username == "alice").count() == 0
    assert [m.body for m in db.query(Message).all()] == ["theirs"]
    assert media.removed == ["test/1"]


def test_delete_account_purges_messages_hidden_by_everyone_left(client, db, auth_headers, media, lifecycle, send, alice, bob, private_chat):
    hidden = send(bob, private_chat, "gone for bob", files=[b"img"])
    kept = send(bob, private_chat, "still wanted")
    with TransactionScope(db) as tx:
        lifecycle.delete(tx, bob.id, private_chat.id, hidden)

    response = client.post("/users/me/delete", json={"password": PASSWORD}, headers=auth_headers(alice))

    assert response.status_code == 204
    assert [m.id for m in db.query(Message).all()] == [kept]
    assert db.query(DeletedMessage).count() == 0
    assert media.removed == ["test/1"]


def test_delete_account_with_wrong_password(client, db, auth_headers, alice):
    response = client.post("/users/me/delete", json={"password": "nope"}, headers=auth_headers(alice))

    assert response.status_code == 400
    assert db.query(User).count() == 1


def test_block_list(client, db, auth_headers, alice, bob, private_chat):
    response = client.post(f"/users/{bob.id}/block", headers=auth_headers(alice))
    assert response.status_code == 201

    response = client.get("/users/blocks", headers=auth_headers(alice))
    assert [u["username"] for u in response.json()["data"]] == ["bob"]

    response = client.post(
        f"/conversations/{private_chat.id}/messages", data={"message": "hi"}, headers=auth_headers(bob)
    )
    assert response.status_code == 400

    assert client.delete(f"/users/{bob.id}/block", headers=auth_headers(alice)).status_code == 204
    assert client.delete(f"/users/{bob.id}/block", headers=auth_headers(alice)).status_code == 404
    assert db.query(UserBlock).count() == 0


def test_blocking_is_idempotent(client, db, auth_headers, alice, bob):
    client.post(f"/users/{bob.id}/block", headers=auth_headers(alice))
    response = client.post(f"/users/{bob.id}/block", headers=auth_headers(alice))

    assert response.status_code == 201
    assert db.query(UserBlock).count() == 1


def test_block_self_or_unknown_user(client, auth_headers, alice):
    assert client.post(f"/users/{alice.id}/block", headers=auth_headers(alice)).status_code == 400
    assert client.post("/users/999/block", headers=auth_headers(alice)).status_code == 404


def test_admin_block(client, auth_headers, make_user, alice):
    admin = make_user("root", role="admin")

    response = client.patch(f"/admin/users/{alice.id}/block", json={"is_blocked": True}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["is_blocked"] is True

    assert client.get("/users/me", headers=auth_headers(alice)).status_code == 403
    assert login(client, alice.email).status_code == 403

    response = client.patch(f"/admin/users/{admin.id}/block", json={"is_blocked": True}, headers=auth_headers(admin))
    assert response.status_code == 403


def test_admin_routes_need_admin_role(client, auth_headers, alice):
    assert client.get("/admin/users", headers=auth_headers(alice)).status_code == 403


def test_admin_lists_users(client, auth_headers, make_user, alice, bob):
    admin = make_user("root", role="admin")

    response = client.get("/admin/users", params={"limit": 2}, headers=auth_headers(admin))

    assert response.status_code == 200
    page = response.json()["data"]
    assert [u["username"] for u in page["data"]] == ["alice", "bob"]
    assert page["meta"]["total"] == 3
    assert page["meta"]["has_next"] is True


def test_logout(client, auth_headers, alice):
    assert client.post("/auth/logout", headers=auth_headers(alice)).status_code == 204
    assert client.post("/auth/logout").status_code in (401, 403)
