from conftest import PASSWORD, bearer, login, register


def test_register_returns_envelope(client, uploader):
    resp = register(client, "Alice", cover=True)
    assert resp.status_code == 201
    body = resp.json()
    assert body["statusCode"] == 201
    assert body["success"] is True
    user = body["data"]
    assert user["username"] == "alice"
    assert user["avatar"].startswith("https://media.test/")
    assert user["coverImage"].startswith("https://media.test/")
    assert "password" not in user
    assert "refreshToken" not in user
    assert len(uploader.uploaded) == 2


def test_register_duplicate_is_conflict(client):
    assert register(client, "alice").status_code == 201
    resp = register(client, "alice", email="other@example.com")
    assert resp.status_code == 409
    assert resp.json()["success"] is False


def test_register_requires_avatar(client):
    resp = client.post(
        "/api/v1/users/register",
        data={"fullName": "No Avatar", "email": "na@example.com", "username": "na", "password": PASSWORD},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Avatar file is required"


def test_register_blank_field_is_bad_request(client):
    resp = register(client, "alice", fullName="   ")
    assert resp.status_code == 400


def test_register_rolls_back_uploaded_avatar_when_cover_fails(client, uploader):
    uploader.fail_after = 1
    resp = register(client, "alice", cover=True)
    assert resp.status_code == 502
    assert uploader.destroyed == ["asset1"]
    assert login(client, "alice").status_code == 401


def test_login_failures_are_indistinguishable(client):
    register(client, "alice")
    wrong_password = login(client, "alice", "nope")
    unknown_user = login(client, "bob")
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json()["message"] == unknown_user.json()["message"] == "Invalid user credentials"


def test_login_by_email_sets_session(client):
    register(client, "alice")
    resp = client.post("/api/v1/users/login", json={"email": "ALICE@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["username"] == "alice"
    assert data["accessToken"] and data["refreshToken"]
    set_cookie = ",".join(resp.headers.get_list("set-cookie"))
    assert "accessToken=" in set_cookie
    assert "HttpOnly" in set_cookie


def test_login_requires_an_identity(client):
    resp = client.post("/api/v1/users/login", json={"password": PASSWORD})
    assert resp.status_code == 400


def test_current_user_requires_token(client):
    resp = client.get("/api/v1/users/current-user")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_current_user_rejects_garbage_token(client):
    resp = client.get("/api/v1/users/current-user", headers=bearer("not-a-token"))
    assert resp.status_code == 401


def test_current_user_with_token(client, make_user):
    user, headers = make_user("alice")
    resp = client.get("/api/v1/users/current-user", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == user["id"]


def test_refresh_rotates_and_invalidates_previous_token(client):
    register(client, "alice")
    first = login(client, "alice").json()["data"]["refreshToken"]

    rotated = client.post("/api/v1/users/refresh-token", json={"refreshToken": first})
    assert rotated.status_code == 200
    second = rotated.json()["data"]["refreshToken"]
    assert second != first

    replay = client.post("/api/v1/users/refresh-token", json={"refreshToken": first})
    assert replay.status_code == 401


def test_new_login_invalidates_earlier_refresh_token(client):
    register(client, "alice")
    first = login(client, "alice").json()["data"]["refreshToken"]
    login(client, "alice")
    assert client.post("/api/v1/users/refresh-token", json={"refreshToken": first}).status_code == 401


def test_refresh_without_token_is_unauthenticated(client):
    assert client.post("/api/v1/users/refresh-token").status_code == 401


def test_logout_clears_stored_refresh_token(client):
    register(client, "alice")
    session = login(client, "alice").json()["data"]

    resp = client.post("/api/v1/users/logout", headers=bearer(session["accessToken"]))
    assert resp.status_code == 200

    refresh = client.post("/api/v1/users/refresh-token", json={"refreshToken": session["refreshToken"]})
    assert refresh.status_code == 401


def test_change_password(client, make_user):
    _, headers = make_user("alice")

    wrong = client.post(
        "/api/v1/users/change-password",
        headers=headers,
        json={"oldPassword": "nope", "newPassword": "brand-new"},
    )
    assert wrong.status_code == 400

    ok = client.post(
        "/api/v1/users/change-password",
        headers=headers,
        json={"oldPassword": PASSWORD, "newPassword": "brand-new"},
    )
    assert ok.status_code == 200
    assert login(client, "alice").status_code == 401
    assert login(client, "alice", "brand-new").status_code == 200


def test_update_account_details(client, make_user):
    make_user("bob")
    _, headers = make_user("alice")

    taken = client.patch("/api/v1/users/update-account", headers=headers, json={"email": "bob@example.com"})
    assert taken.status_code == 409

    empty = client.patch("/api/v1/users/update-account", headers=headers, json={})
    assert empty.status_code == 400

    resp = client.patch(
        "/api/v1/users/update-account",
        headers=headers,
        json={"fullName": "  Alice Liddell ", "email": "liddell@example.com"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["fullName"] == "Alice Liddell"
    assert data["email"] == "liddell@example.com"


def test_replace_avatar(client, make_user):
    _, headers = make_user("alice")

    missing = client.patch("/api/v1/users/avatar", headers=headers)
    assert missing.status_code == 400

    resp = client.patch(
        "/api/v1/users/avatar",
        headers=headers,
        files={"avatar": ("new.png", b"new-bytes", "image/png")},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["avatar"].endswith(".png")
