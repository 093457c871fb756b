def _create(client, headers, name="Favorites", description="best of"):
    return client.post("/api/v1/playlists", headers=headers, json={"name": name, "description": description})


def test_favorites_membership_scenario(client, make_user, make_video):
    _, u1 = make_user("u1")
    _, u2 = make_user("u2")
    video = make_video(u1)
    playlist = _create(client, u1).json()["data"]

    forbidden = client.patch(f"/api/v1/playlists/add/{video['id']}/{playlist['id']}", headers=u2)
    assert forbidden.status_code == 403

    added = client.patch(f"/api/v1/playlists/add/{video['id']}/{playlist['id']}", headers=u1)
    assert added.status_code == 200
    assert [v["id"] for v in added.json()["data"]["videos"]] == [video["id"]]

    again = client.patch(f"/api/v1/playlists/add/{video['id']}/{playlist['id']}", headers=u1)
    assert again.status_code == 409

    current = client.get(f"/api/v1/playlists/{playlist['id']}").json()["data"]
    assert [v["id"] for v in current["videos"]] == [video["id"]]


def test_remove_missing_member_is_not_found(client, make_user, make_video):
    _, alice = make_user("alice")
    kept = make_video(alice, title="kept")
    other = make_video(alice, title="other")
    playlist = _create(client, alice).json()["data"]
    client.patch(f"/api/v1/playlists/add/{kept['id']}/{playlist['id']}", headers=alice)

    resp = client.patch(f"/api/v1/playlists/remove/{other['id']}/{playlist['id']}", headers=alice)
    assert resp.status_code == 404

    current = client.get(f"/api/v1/playlists/{playlist['id']}").json()["data"]
    assert [v["id"] for v in current["videos"]] == [kept["id"]]

    removed = client.patch(f"/api/v1/playlists/remove/{kept['id']}/{playlist['id']}", headers=alice)
    assert removed.status_code == 200
    assert removed.json()["data"]["videos"] == []


def test_videos_keep_insertion_order(client, make_user, make_video):
    _, alice = make_user("alice")
    videos = [make_video(alice, title=t) for t in ("c", "a", "b")]
    playlist = _create(client, alice).json()["data"]
    for video in videos:
        client.patch(f"/api/v1/playlists/add/{video['id']}/{playlist['id']}", headers=alice)

    current = client.get(f"/api/v1/playlists/{playlist['id']}").json()["data"]
    assert [v["title"] for v in current["videos"]] == ["c", "a", "b"]


def test_add_missing_video_is_not_found(client, make_user):
    _, alice = make_user("alice")
    playlist = _create(client, alice).json()["data"]
    assert client.patch(f"/api/v1/playlists/add/999/{playlist['id']}", headers=alice).status_code == 404
    assert client.patch("/api/v1/playlists/add/1/999", headers=alice).status_code == 404


def test_duplicate_playlist_name_is_conflict(client, make_user):
    _, alice = make_user("alice")
    _, bob = make_user("bob")
    assert _create(client, alice).status_code == 201
    assert _create(client, alice).status_code == 409
    # names are scoped to their owner
    assert _create(client, bob).status_code == 201


def test_create_requires_name(client, make_user):
    _, alice = make_user("alice")
    assert _create(client, alice, name="   ").status_code == 400


def test_update_and_delete_playlist(client, make_user):
    alice_user, alice = make_user("alice")
    _, bob = make_user("bob")
    first = _create(client, alice, name="One").json()["data"]
    _create(client, alice, name="Two")

    assert client.patch(f"/api/v1/playlists/{first['id']}", headers=bob, json={"name": "Mine"}).status_code == 403
    assert client.patch(f"/api/v1/playlists/{first['id']}", headers=alice, json={}).status_code == 400
    assert client.patch(f"/api/v1/playlists/{first['id']}", headers=alice, json={"name": "Two"}).status_code == 409

    renamed = client.patch(f"/api/v1/playlists/{first['id']}", headers=alice, json={"name": "Uno"})
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Uno"
    assert renamed.json()["data"]["description"] == "best of"

    listing = client.get(f"/api/v1/playlists/user/{alice_user['id']}", params={"sortBy": "name", "sortOrder": "asc"})
    assert [p["name"] for p in listing.json()["data"]["playlists"]] == ["Two", "Uno"]

    assert client.delete(f"/api/v1/playlists/{first['id']}", headers=bob).status_code == 403
    assert client.delete(f"/api/v1/playlists/{first['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/v1/playlists/{first['id']}").status_code == 404


def test_playlist_skips_deleted_videos(client, make_user, make_video):
    _, alice = make_user("alice")
    video = make_video(alice)
    playlist = _create(client, alice).json()["data"]
    client.patch(f"/api/v1/playlists/add/{video['id']}/{playlist['id']}", headers=alice)

    client.delete(f"/api/v1/videos/{video['id']}", headers=alice)
    assert client.get(f"/api/v1/playlists/{playlist['id']}").json()["data"]["videos"] == []


def test_description_can_be_cleared(client, make_user):
    _, alice = make_user("alice")
    playlist = _create(client, alice).json()["data"]

    resp = client.patch(f"/api/v1/playlists/{playlist['id']}", headers=alice, json={"description": ""})
    assert resp.status_code == 200
    assert resp.json()["data"]["description"] == ""
    assert resp.json()["data"]["name"] == "Favorites"
