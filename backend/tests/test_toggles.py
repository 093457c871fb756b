import pytest


def test_video_like_toggle_parity(client, make_user, make_video):
    _, alice = make_user("alice")
    video = make_video(alice)

    states = []
    for _ in range(5):
        resp = client.post(f"/api/v1/likes/toggle/video/{video['id']}", headers=alice)
        assert resp.status_code == 200
        states.append(resp.json()["data"]["liked"])
    assert states == [True, False, True, False, True]

    liked = client.get("/api/v1/likes/videos", headers=alice).json()["data"]
    assert [v["id"] for v in liked] == [video["id"]]
    assert liked[0]["owner"]["username"] == "alice"


@pytest.mark.parametrize("target", ["comment", "tweet"])
def test_like_other_targets(client, make_user, make_video, target):
    _, alice = make_user("alice")
    _, bob = make_user("bob")
    video = make_video(alice)
    if target == "comment":
        target_id = client.post(f"/api/v1/comments/{video['id']}", headers=alice, json={"content": "c"}).json()["data"]["id"]
    else:
        target_id = client.post("/api/v1/tweets", headers=alice, json={"content": "t"}).json()["data"]["id"]

    first = client.post(f"/api/v1/likes/toggle/{target}/{target_id}", headers=bob).json()["data"]
    assert first["liked"] is True
    assert first["likeId"] is not None
    second = client.post(f"/api/v1/likes/toggle/{target}/{target_id}", headers=bob).json()["data"]
    assert second == {"liked": False, "likeId": None}


def test_like_missing_target_is_not_found(client, make_user):
    _, alice = make_user("alice")
    assert client.post("/api/v1/likes/toggle/comment/999", headers=alice).status_code == 404


def test_like_unknown_target_kind_is_bad_request(client, make_user):
    _, alice = make_user("alice")
    assert client.post("/api/v1/likes/toggle/playlist/1", headers=alice).status_code == 400


def test_likes_on_one_target_do_not_affect_another(client, make_user, make_video):
    _, alice = make_user("alice")
    first = make_video(alice, title="one")
    second = make_video(alice, title="two")

    client.post(f"/api/v1/likes/toggle/video/{first['id']}", headers=alice)
    client.post(f"/api/v1/likes/toggle/video/{second['id']}", headers=alice)
    client.post(f"/api/v1/likes/toggle/video/{first['id']}", headers=alice)

    liked = client.get("/api/v1/likes/videos", headers=alice).json()["data"]
    assert [v["id"] for v in liked] == [second["id"]]


def test_subscription_toggle_parity(client, make_user):
    alice_user, alice = make_user("alice")
    bob_user, bob = make_user("bob")

    on = client.post(f"/api/v1/subscriptions/{alice_user['id']}/toggle", headers=bob)
    assert on.status_code == 200
    assert on.json()["data"] == {"subscribed": True, "channelId": alice_user["id"]}

    subscribers = client.get(f"/api/v1/subscriptions/channel/{alice_user['id']}/subscribers").json()["data"]
    assert [s["subscriber"]["username"] for s in subscribers] == ["bob"]

    channels = client.get(f"/api/v1/subscriptions/user/{bob_user['id']}/channels").json()["data"]
    assert [s["channel"]["username"] for s in channels] == ["alice"]

    off = client.post(f"/api/v1/subscriptions/{alice_user['id']}/toggle", headers=bob)
    assert off.json()["data"]["subscribed"] is False
    assert client.get(f"/api/v1/subscriptions/channel/{alice_user['id']}/subscribers").json()["data"] == []


def test_subscribe_to_missing_channel(client, make_user):
    _, alice = make_user("alice")
    assert client.post("/api/v1/subscriptions/999/toggle", headers=alice).status_code == 404
    assert client.get("/api/v1/subscriptions/channel/999/subscribers").status_code == 404


def test_toggle_requires_authentication(client, make_user):
    alice_user, _ = make_user("alice")
    assert client.post(f"/api/v1/subscriptions/{alice_user['id']}/toggle").status_code == 401


def test_subscribing_to_own_channel_is_allowed(client, make_user):
    alice_user, alice = make_user("alice")

    resp = client.post(f"/api/v1/subscriptions/{alice_user['id']}/toggle", headers=alice)
    assert resp.status_code == 200
    assert resp.json()["data"]["subscribed"] is True

    profile = client.get("/api/v1/users/channel/alice", headers=alice).json()["data"]
    assert profile["subscribersCount"] == 1
    assert profile["channelsSubscribedToCount"] == 1
    assert profile["isSubscribed"] is True
