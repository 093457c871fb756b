def test_comment_lifecycle(client, make_user, make_video):
    _, alice = make_user("alice")
    bob_user, bob = make_user("bob")
    video = make_video(alice)

    created = client.post(f"/api/v1/comments/{video['id']}", headers=bob, json={"content": "  Nice one  "})
    assert created.status_code == 201
    comment = created.json()["data"]
    assert comment["content"] == "Nice one"
    assert comment["owner"]["username"] == bob_user["username"]

    listing = client.get(f"/api/v1/comments/{video['id']}").json()["data"]
    assert [c["id"] for c in listing["comments"]] == [comment["id"]]
    assert listing["pagination"]["total"] == 1

    assert client.patch(f"/api/v1/comments/c/{comment['id']}", headers=alice, json={"content": "x"}).status_code == 403
    updated = client.patch(f"/api/v1/comments/c/{comment['id']}", headers=bob, json={"content": "Edited"})
    assert updated.status_code == 200
    assert updated.json()["data"]["content"] == "Edited"

    assert client.delete(f"/api/v1/comments/c/{comment['id']}", headers=alice).status_code == 403
    assert client.delete(f"/api/v1/comments/c/{comment['id']}", headers=bob).status_code == 200
    assert client.get(f"/api/v1/comments/{video['id']}").json()["data"]["comments"] == []


def test_comment_requires_content_and_video(client, make_user, make_video):
    _, alice = make_user("alice")
    video = make_video(alice)

    assert client.post(f"/api/v1/comments/{video['id']}", headers=alice, json={"content": "   "}).status_code == 400
    assert client.post(f"/api/v1/comments/{video['id']}", headers=alice, json={}).status_code == 400
    assert client.post("/api/v1/comments/999", headers=alice, json={"content": "hi"}).status_code == 404
    assert client.get("/api/v1/comments/999").status_code == 404


def test_comments_are_removed_with_their_video(client, make_user, make_video):
    _, alice = make_user("alice")
    video = make_video(alice)
    client.post(f"/api/v1/comments/{video['id']}", headers=alice, json={"content": "first"})

    client.delete(f"/api/v1/videos/{video['id']}", headers=alice)
    assert client.get(f"/api/v1/comments/{video['id']}").status_code == 404


def test_tweet_lifecycle(client, make_user, make_video):
    alice_user, alice = make_user("alice")
    _, bob = make_user("bob")
    video = make_video(alice)

    created = client.post("/api/v1/tweets", headers=alice, json={"content": "Watch this", "video": video["id"]})
    assert created.status_code == 201
    tweet = created.json()["data"]
    assert tweet["videoId"] == video["id"]
    assert tweet["video"]["title"] == video["title"]

    assert client.patch(f"/api/v1/tweets/{tweet['id']}", headers=bob, json={"content": "hijack"}).status_code == 403

    detached = client.patch(f"/api/v1/tweets/{tweet['id']}", headers=alice, json={"video": None})
    assert detached.status_code == 200
    assert detached.json()["data"]["videoId"] is None
    assert detached.json()["data"]["content"] == "Watch this"

    listing = client.get(f"/api/v1/tweets/user/{alice_user['id']}").json()["data"]
    assert [t["id"] for t in listing["tweets"]] == [tweet["id"]]

    assert client.delete(f"/api/v1/tweets/{tweet['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/v1/tweets/user/{alice_user['id']}").json()["data"]["tweets"] == []


def test_tweet_validation(client, make_user):
    _, alice = make_user("alice")

    assert client.post("/api/v1/tweets", headers=alice, json={"content": " "}).status_code == 400
    assert client.post("/api/v1/tweets", headers=alice, json={"content": "hi", "video": 999}).status_code == 404

    tweet = client.post("/api/v1/tweets", headers=alice, json={"content": "hi"}).json()["data"]
    assert client.patch(f"/api/v1/tweets/{tweet['id']}", headers=alice, json={}).status_code == 400
    assert client.patch(f"/api/v1/tweets/{tweet['id']}", headers=alice, json={"content": ""}).status_code == 400
    assert client.patch("/api/v1/tweets/999", headers=alice, json={"content": "x"}).status_code == 404
    assert client.get("/api/v1/tweets/user/999").status_code == 404


def test_tweet_survives_video_deletion(client, make_user, make_video):
    alice_user, alice = make_user("alice")
    video = make_video(alice)
    client.post("/api/v1/tweets", headers=alice, json={"content": "linked", "video": video["id"]})

    client.delete(f"/api/v1/videos/{video['id']}", headers=alice)
    tweets = client.get(f"/api/v1/tweets/user/{alice_user['id']}").json()["data"]["tweets"]
    assert len(tweets) == 1
    assert tweets[0]["videoId"] is None
