#!/usr/bin/env python3
"""
Smoke E2E test: walks the main API flows against a running server.

Registers two throwaway users, publishes a video through the configured
media host, then exercises subscriptions, likes, comments, playlists,
the channel profile, watch history and the dashboard.

Env vars:
  BASE_URL       (default http://localhost:8000)
  SAMPLE_VIDEO   (optional path to a small .mp4; a few dummy bytes otherwise)
  TIMEOUT_SEC    (default 120)
"""
from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import httpx

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000").rstrip("/")
SAMPLE_VIDEO = os.environ.get("SAMPLE_VIDEO", "")
TIMEOUT_SEC = int(os.environ.get("TIMEOUT_SEC", "120"))

SMOKE_TAG = f"smoke{int(time.time())}"
PASSWORD = "smoke-password"

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000100e221bc330000000049454e44ae426082"
)

# ── Helpers ──────────────────────────────────────────────────

class SmokeError(Exception):
    pass


client = httpx.Client(base_url=BASE_URL, timeout=TIMEOUT_SEC)


def _req(method: str, path: str, token: str | None = None, expect: int = 200, **kwargs) -> dict:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    try:
        resp = client.request(method, f"/api/v1{path}", headers=headers, **kwargs)
    except httpx.HTTPError as e:
        raise SmokeError(f"{method} {path} → {type(e).__name__}: {e}")
    body = resp.json() if resp.content else {}
    if resp.status_code != expect:
        raise SmokeError(f"{method} {path} → {resp.status_code} (expected {expect}): {resp.text[:500]}")
    return body.get("data", body)


def step(name: str):
    print(f"\n{'='*60}")
    print(f"  STEP: {name}")
    print(f"{'='*60}")


def ok(msg: str):
    print(f"  ✅ {msg}")


def fail(msg: str):
    print(f"  ❌ {msg}")
    raise SmokeError(msg)


# ── Steps ────────────────────────────────────────────────────

def step1_health():
    step("1. Health check")
    try:
        resp = client.get("/ping")
    except httpx.HTTPError as e:
        fail(f"Server unreachable: {e}")
    if resp.status_code != 200:
        fail(f"/ping returned {resp.status_code}")
    ok("Server is up")


def step2_register(name: str) -> tuple[dict, str]:
    step(f"2. Register + login {name}")
    username = f"{name}_{SMOKE_TAG}"
    user = _req(
        "POST",
        "/users/register",
        expect=201,
        data={
            "fullName": f"Smoke {name.title()}",
            "email": f"{username}@example.com",
            "username": username,
            "password": PASSWORD,
        },
        files={"avatar": ("avatar.png", PNG_BYTES, "image/png")},
    )
    ok(f"User #{user['id']} registered ({user['username']})")

    session = _req("POST", "/users/login", json={"username": username, "password": PASSWORD})
    ok("Logged in, access token issued")
    return user, session["accessToken"]


def step3_publish(token: str) -> dict:
    step("3. Publish video")
    video_bytes = Path(SAMPLE_VIDEO).read_bytes() if SAMPLE_VIDEO else b"\x00" * 1024
    video = _req(
        "POST",
        "/videos",
        token=token,
        expect=201,
        data={"title": f"Smoke video {SMOKE_TAG}", "description": "Uploaded by the smoke test"},
        files={
            "videoFile": ("sample.mp4", video_bytes, "video/mp4"),
            "thumbnail": ("thumb.png", PNG_BYTES, "image/png"),
        },
    )
    ok(f"Video #{video['id']} published (duration={video['duration']})")
    return video


def step4_social(channel: dict, channel_token: str, viewer_token: str, video: dict):
    step("4. Subscribe, like, comment")
    sub = _req("POST", f"/subscriptions/{channel['id']}/toggle", token=viewer_token)
    if not sub["subscribed"]:
        fail("Subscription toggle did not subscribe")
    ok("Viewer subscribed to channel")

    like = _req("POST", f"/likes/toggle/video/{video['id']}", token=viewer_token)
    if not like["liked"]:
        fail("Like toggle did not like")
    ok(f"Video liked (like #{like['likeId']})")

    comment = _req("POST", f"/comments/{video['id']}", token=viewer_token, expect=201, json={"content": "Smoke comment"})
    ok(f"Comment #{comment['id']} added")

    _req("PATCH", f"/comments/c/{comment['id']}", token=channel_token, expect=403, json={"content": "hijack"})
    ok("Channel owner cannot edit viewer's comment (403)")


def step5_playlist(token: str, video: dict):
    step("5. Playlist membership")
    playlist = _req("POST", "/playlists", token=token, expect=201, json={"name": f"Favorites {SMOKE_TAG}"})
    _req("PATCH", f"/playlists/add/{video['id']}/{playlist['id']}", token=token)
    _req("PATCH", f"/playlists/add/{video['id']}/{playlist['id']}", token=token, expect=409)
    current = _req("GET", f"/playlists/{playlist['id']}")
    if [v["id"] for v in current["videos"]] != [video["id"]]:
        fail(f"Unexpected playlist contents: {current['videos']}")
    ok(f"Playlist #{playlist['id']} holds the video exactly once")


def step6_profile_and_history(channel: dict, viewer_token: str, video: dict):
    step("6. Channel profile + watch history")
    _req("GET", f"/videos/{video['id']}", token=viewer_token)
    profile = _req("GET", f"/users/channel/{channel['username']}", token=viewer_token)
    if profile["subscribersCount"] != 1 or not profile["isSubscribed"]:
        fail(f"Unexpected profile: {profile}")
    ok(f"Profile: {profile['subscribersCount']} subscriber(s), isSubscribed={profile['isSubscribed']}")

    history = _req("GET", "/users/history", token=viewer_token)
    if [v["id"] for v in history] != [video["id"]]:
        fail(f"Unexpected history: {history}")
    ok("Watch history records the view")


def step7_dashboard(channel_token: str):
    step("7. Dashboard")
    stats = _req("GET", "/dashboard/stats", token=channel_token)
    ok(
        f"videos={stats['totalVideos']} views={stats['totalViews']} "
        f"likes={stats['totalLikes']} subscribers={stats['totalSubscribers']}"
    )


def step8_cleanup(channel_token: str, video: dict):
    step("8. Cleanup")
    _req("DELETE", f"/videos/{video['id']}", token=channel_token)
    _req("GET", f"/videos/{video['id']}", expect=404)
    ok(f"Video #{video['id']} deleted")


def main():
    print(f"\n🔬 Smoke E2E Test — {BASE_URL}")
    print(f"   SAMPLE_VIDEO={SAMPLE_VIDEO or 'dummy bytes'}  TIMEOUT={TIMEOUT_SEC}s\n")

    try:
        step1_health()
        channel, channel_token = step2_register("channel")
        _, viewer_token = step2_register("viewer")
        video = step3_publish(channel_token)
        step4_social(channel, channel_token, viewer_token, video)
        step5_playlist(channel_token, video)
        step6_profile_and_history(channel, viewer_token, video)
        step7_dashboard(channel_token)
        step8_cleanup(channel_token, video)

        print(f"\n{'='*60}")
        print("  ✅ PASS")
        print(f"{'='*60}\n")
    except SmokeError as e:
        print(f"\n{'='*60}")
        print(f"  ❌ FAIL: {e}")
        print(f"{'='*60}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n  ⏹ Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
