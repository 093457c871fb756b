import asyncio
import hashlib

import httpx
import pytest

from vidtube.errors import UpstreamError
from vidtube.integrations.media_host import MediaHostClient, sign_params
from vidtube.services.security import (
    InvalidToken,
    hash_password,
    issue_access_token,
    issue_refresh_token,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)
from vidtube.settings import Settings, get_settings


def test_password_hash_roundtrip():
    hashed = hash_password("hunter2")
    assert hashed != "hunter2"
    assert verify_password("hunter2", hashed)
    assert not verify_password("hunter3", hashed)


def test_verify_password_rejects_non_hash():
    assert verify_password("plain", "plain") is False


def test_access_token_carries_identity():
    payload = verify_access_token(issue_access_token(7, "alice", "alice@example.com"))
    assert payload["sub"] == 7
    assert payload["username"] == "alice"


def test_refresh_token_is_not_an_access_token():
    token = issue_refresh_token(7)
    assert verify_refresh_token(token)["sub"] == 7
    with pytest.raises(InvalidToken):
        verify_access_token(token)


def test_refresh_tokens_are_unique():
    assert issue_refresh_token(1) != issue_refresh_token(1)


def test_tampered_token_is_rejected():
    token = issue_access_token(1, "a", "a@example.com")
    with pytest.raises(InvalidToken):
        verify_access_token(token[:-2] + "xx")


def test_sign_params_sorts_and_skips_empty_values():
    expected = hashlib.sha1(b"public_id=abc&timestamp=100secret").hexdigest()
    assert sign_params({"timestamp": 100, "public_id": "abc", "folder": ""}, "secret") == expected


def _media_settings(**overrides) -> Settings:
    values = {
        "media_cloud_name": "demo",
        "media_api_key": "key",
        "media_api_secret": "secret",
    }
    values.update(overrides)
    return get_settings().model_copy(update=values)


def test_upload_parses_host_response(tmp_path):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(
            200,
            json={
                "secure_url": "https://cdn.test/clip.mp4",
                "public_id": "clip",
                "resource_type": "video",
                "duration": 4.2,
            },
        )

    local = tmp_path / "clip.mp4"
    local.write_bytes(b"clip-bytes")
    client = MediaHostClient(_media_settings(), transport=httpx.MockTransport(handler))

    media = asyncio.run(client.upload(local))

    assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
    assert b"clip-bytes" in seen["body"]
    assert b"filename=\"clip.mp4\"" in seen["body"]
    assert media.url == "https://cdn.test/clip.mp4"
    assert media.resource_type == "video"
    assert media.duration == 4.2


def test_upload_error_status_raises_upstream(tmp_path):
    local = tmp_path / "clip.mp4"
    local.write_bytes(b"data")
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    client = MediaHostClient(_media_settings(), transport=transport)

    with pytest.raises(UpstreamError):
        asyncio.run(client.upload(local))


def test_upload_requires_configuration(tmp_path):
    local = tmp_path / "clip.mp4"
    local.write_bytes(b"data")
    client = MediaHostClient(_media_settings(media_api_secret=None))

    with pytest.raises(UpstreamError):
        asyncio.run(client.upload(local))
