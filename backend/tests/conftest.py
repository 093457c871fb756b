from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

# settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("UPLOAD_TMP_DIR", tempfile.mkdtemp(prefix="vidtube-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from vidtube import models  # noqa: F401
from vidtube.db import Base, get_session
from vidtube.errors import UpstreamError
from vidtube.integrations.media_host import UploadedMedia
from vidtube.main import app
from vidtube.services.media_storage import get_media_uploader

PASSWORD = "s3cret-pass"


class FakeUploader:
    """In-memory stand-in for the media host client."""

    def __init__(self):
        self.uploaded: list[UploadedMedia] = []
        self.destroyed: list[str] = []
        self.fail_after: int | None = None

    async def upload(self, local_path):
        path = Path(local_path)
        assert path.exists(), "upload must receive a staged file"
        if self.fail_after is not None and len(self.uploaded) >= self.fail_after:
            raise UpstreamError("Media host rejected the request")
        is_video = path.suffix == ".mp4"
        media = UploadedMedia(
            url=f"https://media.test/{path.name}",
            public_id=f"asset{len(self.uploaded) + 1}",
            resource_type="video" if is_video else "image",
            duration=12.5 if is_video else None,
        )
        self.uploaded.append(media)
        return media

    async def destroy(self, public_id, resource_type="image"):
        self.destroyed.append(public_id)


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async def _create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory, uploader):
    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_media_uploader] = lambda: uploader
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def register(client: TestClient, username: str, cover: bool = False, **overrides):
    data = {
        "fullName": f"{username.title()} Tester",
        "email": f"{username}@example.com",
        "username": username,
        "password": PASSWORD,
    }
    data.update(overrides)
    files = {"avatar": ("avatar.png", b"png-bytes", "image/png")}
    if cover:
        files["coverImage"] = ("cover.png", b"cover-bytes", "image/png")
    return client.post("/api/v1/users/register", data=data, files=files)


def login(client: TestClient, username: str, password: str = PASSWORD):
    return client.post("/api/v1/users/login", json={"username": username, "password": password})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register and log in a user; returns (user, auth headers)."""

    def _make(username: str):
        resp = register(client, username)
        assert resp.status_code == 201, resp.text
        session = login(client, username).json()["data"]
        return session["user"], bearer(session["accessToken"])

    return _make


@pytest.fixture
def make_video(client):
    def _make(headers: dict[str, str], title: str = "First video", description: str = "A description"):
        resp = client.post(
            "/api/v1/videos",
            headers=headers,
            data={"title": title, "description": description},
            files={
                "videoFile": ("clip.mp4", b"video-bytes", "video/mp4"),
                "thumbnail": ("thumb.png", b"thumb-bytes", "image/png"),
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make
