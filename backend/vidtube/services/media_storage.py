"""
Multipart file staging and upload to the media host.

Incoming files are written under ``upload_tmp_dir`` and removed once the
upload finishes, whether it succeeded or not. When one request uploads
several assets and a later one fails, the earlier ones are destroyed on the
host before the error propagates.
"""
from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Protocol

from fastapi import UploadFile

from ..errors import UpstreamError
from ..integrations.media_host import MediaHostClient, UploadedMedia
from ..settings import get_settings

logger = logging.getLogger(__name__)


class MediaUploader(Protocol):
    async def upload(self, local_path: str | Path) -> UploadedMedia: ...

    async def destroy(self, public_id: str, resource_type: str = "image") -> None: ...


def get_media_uploader() -> MediaUploader:
    return MediaHostClient(get_settings())


def stage_upload(upload: UploadFile) -> Path:
    tmp_dir = Path(get_settings().upload_tmp_dir)
    tmp_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename or "").suffix
    path = tmp_dir / f"{uuid.uuid4().hex}{suffix}"
    upload.file.seek(0)
    with path.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
    return path


async def upload_file(uploader: MediaUploader, upload: UploadFile) -> UploadedMedia:
    path = stage_upload(upload)
    try:
        return await uploader.upload(path)
    finally:
        path.unlink(missing_ok=True)


async def upload_files(uploader: MediaUploader, uploads: list[UploadFile]) -> list[UploadedMedia]:
    """Upload ``uploads`` in order; on failure, roll back what was already uploaded."""
    done: list[UploadedMedia] = []
    try:
        for upload in uploads:
            done.append(await upload_file(uploader, upload))
    except UpstreamError:
        for media in done:
            try:
                await uploader.destroy(media.public_id, media.resource_type)
            except UpstreamError as exc:
                logger.warning(f"[media] could not roll back {media.public_id}: {exc.detail}")
        raise
    return done


def is_present(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)
