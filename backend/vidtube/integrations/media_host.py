from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from ..errors import UpstreamError
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str
    resource_type: str
    duration: float | None = None


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary-style signature: sha1 of sorted ``k=v`` pairs joined by ``&`` plus the secret."""
    payload = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class MediaHostClient:
    """Upload/destroy assets on a Cloudinary-compatible media host."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or get_settings()
        self.transport = transport

    def _endpoint(self, resource_type: str, action: str) -> str:
        return self.settings.media_upload_url.format(
            cloud_name=self.settings.media_cloud_name,
            resource_type=resource_type,
            action=action,
        )

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        params["signature"] = sign_params(params, self.settings.media_api_secret or "")
        params["api_key"] = self.settings.media_api_key
        return params

    async def _post(self, url: str, data: dict[str, Any], files: dict[str, Any] | None = None) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.settings.media_timeout_sec, transport=self.transport) as client:
                resp = await client.post(url, data=data, files=files)
        except httpx.HTTPError as exc:
            logger.error(f"[media] request to {url} failed: {exc}")
            raise UpstreamError("Media host unreachable", errors=[str(exc)]) from exc

        if resp.status_code >= 400:
            logger.error(f"[media] {url} returned {resp.status_code}: {resp.text[:300]}")
            raise UpstreamError(
                "Media host rejected the request",
                errors=[{"status": resp.status_code, "body": resp.text[:300]}],
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError("Media host returned an invalid response") from exc

    async def upload(self, local_path: str | Path) -> UploadedMedia:
        if not self.settings.media_configured:
            raise UpstreamError("Media storage is not configured")
        path = Path(local_path)
        with path.open("rb") as fh:
            body = await self._post(
                self._endpoint("auto", "upload"),
                data=self._signed({}),
                files={"file": (path.name, fh)},
            )
        if not body.get("secure_url") and not body.get("url"):
            raise UpstreamError("Media host response has no url", errors=[body])
        media = UploadedMedia(
            url=body.get("secure_url") or body["url"],
            public_id=body.get("public_id", ""),
            resource_type=body.get("resource_type", "image"),
            duration=body.get("duration"),
        )
        logger.info(f"[media] uploaded {path.name} as {media.public_id} ({media.resource_type})")
        return media

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        if not self.settings.media_configured:
            raise UpstreamError("Media storage is not configured")
        await self._post(self._endpoint(resource_type, "destroy"), data=self._signed({"public_id": public_id}))
        logger.info(f"[media] destroyed {public_id} ({resource_type})")
