from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .errors import BadRequest, NotFound
from .models import Video
from .routes_auth import CurrentUser, OptionalUser
from .schemas import ApiResponse, SortOrder, VideoRead, VideoSortField, VideoWithOwner, respond
from .services.media_storage import MediaUploader, get_media_uploader, is_present, upload_file, upload_files
from .services.ownership import commit_update, delete_owned, get_owned_or_404
from .services.pagination import PageParams, order_clause, page_params, paginate
from .services.social_graph import SocialGraph

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]
UploaderDep = Annotated[MediaUploader, Depends(get_media_uploader)]

SORT_COLUMNS = {
    VideoSortField.created_at: Video.created_at,
    VideoSortField.updated_at: Video.updated_at,
    VideoSortField.views: Video.views,
    VideoSortField.title: Video.title,
    VideoSortField.duration: Video.duration,
}


async def load_video(session: AsyncSession, video_id: int) -> Video | None:
    res = await session.execute(
        select(Video)
        .where(Video.id == video_id)
        .options(selectinload(Video.owner))
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


@router.get("")
async def get_all_videos(
    session: SessionDep,
    params: PageParams = Depends(page_params),
    query: str | None = Query(None, description="Case-insensitive match on title or description"),
    sort_by: VideoSortField = Query(VideoSortField.created_at, alias="sortBy"),
    sort_type: SortOrder = Query(SortOrder.desc, alias="sortType"),
    user_id: int | None = Query(None, alias="userId"),
) -> ApiResponse:
    stmt = select(Video).where(Video.is_published.is_(True)).options(selectinload(Video.owner))
    if query and query.strip():
        pattern = f"%{query.strip().lower()}%"
        stmt = stmt.where(or_(Video.title.ilike(pattern), Video.description.ilike(pattern)))
    if user_id is not None:
        stmt = stmt.where(Video.owner_id == user_id)
    stmt = stmt.order_by(order_clause(SORT_COLUMNS[sort_by], sort_type), Video.id.desc())

    videos, pagination = await paginate(session, stmt, params)
    return respond(
        {"videos": [VideoWithOwner.model_validate(v) for v in videos], "pagination": pagination},
        "Videos fetched successfully",
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def publish_a_video(
    user: CurrentUser,
    session: SessionDep,
    uploader: UploaderDep,
    title: str = Form(...),
    description: str = Form(...),
    video_file: UploadFile | None = File(default=None, alias="videoFile"),
    thumbnail: UploadFile | None = File(default=None),
) -> ApiResponse:
    if not title.strip() or not description.strip():
        raise BadRequest("Title and description are required")
    if not is_present(video_file):
        raise BadRequest("Video file is required")
    if not is_present(thumbnail):
        raise BadRequest("Thumbnail is required")

    uploaded_video, uploaded_thumb = await upload_files(uploader, [video_file, thumbnail])

    video = Video(
        title=title.strip(),
        description=description.strip(),
        video_file=uploaded_video.url,
        thumbnail=uploaded_thumb.url,
        duration=uploaded_video.duration or 0,
        owner_id=user.id,
    )
    session.add(video)
    await session.commit()
    created = await load_video(session, video.id)

    logger.info(f"[videos] user {user.id} published video {video.id}")
    return respond(VideoWithOwner.model_validate(created), "Video published successfully", status.HTTP_201_CREATED)


@router.get("/{video_id}")
async def get_video_by_id(video_id: int, session: SessionDep, actor: OptionalUser) -> ApiResponse:
    video = await load_video(session, video_id)
    if video is None:
        raise NotFound("Video not found")
    if not video.is_published and (actor is None or actor.id != video.owner_id):
        raise NotFound("Video not found")

    await SocialGraph(session).record_view(video, actor)
    video = await load_video(session, video_id)
    if video is None:
        raise NotFound("Video not found")
    return respond(VideoWithOwner.model_validate(video), "Video fetched successfully")


@router.patch("/{video_id}")
async def update_video(
    video_id: int,
    user: CurrentUser,
    session: SessionDep,
    uploader: UploaderDep,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    thumbnail: UploadFile | None = File(default=None),
) -> ApiResponse:
    video = await get_owned_or_404(session, Video, video_id, user, "Video", "update")

    has_thumbnail = is_present(thumbnail)
    if title is not None and not title.strip():
        raise BadRequest("Title cannot be empty")
    if description is not None and not description.strip():
        raise BadRequest("Description cannot be empty")
    if not (title or description or has_thumbnail):
        raise BadRequest("At least one of title, description or thumbnail is required")

    if title:
        video.title = title.strip()
    if description:
        video.description = description.strip()
    if has_thumbnail:
        media = await upload_file(uploader, thumbnail)
        video.thumbnail = media.url

    await commit_update(session, "Video")
    updated = await load_video(session, video_id)
    if updated is None:
        raise NotFound("Video not found")
    return respond(VideoWithOwner.model_validate(updated), "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(video_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    video = await get_owned_or_404(session, Video, video_id, user, "Video", "delete")
    await delete_owned(session, video)
    logger.info(f"[videos] user {user.id} deleted video {video_id}")
    return respond({}, "Video deleted successfully")


@router.patch("/{video_id}/toggle-publish")
async def toggle_publish_status(video_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    video = await get_owned_or_404(session, Video, video_id, user, "Video", "update")
    video.is_published = not video.is_published
    await commit_update(session, "Video")
    updated = await load_video(session, video_id)
    if updated is None:
        raise NotFound("Video not found")
    state = "published" if updated.is_published else "unpublished"
    return respond(VideoRead.model_validate(updated), f"Video publish status toggled to {state}")
