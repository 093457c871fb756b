from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .errors import BadRequest, Conflict, NotFound
from .models import Playlist, PlaylistVideo, User, Video
from .routes_auth import CurrentUser
from .schemas import (
    ApiResponse,
    OwnerSummary,
    PlaylistCreate,
    PlaylistRead,
    PlaylistSortField,
    PlaylistUpdate,
    SortOrder,
    VideoWithOwner,
    respond,
)
from .services.ownership import commit_update, delete_owned, get_or_404, get_owned_or_404, require_text
from .services.pagination import PageParams, order_clause, page_params, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/playlists", tags=["playlists"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]

SORT_COLUMNS = {
    PlaylistSortField.created_at: Playlist.created_at,
    PlaylistSortField.updated_at: Playlist.updated_at,
    PlaylistSortField.name: Playlist.name,
}


def _with_relations(stmt):
    return stmt.options(
        selectinload(Playlist.owner),
        selectinload(Playlist.entries).selectinload(PlaylistVideo.video).selectinload(Video.owner),
    )


async def load_playlist(session: AsyncSession, playlist_id: int) -> Playlist | None:
    res = await session.execute(
        _with_relations(select(Playlist).where(Playlist.id == playlist_id)).execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


def serialize_playlist(playlist: Playlist) -> PlaylistRead:
    """Entries whose video no longer exists are left out."""
    return PlaylistRead(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        owner_id=playlist.owner_id,
        owner=OwnerSummary.model_validate(playlist.owner) if playlist.owner else None,
        videos=[VideoWithOwner.model_validate(entry.video) for entry in playlist.entries if entry.video is not None],
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
    )


async def _name_taken(session: AsyncSession, owner_id: int, name: str, exclude_id: int | None = None) -> bool:
    stmt = select(Playlist.id).where(Playlist.owner_id == owner_id, Playlist.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Playlist.id != exclude_id)
    return await session.scalar(stmt) is not None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_playlist(data: PlaylistCreate, user: CurrentUser, session: SessionDep) -> ApiResponse:
    name = require_text(data.name, "Playlist name is required")
    if await _name_taken(session, user.id, name):
        raise Conflict("Playlist with this name already exists")

    playlist = Playlist(name=name, description=data.description or "", owner_id=user.id)
    session.add(playlist)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Playlist with this name already exists") from exc

    created = await load_playlist(session, playlist.id)
    logger.info(f"[playlists] user {user.id} created playlist {playlist.id}")
    return respond(serialize_playlist(created), "Playlist created successfully", status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def get_user_playlists(
    user_id: int,
    session: SessionDep,
    params: PageParams = Depends(page_params),
    sort_by: PlaylistSortField = Query(PlaylistSortField.created_at, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
) -> ApiResponse:
    await get_or_404(session, User, user_id, "User")

    stmt = _with_relations(
        select(Playlist)
        .where(Playlist.owner_id == user_id)
        .order_by(order_clause(SORT_COLUMNS[sort_by], sort_order), Playlist.id.desc())
    )
    playlists, pagination = await paginate(session, stmt, params)
    return respond(
        {"playlists": [serialize_playlist(p) for p in playlists], "pagination": pagination},
        "User playlists fetched successfully",
    )


@router.get("/{playlist_id}")
async def get_playlist_by_id(playlist_id: int, session: SessionDep) -> ApiResponse:
    playlist = await load_playlist(session, playlist_id)
    if playlist is None:
        raise NotFound("Playlist not found")
    return respond(serialize_playlist(playlist), "Playlist fetched successfully")


@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(video_id: int, playlist_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    await get_owned_or_404(session, Playlist, playlist_id, user, "Playlist", "add videos to")
    await get_or_404(session, Video, video_id, "Video")

    present = await session.scalar(
        select(PlaylistVideo.id).where(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
    )
    if present is not None:
        raise Conflict("Video is already in this playlist")

    last = await session.scalar(
        select(func.max(PlaylistVideo.position)).where(PlaylistVideo.playlist_id == playlist_id)
    )
    session.add(PlaylistVideo(playlist_id=playlist_id, video_id=video_id, position=(last or 0) + 1))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Video is already in this playlist") from exc

    updated = await load_playlist(session, playlist_id)
    if updated is None:
        raise NotFound("Playlist not found")
    return respond(serialize_playlist(updated), "Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(
    video_id: int, playlist_id: int, user: CurrentUser, session: SessionDep
) -> ApiResponse:
    await get_owned_or_404(session, Playlist, playlist_id, user, "Playlist", "remove videos from")

    res = await session.execute(
        delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
    )
    if res.rowcount == 0:
        await session.rollback()
        raise NotFound("Video is not in this playlist")
    await session.commit()

    updated = await load_playlist(session, playlist_id)
    if updated is None:
        raise NotFound("Playlist not found")
    return respond(serialize_playlist(updated), "Video removed from playlist successfully")


@router.patch("/{playlist_id}")
async def update_playlist(playlist_id: int, data: PlaylistUpdate, user: CurrentUser, session: SessionDep) -> ApiResponse:
    playlist = await get_owned_or_404(session, Playlist, playlist_id, user, "Playlist", "update")

    fields = data.model_fields_set
    if not fields:
        raise BadRequest("At least one field (name or description) is required for update")
    if "name" in fields:
        name = require_text(data.name, "Playlist name cannot be empty")
        if name != playlist.name and await _name_taken(session, user.id, name, exclude_id=playlist_id):
            raise Conflict("Playlist with this name already exists")
        playlist.name = name
    if "description" in fields:
        playlist.description = data.description or ""

    try:
        await commit_update(session, "Playlist")
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Playlist with this name already exists") from exc

    updated = await load_playlist(session, playlist_id)
    if updated is None:
        raise NotFound("Playlist not found")
    return respond(serialize_playlist(updated), "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist(playlist_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    playlist = await get_owned_or_404(session, Playlist, playlist_id, user, "Playlist", "delete")
    await session.execute(delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id))
    await delete_owned(session, playlist)
    return respond({}, "Playlist deleted successfully")
