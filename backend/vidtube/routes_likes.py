from __future__ import annotations

from enum import Enum
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .models import Comment, Like, Tweet, Video
from .routes_auth import CurrentUser
from .schemas import ApiResponse, LikedVideo, LikeToggleResult, VideoWithOwner, respond
from .services.ownership import get_or_404
from .services.toggle import toggle_edge

router = APIRouter(prefix="/api/v1/likes", tags=["likes"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


class LikeTarget(str, Enum):
    video = "video"
    comment = "comment"
    tweet = "tweet"


TARGETS = {
    LikeTarget.video: (Video, "video_id", "Video"),
    LikeTarget.comment: (Comment, "comment_id", "Comment"),
    LikeTarget.tweet: (Tweet, "tweet_id", "Tweet"),
}


@router.post("/toggle/{target}/{target_id}")
async def toggle_like(target: LikeTarget, target_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    model, column, noun = TARGETS[target]
    await get_or_404(session, model, target_id, noun)

    result = await toggle_edge(session, Like, **{column: target_id, "liked_by_id": user.id})
    message = f"{noun} liked successfully" if result.active else f"{noun} unliked successfully"
    return respond(LikeToggleResult(liked=result.active, like_id=result.edge_id), message)


@router.get("/videos")
async def get_liked_videos(user: CurrentUser, session: SessionDep) -> ApiResponse:
    res = await session.execute(
        select(Like)
        .join(Video, Video.id == Like.video_id)
        .where(Like.liked_by_id == user.id)
        .options(selectinload(Like.video).selectinload(Video.owner))
        .order_by(Like.created_at.desc(), Like.id.desc())
    )
    videos = [
        LikedVideo(
            **VideoWithOwner.model_validate(like.video).model_dump(),
            like_id=like.id,
            liked_at=like.created_at,
        )
        for like in res.scalars().all()
    ]
    return respond(videos, "Liked videos fetched successfully")
