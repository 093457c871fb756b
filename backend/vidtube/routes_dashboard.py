"""
Creator dashboard: aggregate statistics for the caller's own channel.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import Comment, Like, Subscription, Video
from .routes_auth import CurrentUser
from .schemas import (
    ApiResponse,
    ChannelStats,
    ChannelVideo,
    ChannelVideoSortField,
    MostViewedVideo,
    SortOrder,
    VideoRead,
    respond,
)
from .services.pagination import PageParams, order_clause, page_params, paginate

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]

RECENT_DAYS = 30

SORT_COLUMNS = {
    ChannelVideoSortField.created_at: Video.created_at,
    ChannelVideoSortField.updated_at: Video.updated_at,
    ChannelVideoSortField.views: Video.views,
    ChannelVideoSortField.title: Video.title,
}


@router.get("/stats")
async def get_channel_stats(user: CurrentUser, session: SessionDep) -> ApiResponse:
    """Get totals for the caller's channel plus the last 30 days."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=RECENT_DAYS)

    totals = (
        await session.execute(
            select(func.count(Video.id), func.coalesce(func.sum(Video.views), 0)).where(Video.owner_id == user.id)
        )
    ).one()
    total_videos, total_views = totals[0], int(totals[1])

    recent = (
        await session.execute(
            select(func.count(Video.id), func.coalesce(func.sum(Video.views), 0)).where(
                Video.owner_id == user.id, Video.created_at >= cutoff
            )
        )
    ).one()
    recent_videos, recent_views = recent[0], int(recent[1])

    total_subscribers = await session.scalar(
        select(func.count(Subscription.id)).where(Subscription.channel_id == user.id)
    )

    # Likes received on the caller's videos
    total_likes = await session.scalar(
        select(func.count(Like.id)).join(Video, Video.id == Like.video_id).where(Video.owner_id == user.id)
    )

    most_viewed = await session.scalar(
        select(Video).where(Video.owner_id == user.id).order_by(Video.views.desc(), Video.id.asc()).limit(1)
    )

    average_views = round(total_views / total_videos) if total_videos > 0 else 0

    stats = ChannelStats(
        total_videos=total_videos,
        total_views=total_views,
        total_subscribers=total_subscribers or 0,
        total_likes=total_likes or 0,
        recent_videos=recent_videos,
        recent_views=recent_views,
        average_views=average_views,
        most_viewed_video=MostViewedVideo.model_validate(most_viewed) if most_viewed else None,
    )
    return respond(stats, "Channel stats fetched successfully")


@router.get("/videos")
async def get_channel_videos(
    user: CurrentUser,
    session: SessionDep,
    params: PageParams = Depends(page_params),
    sort_by: ChannelVideoSortField = Query(ChannelVideoSortField.created_at, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
) -> ApiResponse:
    """Get the caller's videos (published or not) with like and comment counts."""
    likes_count = (
        select(func.count(Like.id)).where(Like.video_id == Video.id).correlate(Video).scalar_subquery()
    )
    comments_count = (
        select(func.count(Comment.id)).where(Comment.video_id == Video.id).correlate(Video).scalar_subquery()
    )
    stmt = (
        select(Video, likes_count.label("likes_count"), comments_count.label("comments_count"))
        .where(Video.owner_id == user.id)
        .order_by(order_clause(SORT_COLUMNS[sort_by], sort_order), Video.id.desc())
    )

    rows, pagination = await paginate(session, stmt, params)
    videos = [
        ChannelVideo(
            **VideoRead.model_validate(row.Video).model_dump(),
            likes_count=row.likes_count,
            comments_count=row.comments_count,
        )
        for row in rows
    ]
    return respond(
        {
            "videos": videos,
            "pagination": pagination,
            "sortInfo": {"sortBy": sort_by.value, "sortOrder": sort_order.value},
        },
        "Channel videos fetched successfully",
    )
