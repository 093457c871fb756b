from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .errors import BadRequest, NotFound
from .models import Tweet, User, Video
from .routes_auth import CurrentUser
from .schemas import ApiResponse, SortOrder, TweetCreate, TweetRead, TweetSortField, TweetUpdate, respond
from .services.ownership import commit_update, delete_owned, get_or_404, get_owned_or_404, require_text
from .services.pagination import PageParams, order_clause, page_params, paginate

router = APIRouter(prefix="/api/v1/tweets", tags=["tweets"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]

SORT_COLUMNS = {
    TweetSortField.created_at: Tweet.created_at,
    TweetSortField.updated_at: Tweet.updated_at,
}


def _with_relations(stmt):
    return stmt.options(selectinload(Tweet.owner), selectinload(Tweet.video))


async def load_tweet(session: AsyncSession, tweet_id: int) -> Tweet | None:
    res = await session.execute(
        _with_relations(select(Tweet).where(Tweet.id == tweet_id)).execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tweet(data: TweetCreate, user: CurrentUser, session: SessionDep) -> ApiResponse:
    content = require_text(data.content, "Tweet content is required")
    if data.video is not None:
        await get_or_404(session, Video, data.video, "Video")

    tweet = Tweet(content=content, video_id=data.video, owner_id=user.id)
    session.add(tweet)
    await session.commit()
    created = await load_tweet(session, tweet.id)
    return respond(TweetRead.model_validate(created), "Tweet created successfully", status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def get_user_tweets(
    user_id: int,
    session: SessionDep,
    params: PageParams = Depends(page_params),
    sort_by: TweetSortField = Query(TweetSortField.created_at, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
) -> ApiResponse:
    await get_or_404(session, User, user_id, "User")

    stmt = _with_relations(
        select(Tweet)
        .where(Tweet.owner_id == user_id)
        .order_by(order_clause(SORT_COLUMNS[sort_by], sort_order), Tweet.id.desc())
    )
    tweets, pagination = await paginate(session, stmt, params)
    return respond(
        {"tweets": [TweetRead.model_validate(t) for t in tweets], "pagination": pagination},
        "User tweets fetched successfully",
    )


@router.patch("/{tweet_id}")
async def update_tweet(tweet_id: int, data: TweetUpdate, user: CurrentUser, session: SessionDep) -> ApiResponse:
    tweet = await get_owned_or_404(session, Tweet, tweet_id, user, "Tweet", "update")

    fields = data.model_fields_set
    if "content" not in fields and "video" not in fields:
        raise BadRequest("Nothing to update: provide content or video")
    if "content" in fields:
        tweet.content = require_text(data.content, "Tweet content cannot be empty")
    if "video" in fields:
        # explicit null detaches the video
        if data.video is not None:
            await get_or_404(session, Video, data.video, "Video")
        tweet.video_id = data.video

    await commit_update(session, "Tweet")
    updated = await load_tweet(session, tweet_id)
    if updated is None:
        raise NotFound("Tweet not found")
    return respond(TweetRead.model_validate(updated), "Tweet updated successfully")


@router.delete("/{tweet_id}")
async def delete_tweet(tweet_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    tweet = await get_owned_or_404(session, Tweet, tweet_id, user, "Tweet", "delete")
    await delete_owned(session, tweet)
    return respond({}, "Tweet deleted successfully")
