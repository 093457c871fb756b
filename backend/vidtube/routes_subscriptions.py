from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .models import Subscription, User
from .routes_auth import CurrentUser
from .schemas import ApiResponse, SubscriptionRead, SubscriptionToggleResult, respond
from .services.ownership import get_or_404
from .services.toggle import toggle_edge

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


@router.post("/{channel_id}/toggle")
async def toggle_subscription(channel_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    # subscribing to your own channel is allowed
    channel = await get_or_404(session, User, channel_id, "Channel")
    channel_name = channel.username

    result = await toggle_edge(session, Subscription, subscriber_id=user.id, channel_id=channel_id)
    message = f"Subscribed to channel {channel_name}" if result.active else f"Unsubscribed from channel {channel_name}"
    return respond(SubscriptionToggleResult(subscribed=result.active, channel_id=channel_id), message)


@router.get("/channel/{channel_id}/subscribers")
async def get_user_channel_subscribers(channel_id: int, session: SessionDep) -> ApiResponse:
    await get_or_404(session, User, channel_id, "Channel")
    res = await session.execute(
        select(Subscription)
        .where(Subscription.channel_id == channel_id)
        .options(selectinload(Subscription.subscriber), selectinload(Subscription.channel))
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )
    subscribers = [SubscriptionRead.model_validate(sub) for sub in res.scalars().all()]
    return respond(subscribers, "Channel subscribers fetched successfully")


@router.get("/user/{subscriber_id}/channels")
async def get_subscribed_channels(subscriber_id: int, session: SessionDep) -> ApiResponse:
    await get_or_404(session, User, subscriber_id, "User")
    res = await session.execute(
        select(Subscription)
        .where(Subscription.subscriber_id == subscriber_id)
        .options(selectinload(Subscription.subscriber), selectinload(Subscription.channel))
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )
    channels = [SubscriptionRead.model_validate(sub) for sub in res.scalars().all()]
    return respond(channels, "Subscribed channels fetched successfully")
