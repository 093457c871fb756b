"""
Channel profile and watch history reads.

Both are computed by the database in a single statement: the profile joins
the subscriptions table twice (once per side of the edge) and derives the
counts and the requester's membership flag from those join rows; the history
joins the ordered history entries to videos and their owners.
"""
from __future__ import annotations

import logging

from sqlalchemy import case, delete, distinct, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Conflict, NotFound
from ..models import Subscription, User, Video, WatchHistoryEntry
from ..schemas import ChannelProfile, HistoryOwner, HistoryVideo, VideoRead

logger = logging.getLogger(__name__)

MAX_VIEW_ATTEMPTS = 2


class SocialGraph:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_channel_profile(self, username: str, actor: User | None = None) -> ChannelProfile:
        subscribers = aliased(Subscription, name="subscribers")
        subscribed_to = aliased(Subscription, name="subscribed_to")

        if actor is not None:
            is_subscribed = func.max(case((subscribers.subscriber_id == actor.id, 1), else_=0))
        else:
            is_subscribed = func.max(0)

        stmt = (
            select(
                User.id,
                User.full_name,
                User.username,
                User.avatar,
                User.cover_image,
                User.email,
                func.count(distinct(subscribers.id)).label("subscribers_count"),
                func.count(distinct(subscribed_to.id)).label("channels_subscribed_to_count"),
                is_subscribed.label("is_subscribed"),
            )
            .outerjoin(subscribers, subscribers.channel_id == User.id)
            .outerjoin(subscribed_to, subscribed_to.subscriber_id == User.id)
            .where(func.lower(User.username) == username.strip().lower())
            .group_by(User.id, User.full_name, User.username, User.avatar, User.cover_image, User.email)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            raise NotFound("Channel does not exist")

        return ChannelProfile(
            full_name=row.full_name,
            username=row.username,
            subscribers_count=row.subscribers_count,
            channels_subscribed_to_count=row.channels_subscribed_to_count,
            is_subscribed=bool(row.is_subscribed),
            avatar=row.avatar,
            cover_image=row.cover_image or "",
            email=row.email,
        )

    async def get_watch_history(self, actor: User) -> list[HistoryVideo]:
        stmt = (
            select(Video, User.full_name, User.username, User.avatar)
            .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
            .outerjoin(User, User.id == Video.owner_id)
            .where(WatchHistoryEntry.user_id == actor.id)
            .order_by(WatchHistoryEntry.position.asc())
        )
        rows = (await self.session.execute(stmt)).all()

        items: list[HistoryVideo] = []
        for video, full_name, username, avatar in rows:
            owner = None
            if username is not None:
                owner = HistoryOwner(full_name=full_name, username=username, avatar=avatar)
            items.append(HistoryVideo(**VideoRead.model_validate(video).model_dump(), owner=owner))
        return items

    async def record_view(self, video: Video, actor: User | None = None) -> None:
        """Count a view and move the video to the end of the viewer's history.

        A concurrent view of the same video by the same viewer can insert the
        history entry first; the unique constraint then rejects ours, and the
        whole view is replayed once on top of the winner's entry.
        """
        # rollback expires loaded instances, keep plain ids
        video_id = video.id
        actor_id = actor.id if actor is not None else None

        for attempt in range(1, MAX_VIEW_ATTEMPTS + 1):
            await self.session.execute(
                update(Video).where(Video.id == video_id).values(views=Video.views + 1)
            )
            if actor_id is not None:
                await self.session.execute(
                    delete(WatchHistoryEntry).where(
                        WatchHistoryEntry.user_id == actor_id,
                        WatchHistoryEntry.video_id == video_id,
                    )
                )
                last = await self.session.scalar(
                    select(func.max(WatchHistoryEntry.position)).where(WatchHistoryEntry.user_id == actor_id)
                )
                self.session.add(
                    WatchHistoryEntry(user_id=actor_id, video_id=video_id, position=(last or 0) + 1)
                )
            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                logger.info(f"[history] video {video_id} for user {actor_id} raced (attempt {attempt}), replaying")
                continue
            logger.debug(f"[history] video {video_id} viewed by {actor_id or 'anonymous'}")
            return

        raise Conflict("Concurrent view of this video, please retry")
