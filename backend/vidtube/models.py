from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(sa.String(64), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(sa.String(255), nullable=False, index=True)
    avatar: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    cover_image: Mapped[str] = mapped_column(sa.String(1024), nullable=False, server_default="")
    password: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    videos: Mapped[list["Video"]] = relationship(back_populates="owner", passive_deletes=True)
    history: Mapped[list["WatchHistoryEntry"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WatchHistoryEntry.position",
    )


class Video(TimestampMixin, Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    video_file: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    thumbnail: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    duration: Mapped[float] = mapped_column(sa.Float(), nullable=False, server_default="0")
    views: Mapped[int] = mapped_column(sa.BigInteger(), nullable=False, server_default="0")
    is_published: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.true())
    owner_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    owner: Mapped[User | None] = relationship(back_populates="videos")


class WatchHistoryEntry(Base):
    __tablename__ = "watch_history"
    __table_args__ = (sa.UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id: Mapped[int] = mapped_column(sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    watched_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    user: Mapped[User] = relationship(back_populates="history")


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    video_id: Mapped[int] = mapped_column(sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    owner: Mapped[User | None] = relationship()
    video: Mapped[Video | None] = relationship()


class Tweet(TimestampMixin, Base):
    __tablename__ = "tweets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    video_id: Mapped[int | None] = mapped_column(sa.ForeignKey("videos.id", ondelete="SET NULL"), nullable=True)
    owner_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    owner: Mapped[User | None] = relationship()
    video: Mapped[Video | None] = relationship()


class Like(TimestampMixin, Base):
    __tablename__ = "likes"
    __table_args__ = (
        sa.UniqueConstraint("liked_by_id", "video_id", name="uq_likes_liked_by_video"),
        sa.UniqueConstraint("liked_by_id", "comment_id", name="uq_likes_liked_by_comment"),
        sa.UniqueConstraint("liked_by_id", "tweet_id", name="uq_likes_liked_by_tweet"),
        sa.CheckConstraint(
            "(CASE WHEN video_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN comment_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN tweet_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_likes_single_target",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    video_id: Mapped[int | None] = mapped_column(sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=True, index=True)
    comment_id: Mapped[int | None] = mapped_column(sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    tweet_id: Mapped[int | None] = mapped_column(sa.ForeignKey("tweets.id", ondelete="CASCADE"), nullable=True)
    liked_by_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    video: Mapped[Video | None] = relationship()


class Playlist(TimestampMixin, Base):
    __tablename__ = "playlists"
    __table_args__ = (sa.UniqueConstraint("owner_id", "name", name="uq_playlists_owner_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text(), nullable=False, server_default="")
    owner_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    owner: Mapped[User | None] = relationship()
    entries: Mapped[list["PlaylistVideo"]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PlaylistVideo.position",
    )


class PlaylistVideo(Base):
    __tablename__ = "playlist_videos"
    __table_args__ = (sa.UniqueConstraint("playlist_id", "video_id", name="uq_playlist_videos_playlist_video"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(sa.ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id: Mapped[int] = mapped_column(sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(sa.Integer(), nullable=False)

    playlist: Mapped[Playlist] = relationship(back_populates="entries")
    video: Mapped[Video | None] = relationship()


class Subscription(TimestampMixin, Base):
    __tablename__ = "subscriptions"
    __table_args__ = (sa.UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_subscriber_channel"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subscriber_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    subscriber: Mapped[User | None] = relationship(foreign_keys=[subscriber_id])
    channel: Mapped[User | None] = relationship(foreign_keys=[channel_id])
