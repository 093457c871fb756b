from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Envelope
class ApiResponse(CamelModel):
    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True


def respond(data: Any = None, message: str = "Success", status_code: int = 200) -> ApiResponse:
    return ApiResponse(status_code=status_code, data=data, message=message, success=status_code < 400)


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class Pagination(CamelModel):
    current_page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


# Users
class OwnerSummary(CamelModel):
    id: int
    username: str
    full_name: str
    avatar: str


class HistoryOwner(CamelModel):
    full_name: str
    username: str
    avatar: str


class UserRead(CamelModel):
    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginRequest(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str

    @field_validator("username", "email")
    @classmethod
    def normalize_identity(cls, value: str | None) -> str | None:
        value = _strip(value)
        return value.lower() if value else value


class LoginResult(CamelModel):
    user: UserRead
    access_token: str
    refresh_token: str


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str


class AccountUpdate(CamelModel):
    full_name: str | None = None
    email: EmailStr | None = None

    @field_validator("full_name")
    @classmethod
    def normalize_full_name(cls, value: str | None) -> str | None:
        return _strip(value)


class ChannelProfile(CamelModel):
    full_name: str
    username: str
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
    avatar: str
    cover_image: str
    email: str


# Videos
class VideoRead(CamelModel):
    id: int
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    owner_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VideoWithOwner(VideoRead):
    owner: OwnerSummary | None = None


class HistoryVideo(VideoRead):
    owner: HistoryOwner | None = None


class LikedVideo(VideoWithOwner):
    like_id: int
    liked_at: datetime | None = None


class ChannelVideo(VideoRead):
    likes_count: int = 0
    comments_count: int = 0


class VideoSortField(str, Enum):
    created_at = "createdAt"
    updated_at = "updatedAt"
    views = "views"
    title = "title"
    duration = "duration"


class ChannelVideoSortField(str, Enum):
    created_at = "createdAt"
    updated_at = "updatedAt"
    views = "views"
    title = "title"


class MostViewedVideo(CamelModel):
    id: int
    title: str
    views: int
    thumbnail: str


class ChannelStats(CamelModel):
    total_videos: int
    total_views: int
    total_subscribers: int
    total_likes: int
    recent_videos: int
    recent_views: int
    average_views: int
    most_viewed_video: MostViewedVideo | None = None


# Comments
class CommentWrite(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return value.strip()


class CommentVideo(CamelModel):
    id: int
    title: str


class CommentRead(CamelModel):
    id: int
    content: str
    video_id: int
    owner_id: int
    owner: OwnerSummary | None = None
    video: CommentVideo | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Tweets
class TweetCreate(CamelModel):
    content: str
    video: int | None = None

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return value.strip()


class TweetUpdate(CamelModel):
    content: str | None = None
    video: int | None = None

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str | None) -> str | None:
        return _strip(value)


class TweetVideo(CamelModel):
    id: int
    title: str
    thumbnail: str


class TweetRead(CamelModel):
    id: int
    content: str
    video_id: int | None = None
    owner_id: int
    owner: OwnerSummary | None = None
    video: TweetVideo | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TweetSortField(str, Enum):
    created_at = "createdAt"
    updated_at = "updatedAt"


# Playlists
class PlaylistCreate(CamelModel):
    name: str
    description: str | None = None

    @field_validator("name", "description")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        return _strip(value)


class PlaylistUpdate(PlaylistCreate):
    name: str | None = None


class PlaylistRead(CamelModel):
    id: int
    name: str
    description: str
    owner_id: int
    owner: OwnerSummary | None = None
    videos: list[VideoWithOwner] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PlaylistSortField(str, Enum):
    created_at = "createdAt"
    updated_at = "updatedAt"
    name = "name"


# Likes / subscriptions
class LikeToggleResult(CamelModel):
    liked: bool
    like_id: int | None = None


class SubscriptionToggleResult(CamelModel):
    subscribed: bool
    channel_id: int


class UserSummary(CamelModel):
    id: int
    username: str
    email: str
    full_name: str
    avatar: str


class SubscriptionRead(CamelModel):
    id: int
    subscriber_id: int
    channel_id: int
    subscriber: UserSummary | None = None
    channel: UserSummary | None = None
    created_at: datetime | None = None
