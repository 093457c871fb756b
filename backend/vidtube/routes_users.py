from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import EmailStr
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .errors import BadRequest, Conflict
from .models import User
from .routes_auth import CurrentUser, OptionalUser
from .schemas import AccountUpdate, ApiResponse, UserRead, respond
from .services.media_storage import MediaUploader, get_media_uploader, is_present, upload_file, upload_files
from .services.security import hash_password
from .services.social_graph import SocialGraph

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]
UploaderDep = Annotated[MediaUploader, Depends(get_media_uploader)]


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    session: SessionDep,
    uploader: UploaderDep,
    full_name: str = Form(..., alias="fullName"),
    email: EmailStr = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
) -> ApiResponse:
    if any(not field.strip() for field in (full_name, email, username, password)):
        raise BadRequest("All fields are required")

    username = username.strip().lower()
    email = email.strip().lower()

    existing = await session.scalar(select(User.id).where(or_(User.username == username, User.email == email)))
    if existing is not None:
        raise Conflict("User with email or username already exists")

    if not is_present(avatar):
        raise BadRequest("Avatar file is required")

    files = [avatar] + ([cover_image] if is_present(cover_image) else [])
    uploaded = await upload_files(uploader, files)

    user = User(
        full_name=full_name.strip(),
        email=email,
        username=username,
        password=hash_password(password),
        avatar=uploaded[0].url,
        cover_image=uploaded[1].url if len(uploaded) > 1 else "",
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("User with email or username already exists") from exc
    await session.refresh(user)

    logger.info(f"[users] registered user {user.id} ({user.username})")
    return respond(UserRead.model_validate(user), "User registered successfully", status.HTTP_201_CREATED)


@router.get("/current-user")
async def get_current_user(user: CurrentUser) -> ApiResponse:
    return respond(UserRead.model_validate(user), "Current user fetched successfully")


@router.patch("/update-account")
async def update_account_details(data: AccountUpdate, user: CurrentUser, session: SessionDep) -> ApiResponse:
    if not data.full_name and not data.email:
        raise BadRequest("At least one of fullName or email is required")

    if data.email:
        email = data.email.lower()
        taken = await session.scalar(select(User.id).where(User.email == email, User.id != user.id))
        if taken is not None:
            raise Conflict("Email is already in use")
        user.email = email
    if data.full_name:
        user.full_name = data.full_name

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Email is already in use") from exc
    await session.refresh(user)
    return respond(UserRead.model_validate(user), "Account details updated successfully")


async def _replace_image(
    session: AsyncSession,
    uploader: MediaUploader,
    user: User,
    upload: UploadFile | None,
    field: str,
    label: str,
) -> ApiResponse:
    if not is_present(upload):
        raise BadRequest(f"{label} file is missing")
    media = await upload_file(uploader, upload)
    setattr(user, field, media.url)
    await session.commit()
    await session.refresh(user)
    return respond(UserRead.model_validate(user), f"{label} updated successfully")


@router.patch("/avatar")
async def update_user_avatar(
    user: CurrentUser,
    session: SessionDep,
    uploader: UploaderDep,
    avatar: UploadFile | None = File(default=None),
) -> ApiResponse:
    return await _replace_image(session, uploader, user, avatar, "avatar", "Avatar")


@router.patch("/cover-image")
async def update_user_cover_image(
    user: CurrentUser,
    session: SessionDep,
    uploader: UploaderDep,
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
) -> ApiResponse:
    return await _replace_image(session, uploader, user, cover_image, "cover_image", "Cover image")


@router.get("/channel/{username}")
async def get_user_channel_profile(username: str, session: SessionDep, actor: OptionalUser) -> ApiResponse:
    if not username.strip():
        raise BadRequest("Username is missing")
    profile = await SocialGraph(session).get_channel_profile(username, actor)
    return respond(profile, "User channel fetched successfully")


@router.get("/history")
async def get_watch_history(user: CurrentUser, session: SessionDep) -> ApiResponse:
    history = await SocialGraph(session).get_watch_history(user)
    return respond(history, "Watch history fetched successfully")
