"""
Session routes and the authentication dependencies used by every router.

A user has at most one live refresh token (stored on the user row); logging
in or refreshing replaces it, logging out clears it.
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .errors import BadRequest, Unauthenticated
from .models import User
from .schemas import (
    ApiResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    TokenPair,
    UserRead,
    respond,
)
from .services.security import (
    InvalidToken,
    hash_password,
    issue_access_token,
    issue_refresh_token,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)
from .settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["auth"])
security = HTTPBearer(auto_error=False)

SessionDep = Annotated[AsyncSession, Depends(get_session)]

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _presented_token(
    credentials: HTTPAuthorizationCredentials | None,
    cookie_token: str | None,
) -> str | None:
    if credentials:
        return credentials.credentials
    return cookie_token or None


async def _user_from_token(session: AsyncSession, token: str) -> User:
    try:
        payload = verify_access_token(token)
    except InvalidToken as exc:
        raise Unauthenticated(f"Unauthorized request, {exc}") from exc
    user = await session.get(User, payload["sub"])
    if user is None:
        raise Unauthenticated("Invalid access token, user not found")
    return user


async def require_user(
    session: SessionDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
) -> User:
    """Dependency that requires an authenticated actor."""
    token = _presented_token(credentials, access_token)
    if not token:
        raise Unauthenticated("Unauthorized request, no token provided")
    return await _user_from_token(session, token)


async def get_optional_user(
    session: SessionDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
) -> User | None:
    """Dependency that returns the actor if a valid token was presented, None otherwise."""
    token = _presented_token(credentials, access_token)
    if not token:
        return None
    try:
        payload = verify_access_token(token)
    except InvalidToken:
        return None
    return await session.get(User, payload["sub"])


CurrentUser = Annotated[User, Depends(require_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def _set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    settings = get_settings()
    response.set_cookie(ACCESS_COOKIE, access_token, httponly=True, secure=settings.cookie_secure, samesite="lax")
    response.set_cookie(REFRESH_COOKIE, refresh_token, httponly=True, secure=settings.cookie_secure, samesite="lax")


def _clear_session_cookies(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(ACCESS_COOKIE, httponly=True, secure=settings.cookie_secure, samesite="lax")
    response.delete_cookie(REFRESH_COOKIE, httponly=True, secure=settings.cookie_secure, samesite="lax")


async def issue_session(session: AsyncSession, user: User) -> TokenPair:
    """Issue a new token pair and make its refresh token the only valid one."""
    pair = TokenPair(
        access_token=issue_access_token(user.id, user.username, user.email),
        refresh_token=issue_refresh_token(user.id),
    )
    user.refresh_token = pair.refresh_token
    await session.commit()
    await session.refresh(user)
    return pair


@router.post("/login")
async def login(data: LoginRequest, response: Response, session: SessionDep) -> ApiResponse:
    if not data.username and not data.email:
        raise BadRequest("Username or email is required")

    conditions = []
    if data.username:
        conditions.append(User.username == data.username)
    if data.email:
        conditions.append(User.email == data.email)
    user = await session.scalar(select(User).where(or_(*conditions)))

    # unknown user and wrong password look the same to the caller
    if user is None or not verify_password(data.password, user.password):
        logger.info(f"[auth] failed login for {data.username or data.email}")
        raise Unauthenticated("Invalid user credentials")

    pair = await issue_session(session, user)
    _set_session_cookies(response, pair.access_token, pair.refresh_token)
    logger.info(f"[auth] user {user.id} logged in")
    return respond(
        LoginResult(user=UserRead.model_validate(user), **pair.model_dump()),
        "User logged in successfully",
    )


@router.post("/logout")
async def logout(user: CurrentUser, response: Response, session: SessionDep) -> ApiResponse:
    user.refresh_token = None
    await session.commit()
    _clear_session_cookies(response)
    logger.info(f"[auth] user {user.id} logged out")
    return respond({}, "User logged out")


@router.post("/refresh-token")
async def refresh_access_token(
    response: Response,
    session: SessionDep,
    data: RefreshRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
) -> ApiResponse:
    incoming = refresh_cookie or (data.refresh_token if data else None)
    if not incoming:
        raise Unauthenticated("Unauthorized request, no refresh token")

    try:
        payload = verify_refresh_token(incoming)
    except InvalidToken as exc:
        raise Unauthenticated(f"Invalid refresh token: {exc}") from exc

    user = await session.get(User, payload["sub"])
    if user is None:
        raise Unauthenticated("Invalid refresh token")
    if user.refresh_token != incoming:
        raise Unauthenticated("Refresh token is expired or used")

    pair = await issue_session(session, user)
    _set_session_cookies(response, pair.access_token, pair.refresh_token)
    return respond(pair, "Access token refreshed")


@router.post("/change-password")
async def change_password(data: ChangePasswordRequest, user: CurrentUser, session: SessionDep) -> ApiResponse:
    if not data.new_password.strip():
        raise BadRequest("New password is required")
    if not verify_password(data.old_password, user.password):
        raise BadRequest("Invalid old password")

    user.password = hash_password(data.new_password)
    await session.commit()
    logger.info(f"[auth] user {user.id} changed password")
    return respond({}, "Password changed successfully")
