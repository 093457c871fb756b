from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .db import get_session
from .errors import NotFound
from .models import Comment, Video
from .routes_auth import CurrentUser
from .schemas import ApiResponse, CommentRead, CommentWrite, respond
from .services.ownership import commit_update, delete_owned, get_or_404, get_owned_or_404, require_text
from .services.pagination import PageParams, page_params, paginate

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _with_relations(stmt):
    return stmt.options(selectinload(Comment.owner), selectinload(Comment.video))


async def load_comment(session: AsyncSession, comment_id: int) -> Comment | None:
    res = await session.execute(
        _with_relations(select(Comment).where(Comment.id == comment_id)).execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


@router.get("/{video_id}")
async def get_video_comments(
    video_id: int,
    session: SessionDep,
    params: PageParams = Depends(page_params),
) -> ApiResponse:
    await get_or_404(session, Video, video_id, "Video")

    stmt = _with_relations(
        select(Comment).where(Comment.video_id == video_id).order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    comments, pagination = await paginate(session, stmt, params)
    return respond(
        {"comments": [CommentRead.model_validate(c) for c in comments], "pagination": pagination},
        "Video comments fetched successfully",
    )


@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(video_id: int, data: CommentWrite, user: CurrentUser, session: SessionDep) -> ApiResponse:
    content = require_text(data.content, "Comment content is required")
    await get_or_404(session, Video, video_id, "Video")

    comment = Comment(content=content, video_id=video_id, owner_id=user.id)
    session.add(comment)
    await session.commit()
    created = await load_comment(session, comment.id)
    return respond(CommentRead.model_validate(created), "Comment added successfully", status.HTTP_201_CREATED)


@router.patch("/c/{comment_id}")
async def update_comment(comment_id: int, data: CommentWrite, user: CurrentUser, session: SessionDep) -> ApiResponse:
    comment = await get_owned_or_404(session, Comment, comment_id, user, "Comment", "update")
    comment.content = require_text(data.content, "Comment content is required")

    await commit_update(session, "Comment")
    updated = await load_comment(session, comment_id)
    if updated is None:
        raise NotFound("Comment not found")
    return respond(CommentRead.model_validate(updated), "Comment updated successfully")


@router.delete("/c/{comment_id}")
async def delete_comment(comment_id: int, user: CurrentUser, session: SessionDep) -> ApiResponse:
    comment = await get_owned_or_404(session, Comment, comment_id, user, "Comment", "delete")
    await delete_owned(session, comment)
    return respond({}, "Comment deleted successfully")
