"""
Ownership gate for mutating operations on owned resources.

Every mutation on a comment, video, tweet or playlist goes through the same
checks, in this order:

1. identifiers are well formed (path/body typing, 400)
2. the target exists (404)
3. the actor owns it (403)
4. payload rules and domain preconditions (400 / 404 / 409)
5. the mutation itself

Authentication (401) is resolved by the route dependency before any of these.
"""
from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..errors import BadRequest, Forbidden, NotFound
from ..models import User

logger = logging.getLogger(__name__)

M = TypeVar("M")


def ensure_owner(resource: Any, actor: User, message: str) -> None:
    if resource.owner_id != actor.id:
        logger.info(
            f"[ownership] user {actor.id} denied on {type(resource).__name__} {resource.id} "
            f"(owner {resource.owner_id})"
        )
        raise Forbidden(message)


async def get_or_404(session: AsyncSession, model: type[M], obj_id: int, noun: str) -> M:
    obj = await session.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{noun} not found")
    return obj


async def get_owned_or_404(
    session: AsyncSession,
    model: type[M],
    obj_id: int,
    actor: User,
    noun: str,
    verb: str = "modify",
) -> M:
    """Load ``model`` by id and check that ``actor`` owns it."""
    obj = await get_or_404(session, model, obj_id, noun)
    ensure_owner(obj, actor, f"You can only {verb} your own {noun.lower()}s")
    return obj


def require_text(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise BadRequest(message)
    return value.strip()


async def commit_update(session: AsyncSession, noun: str) -> None:
    """Flush pending changes to an authorized resource.

    If the row was deleted after the ownership check the update matches
    nothing; that is reported as 404 rather than a server error.
    """
    try:
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        raise NotFound(f"{noun} not found") from exc


async def delete_owned(session: AsyncSession, obj: Any) -> None:
    """Delete an already-authorized resource by id.

    A row that vanished between the ownership check and the delete counts as
    deleted: the caller's intent is satisfied.
    """
    model = type(obj)
    res = await session.execute(delete(model).where(model.id == obj.id))
    await session.commit()
    if res.rowcount == 0:
        logger.info(f"[ownership] {model.__name__} {obj.id} already gone at delete time")
