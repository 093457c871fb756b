"""
Presence toggle for (actor, target) edges: likes and subscriptions.

The edge tables carry a unique constraint on the pair, so two concurrent
toggles that both see "absent" cannot both insert: the loser gets an
IntegrityError, rolls back and re-reads, which then observes the winner's
edge and removes it. The store therefore never holds two edges for a pair.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Conflict

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class ToggleResult:
    active: bool
    edge_id: int | None = None


async def toggle_edge(session: AsyncSession, model: type, **pair: Any) -> ToggleResult:
    """Delete the edge identified by ``pair`` if present, create it otherwise."""
    conditions = [getattr(model, column) == value for column, value in pair.items()]
    for attempt in range(1, MAX_ATTEMPTS + 1):
        existing_id = await session.scalar(select(model.id).where(*conditions))
        if existing_id is not None:
            await session.execute(delete(model).where(model.id == existing_id))
            await session.commit()
            return ToggleResult(active=False)

        edge = model(**pair)
        session.add(edge)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info(f"[toggle] {model.__name__} {pair} raced on insert (attempt {attempt}), re-reading")
            continue
        return ToggleResult(active=True, edge_id=edge.id)

    raise Conflict(f"Concurrent update on {model.__name__.lower()}, please retry")
