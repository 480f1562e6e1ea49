"""Concrete SQLAlchemy repository implementation.

Exports SqlRepository and the repository_for() factory for wiring at the
application boundary (dependency injection).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from repository_pattern.infrastructure.persistence.model_provider import ModelProvider

from .base import SqlRepository


def repository_for(
    session: AsyncSession,
    model: type[Any] | str,
    provider: ModelProvider[Any] | None = None,
) -> SqlRepository[Any]:
    """Build a repository for model bound to the given session.

    Intended for use as a dependency when no dedicated subclass exists:

        async def handler(session: AsyncSession = Depends(get_session)) -> ...:
            orders = repository_for(session, Order)
            paid = await orders.where("status", "paid").get()
    """
    return SqlRepository(session, model=model, provider=provider)


__all__ = ["SqlRepository", "repository_for"]
