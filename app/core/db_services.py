"""Database service classes for entitlement and usage bookkeeping."""

from __future__ import annotations

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Select, func, select
from sqlalchemy.dialects.postgresql import Insert, insert as pg_insert

from app.core.db.schemas.billing import Subscription
from app.core.db.schemas.usage import GenerationUsage
from app.modules.generation.models import SubscriptionRecord


def latest_subscription_query(user_id: int) -> Select:
    return (
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )


def free_used_query(user_id: int) -> Select:
    return select(GenerationUsage.free_generations_used).where(
        GenerationUsage.user_id == user_id
    )


def increment_free_used_stmt(user_id: int) -> Insert:
    """Insert the counter at 1, or add one to the existing row, in one statement."""
    stmt = pg_insert(GenerationUsage).values(user_id=user_id, free_generations_used=1)
    return stmt.on_conflict_do_update(
        index_elements=[GenerationUsage.user_id],
        set_={
            "free_generations_used": GenerationUsage.free_generations_used + 1,
            "updated_at": func.now(),
        },
    )


class SQLEntitlementStore:
    """Entitlement store backed by the ``subscriptions`` and ``generation_usage`` tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_subscription(self, user_id: int) -> Optional[SubscriptionRecord]:
        """Latest subscription record for the user, if any."""
        result = await self.session.execute(latest_subscription_query(user_id))
        sub = result.scalar_one_or_none()
        if not sub:
            return None
        return SubscriptionRecord(
            status=sub.status.value,
            period_end=sub.current_period_end,
        )

    async def get_free_used(self, user_id: int) -> int:
        result = await self.session.execute(free_used_query(user_id))
        return result.scalar_one_or_none() or 0

    async def increment_free_used(self, user_id: int) -> None:
        await self.session.execute(increment_free_used_stmt(user_id))
        await self.session.commit()

    async def release(self) -> None:
        # Ends the read transaction and returns the connection to the pool;
        # the debit opens its own short transaction.
        await self.session.commit()
