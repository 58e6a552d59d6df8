"""Entitlement gate and usage ledger.

Admins and callers with an active-for-access subscription generate without
limit; everyone else is metered against a free-generation counter that is
debited only after a fully successful generation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from app.core.logging import bind_user, get_logger
from app.modules.generation.config import GenerationConfig
from app.modules.generation.errors import QuotaExceeded, Unauthorized
from app.modules.generation.models import EntitlementState, SubscriptionRecord


logger = get_logger(__name__)

# A canceled subscription keeps access until the paid period ends
ACCESS_STATUSES = frozenset({"active", "canceled"})


class Identity(Protocol):
    id: int
    email: str


class EntitlementStore(Protocol):
    async def get_subscription(self, user_id: int) -> Optional[SubscriptionRecord]: ...

    async def get_free_used(self, user_id: int) -> int: ...

    async def increment_free_used(self, user_id: int) -> None: ...

    async def release(self) -> None:
        """End the read phase; called before any model call is made."""
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_active_for_access(
    subscription: Optional[SubscriptionRecord], now: datetime
) -> bool:
    if subscription is None or subscription.period_end is None:
        return False
    status = (subscription.status or "").lower()
    return status in ACCESS_STATUSES and _aware(subscription.period_end) > _aware(now)


class EntitlementGate:
    def __init__(
        self,
        store: EntitlementStore,
        config: GenerationConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.config = config
        self.clock = clock

    async def authorize(self, identity: Optional[Identity]) -> EntitlementState:
        """Return the caller's entitlement state or raise.

        Reads the store fresh on every call; performs no writes.
        """
        if identity is None:
            raise Unauthorized()

        bind_user(identity.id)
        if self.config.is_admin(identity.email):
            logger.info("Admin caller, unlimited generation")
            return EntitlementState(is_admin=True, is_subscribed_and_unexpired=False)

        subscription = await self.store.get_subscription(identity.id)
        if is_active_for_access(subscription, self.clock()):
            logger.info("Subscribed caller, unlimited generation")
            return EntitlementState(is_admin=False, is_subscribed_and_unexpired=True)

        used = await self.store.get_free_used(identity.id) or 0
        if used >= self.config.free_generation_limit:
            logger.info(
                "Free tier exhausted: %d/%d",
                used,
                self.config.free_generation_limit,
            )
            raise QuotaExceeded()
        logger.info(
            "Free tier caller: %d/%d used",
            used,
            self.config.free_generation_limit,
        )
        return EntitlementState(
            is_admin=False,
            is_subscribed_and_unexpired=False,
            free_generations_used=used,
        )


class UsageLedger:
    def __init__(self, store: EntitlementStore) -> None:
        self.store = store

    async def record_usage(self, identity: Identity, state: EntitlementState) -> bool:
        """Debit one free generation for quota-limited callers.

        Returns whether a debit happened.
        """
        if not state.quota_limited:
            return False
        await self.store.increment_free_used(identity.id)
        logger.info(
            "Debited free generation (%d -> %d)",
            state.free_generations_used,
            state.free_generations_used + 1,
        )
        return True
