from datetime import datetime, timedelta, timezone

import pytest

from app.modules.generation.entitlements import (
    EntitlementGate,
    UsageLedger,
    is_active_for_access,
)
from app.modules.generation.errors import QuotaExceeded, Unauthorized
from app.modules.generation.models import EntitlementState, SubscriptionRecord


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _gate(store, config):
    return EntitlementGate(store, config, clock=lambda: NOW)


class TestIsActiveForAccess:
    @pytest.mark.parametrize("status", ["active", "canceled", "ACTIVE"])
    def test_unexpired_access_statuses(self, status):
        sub = SubscriptionRecord(status=status, period_end=NOW + timedelta(days=1))
        assert is_active_for_access(sub, NOW)

    @pytest.mark.parametrize("status", ["past_due", "unpaid", "incomplete", "trialing"])
    def test_other_statuses_do_not_grant_access(self, status):
        sub = SubscriptionRecord(status=status, period_end=NOW + timedelta(days=1))
        assert not is_active_for_access(sub, NOW)

    def test_expired_period(self):
        sub = SubscriptionRecord(status="active", period_end=NOW - timedelta(seconds=1))
        assert not is_active_for_access(sub, NOW)

    def test_period_end_must_be_strictly_in_the_future(self):
        assert not is_active_for_access(SubscriptionRecord("active", NOW), NOW)

    def test_missing_record_or_period(self):
        assert not is_active_for_access(None, NOW)
        assert not is_active_for_access(SubscriptionRecord("active", None), NOW)

    def test_naive_period_end_is_utc(self):
        naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        assert is_active_for_access(SubscriptionRecord("active", naive), NOW)


class TestEntitlementGate:
    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, store, config):
        with pytest.raises(Unauthorized) as exc:
            await _gate(store, config).authorize(None)
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_match_is_case_insensitive(self, store, config, admin):
        store.free_used[admin.id] = 99
        state = await _gate(store, config).authorize(admin)
        assert state.is_admin
        assert not state.quota_limited

    @pytest.mark.asyncio
    async def test_canceled_but_unexpired_subscription(self, store, config, free_user):
        store.subscriptions[free_user.id] = SubscriptionRecord(
            status="canceled", period_end=NOW + timedelta(days=3)
        )
        store.free_used[free_user.id] = 10
        state = await _gate(store, config).authorize(free_user)
        assert state.is_subscribed_and_unexpired
        assert not state.quota_limited

    @pytest.mark.asyncio
    async def test_expired_subscription_falls_back_to_free_tier(
        self, store, config, free_user
    ):
        store.subscriptions[free_user.id] = SubscriptionRecord(
            status="active", period_end=NOW - timedelta(days=1)
        )
        store.free_used[free_user.id] = 1
        state = await _gate(store, config).authorize(free_user)
        assert state.quota_limited
        assert state.free_generations_used == 1

    @pytest.mark.asyncio
    async def test_free_tier_under_limit(self, store, config, free_user):
        state = await _gate(store, config).authorize(free_user)
        assert state == EntitlementState(
            is_admin=False, is_subscribed_and_unexpired=False, free_generations_used=0
        )

    @pytest.mark.asyncio
    async def test_free_tier_at_limit(self, store, config, free_user):
        store.free_used[free_user.id] = config.free_generation_limit
        with pytest.raises(QuotaExceeded) as exc:
            await _gate(store, config).authorize(free_user)
        payload = exc.value.to_payload()
        assert payload["requiresSubscription"] is True
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_authorize_never_writes(self, store, config, free_user):
        await _gate(store, config).authorize(free_user)
        assert store.increments == 0


class TestUsageLedger:
    @pytest.mark.asyncio
    async def test_debits_quota_limited_callers(self, store, free_user):
        state = EntitlementState(False, False, free_generations_used=2)
        assert await UsageLedger(store).record_usage(free_user, state)
        assert store.free_used[free_user.id] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("is_admin,subscribed", [(True, False), (False, True)])
    async def test_unlimited_callers_are_not_debited(
        self, store, free_user, is_admin, subscribed
    ):
        state = EntitlementState(is_admin, subscribed)
        assert not await UsageLedger(store).record_usage(free_user, state)
        assert store.increments == 0
