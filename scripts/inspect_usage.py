"""Quick DB inspector for subscriptions and free-tier usage.

Summarizes subscription statuses, free generations consumed, and the users
who have exhausted the free tier.

Usage:
  uv run scripts/inspect_usage.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path so `app` package imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select, func

from app.core.config import generation_config
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db.schemas.billing import Subscription
from app.core.db.schemas.usage import GenerationUsage


async def main() -> int:
    async for session in get_session():  # get_session is an async generator
        total_users = (await session.execute(select(func.count(User.id)))).scalar() or 0
        total_free = (
            await session.execute(
                select(func.sum(GenerationUsage.free_generations_used))
            )
        ).scalar() or 0

        print("Usage DB summary:")
        print(f"- Users: {total_users}")
        print(f"- Free generations consumed: {total_free}")

        by_status = (
            await session.execute(
                select(Subscription.status, func.count(Subscription.id)).group_by(
                    Subscription.status
                )
            )
        ).all()
        print("\nSubscriptions by status:")
        if not by_status:
            print("- No subscriptions found.")
        for sub_status, count in by_status:
            print(f"  • {sub_status.value}: {count}")

        limit = generation_config.free_generation_limit
        exhausted = (
            await session.execute(
                select(User.email, GenerationUsage.free_generations_used)
                .join(GenerationUsage, GenerationUsage.user_id == User.id)
                .where(GenerationUsage.free_generations_used >= limit)
                .order_by(GenerationUsage.updated_at.desc())
                .limit(10)
            )
        ).all()
        print(f"\nUsers at the free limit ({limit}):")
        if not exhausted:
            print("- None.")
        for email, used in exhausted:
            print(f"  • {email} used={used}")

        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
