from __future__ import annotations

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import generation_config
from app.core.db.base import get_session
from app.core.db_services import SQLEntitlementStore
from app.modules.generation import GenerationPipeline, OpenAIOracle
from app.modules.generation.provider import build_oracle_by_settings


_oracle: Optional[OpenAIOracle] = None


def get_oracle() -> OpenAIOracle:
    """Process-wide oracle; its HTTP client is created on first use."""
    global _oracle
    if _oracle is None:
        _oracle = build_oracle_by_settings()
    return _oracle


async def get_entitlement_store(
    session: AsyncSession = Depends(get_session),
) -> SQLEntitlementStore:
    return SQLEntitlementStore(session)


async def get_generation_pipeline(
    store: SQLEntitlementStore = Depends(get_entitlement_store),
    oracle: OpenAIOracle = Depends(get_oracle),
) -> GenerationPipeline:
    return GenerationPipeline(config=generation_config, oracle=oracle, store=store)
