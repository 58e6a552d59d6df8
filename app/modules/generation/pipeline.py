"""Question-generation pipeline.

Gate -> Normalizer -> Strategist -> Prompt Builder -> Invoker (one or more
concurrent calls) -> Validator -> Ledger. Every stage fails with a typed
``GenerationError``; quota is only debited after the validator succeeds.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

from app.core.logging import get_logger
from app.modules.generation.config import GenerationConfig
from app.modules.generation.entitlements import (
    EntitlementGate,
    EntitlementStore,
    Identity,
    UsageLedger,
)
from app.modules.generation.errors import (
    GenerationError,
    Unauthorized,
    UpstreamTimeout,
)
from app.modules.generation.invoker import ModelInvoker
from app.modules.generation.models import (
    ExecutionPlan,
    GenerationRequest,
    GenerationResult,
    PromptPair,
    RawCompletion,
)
from app.modules.generation.normalizer import normalize
from app.modules.generation.oracle import Oracle
from app.modules.generation.prompts import build_prompt
from app.modules.generation.strategist import plan
from app.modules.generation.validator import validate_and_assemble


logger = get_logger(__name__)


class GenerationPipeline:
    def __init__(
        self,
        *,
        config: GenerationConfig,
        oracle: Oracle,
        store: Optional[EntitlementStore] = None,
    ) -> None:
        self.config = config
        self.oracle = oracle
        self.invoker = ModelInvoker(oracle, config)
        self.store = store

    async def run(
        self, identity: Optional[Identity], raw_body: Mapping[str, Any]
    ) -> GenerationResult:
        """Full request path: authorize, normalize, generate, debit."""
        if self.store is None:
            raise RuntimeError("GenerationPipeline.run requires an entitlement store")
        if identity is None:
            raise Unauthorized()
        state = await EntitlementGate(self.store, self.config).authorize(identity)
        await self.store.release()
        try:
            request = normalize(raw_body, self.config)
            result = await self.generate(request)
        except GenerationError as e:
            logger.warning("Generation failed: %s (%s)", e.code, e.message)
            raise

        await UsageLedger(self.store).record_usage(identity, state)
        logger.info(
            "Generated %d %s items (%d tokens)",
            len(result.items),
            result.item_type.value,
            result.tokens_used,
        )
        return result

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate items for an already-validated request, without gating."""
        execution = plan(
            request.item_count, request.item_type, request.content_mode, self.config
        )
        prompts = [build_prompt(request, b.size, b.focus) for b in execution.batches]
        completions = await self._invoke_all(execution, prompts)
        items = validate_and_assemble(
            completions,
            request.item_type,
            request.item_count,
            self.config,
            batched=execution.batched,
        )
        return GenerationResult(
            item_type=request.item_type,
            items=items,
            model=completions[0].model or self.config.model,
            tokens_used=sum(c.total_tokens for c in completions),
        )

    async def _invoke_all(
        self, execution: ExecutionPlan, prompts: list[PromptPair]
    ) -> list[RawCompletion]:
        """Run every batch concurrently; all must succeed."""
        tasks = [
            asyncio.create_task(
                self.invoker.invoke(
                    prompt,
                    execution.item_type,
                    batch.size,
                    batched=execution.batched,
                )
            )
            for batch, prompt in zip(execution.batches, prompts)
        ]
        try:
            return list(
                await asyncio.wait_for(
                    asyncio.gather(*tasks),
                    timeout=self.config.request_timeout_seconds,
                )
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "Generation deadline of %.0fs exceeded",
                self.config.request_timeout_seconds,
            )
            raise UpstreamTimeout() from e
        finally:
            # One failed batch fails the request; stop the rest
            for t in tasks:
                if not t.done():
                    t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
