"""Model invocation: token budget, temperature and the oracle call."""

from __future__ import annotations

from app.core.logging import get_logger
from app.modules.generation.config import GenerationConfig, TokenBudget
from app.modules.generation.errors import UpstreamEmptyResponse
from app.modules.generation.models import ItemType, PromptPair, RawCompletion
from app.modules.generation.oracle import Oracle, OracleRequest


logger = get_logger(__name__)


class ModelInvoker:
    def __init__(self, oracle: Oracle, config: GenerationConfig) -> None:
        self.oracle = oracle
        self.config = config

    def _budget(self, item_type: ItemType, batched: bool) -> TokenBudget:
        c = self.config
        if item_type is ItemType.MULTIPLE_CHOICE:
            return c.mcq_batched_budget if batched else c.mcq_single_budget
        return c.flashcard_batched_budget if batched else c.flashcard_single_budget

    def token_budget(self, item_type: ItemType, count: int, batched: bool = False) -> int:
        ceiling = self._budget(item_type, batched).for_count(count)
        return min(ceiling, self.config.max_output_tokens)

    def temperature(self, batched: bool = False) -> float:
        if batched:
            return self.config.batched_temperature
        return self.config.single_temperature

    async def invoke(
        self,
        prompt: PromptPair,
        item_type: ItemType,
        count: int,
        *,
        batched: bool = False,
    ) -> RawCompletion:
        request = OracleRequest(
            system_prompt=prompt.system_prompt,
            user_content=prompt.user_content,
            temperature=self.temperature(batched),
            max_output_tokens=self.token_budget(item_type, count, batched),
        )
        completion = await self.oracle.complete(request)
        if not completion.content or not completion.content.strip():
            raise UpstreamEmptyResponse()
        logger.info(
            "Oracle call done: items=%d max_tokens=%d finish=%s prompt_tokens=%d completion_tokens=%d",
            count,
            request.max_output_tokens,
            completion.finish_reason,
            completion.prompt_tokens,
            completion.completion_tokens,
        )
        return completion
