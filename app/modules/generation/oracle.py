"""Generative oracle adapter.

The pipeline talks to the model through the small ``Oracle`` protocol. The
OpenAI-backed implementation gets its async client from a pydantic-ai
provider (OpenAI directly, or OpenRouter's OpenAI-compatible endpoint) and
translates SDK failures into the pipeline's typed errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

import openai
from openai import AsyncOpenAI

from app.core.logging import get_logger
from app.modules.generation.errors import (
    UpstreamAuthError,
    UpstreamEmptyResponse,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from app.modules.generation.models import RawCompletion


logger = get_logger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


@dataclass(frozen=True)
class OracleRequest:
    system_prompt: str
    user_content: Union[str, list[dict[str, Any]]]
    temperature: float
    max_output_tokens: int


class Oracle(Protocol):
    model: str

    async def complete(self, request: OracleRequest) -> RawCompletion: ...


class OpenAIOracle:
    """Chat-completions oracle returning JSON-object output."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            logger.error("Model API key is not configured")
            raise UpstreamUnavailable()
        if self._client is None:
            from pydantic_ai.providers.openai import OpenAIProvider

            provider = OpenAIProvider(api_key=self.api_key, base_url=self.base_url)
            self._client = provider.client
        return self._client

    async def complete(self, request: OracleRequest) -> RawCompletion:
        client = self._get_client()
        try:
            rsp = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_content},
                ],
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except openai.AuthenticationError as e:
            raise UpstreamAuthError() from e
        except openai.RateLimitError as e:
            raise UpstreamRateLimited() from e
        except openai.APITimeoutError as e:
            raise UpstreamTimeout() from e
        except openai.APIStatusError as e:
            # OpenAI-compatible gateways do not always map to the typed subclasses
            if e.status_code == 401:
                raise UpstreamAuthError() from e
            if e.status_code == 429:
                raise UpstreamRateLimited() from e
            raise UpstreamError(
                f"Model request failed with status {e.status_code}"
            ) from e
        except openai.APIError as e:
            raise UpstreamError(f"Model request failed: {e}") from e

        if not rsp.choices:
            raise UpstreamEmptyResponse()
        choice = rsp.choices[0]
        usage = rsp.usage
        return RawCompletion(
            content=choice.message.content,
            finish_reason=choice.finish_reason,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            model=rsp.model or self.model,
        )
