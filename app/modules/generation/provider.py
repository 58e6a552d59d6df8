"""Oracle construction from application settings."""

from __future__ import annotations

from app.core.config import settings, generation_config
from app.modules.generation.oracle import OPENROUTER_BASE_URL, OpenAIOracle


def _build_openai_oracle() -> OpenAIOracle:
    return OpenAIOracle(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=generation_config.request_timeout_seconds,
    )


def _build_openrouter_oracle() -> OpenAIOracle:
    return OpenAIOracle(
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        base_url=OPENROUTER_BASE_URL,
        timeout=generation_config.request_timeout_seconds,
    )


def build_oracle_by_settings() -> OpenAIOracle:
    provider = (settings.model_provider or "openai").lower()
    if provider == "openrouter":
        return _build_openrouter_oracle()
    return _build_openai_oracle()
