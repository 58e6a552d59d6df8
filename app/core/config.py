from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn

from app.modules.generation.config import GenerationConfig


class PostgresSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    host: str = Field(alias="POSTGRES_HOST")
    port: int = Field(alias="POSTGRES_DB_PORT")
    db_name: str = Field(alias="POSTGRES_DB_NAME")
    user: str = Field(alias="POSTGRES_DB_USER")
    password: str = Field(alias="POSTGRES_DB_PASSWORD")
    echo: bool = Field(default=False, alias="POSTGRES_ECHO")
    pool_size: int = Field(default=5, alias="POSTGRES_POOL_SIZE")
    max_overflow: int = Field(default=10, alias="POSTGRES_MAX_OVERFLOW")

    @computed_field
    def connection_string(self) -> PostgresDsn:
        return PostgresDsn(
            f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"
        )


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    token_lifetime_seconds: int = Field(
        default=3600, alias="JWT_TOKEN_LIFETIME_SECONDS"
    )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="studygen", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    jwt_secret: str = Field(alias="JWT_SECRET")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class GenerationSettings(BaseSettings):
    """Tunables for the question-generation pipeline.

    Only read here; the pipeline itself receives the frozen
    ``GenerationConfig`` built by ``to_config``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    # Comma-separated list
    admin_emails: str = Field(default="", alias="ADMIN_EMAILS")
    free_generation_limit: int = Field(default=4, alias="FREE_GENERATION_LIMIT")
    min_items: int = Field(default=1, alias="MIN_QUESTIONS")
    max_items: int = Field(default=60, alias="MAX_QUESTIONS")
    max_images: int = Field(default=15, alias="MAX_IMAGES")
    batch_threshold: int = Field(default=10, alias="BATCH_THRESHOLD")
    num_batches: int = Field(default=3, alias="NUM_BATCHES")
    max_output_tokens: int = Field(default=16000, alias="MAX_OUTPUT_TOKENS")
    single_temperature: float = Field(default=0.7, alias="SINGLE_TEMPERATURE")
    batched_temperature: float = Field(default=0.8, alias="BATCHED_TEMPERATURE")
    degenerate_batch_min_tokens: int = Field(
        default=50, alias="DEGENERATE_BATCH_MIN_TOKENS"
    )
    degenerate_single_min_tokens: int = Field(
        default=100, alias="DEGENERATE_SINGLE_MIN_TOKENS"
    )
    degenerate_single_min_items: int = Field(
        default=5, alias="DEGENERATE_SINGLE_MIN_ITEMS"
    )
    request_timeout_seconds: float = Field(
        default=120.0, alias="GENERATION_TIMEOUT_SECONDS"
    )

    def to_config(self, *, model: str) -> GenerationConfig:
        emails = frozenset(
            e.strip().lower() for e in self.admin_emails.split(",") if e.strip()
        )
        return GenerationConfig(
            admin_emails=emails,
            free_generation_limit=self.free_generation_limit,
            min_items=self.min_items,
            max_items=self.max_items,
            max_images=self.max_images,
            batch_threshold=self.batch_threshold,
            num_batches=self.num_batches,
            max_output_tokens=self.max_output_tokens,
            single_temperature=self.single_temperature,
            batched_temperature=self.batched_temperature,
            degenerate_batch_min_tokens=self.degenerate_batch_min_tokens,
            degenerate_single_min_tokens=self.degenerate_single_min_tokens,
            degenerate_single_min_items=self.degenerate_single_min_items,
            request_timeout_seconds=self.request_timeout_seconds,
            model=model,
        )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    postgres: PostgresSettings = Field(default_factory=lambda: PostgresSettings())
    jwt: JWTSettings = Field(default_factory=lambda: JWTSettings())
    generation: GenerationSettings = Field(
        default_factory=lambda: GenerationSettings()
    )

    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "openai" or "openrouter"
    model_provider: str = Field(default="openai", alias="MODEL_PROVIDER")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openrouter_model: str = Field(
        default="openai/gpt-4o-mini", alias="OPENROUTER_MODEL"
    )

    @computed_field
    def model_name(self) -> str:
        if (self.model_provider or "openai").lower() == "openrouter":
            return self.openrouter_model
        return self.openai_model


settings = Settings()

generation_config = settings.generation.to_config(model=settings.model_name)


__all__ = ["Settings", "settings", "generation_config"]
