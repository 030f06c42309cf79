"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Generation API
    openai_api_key: Optional[str] = Field(None, description="API key for the OpenAI-compatible endpoint")
    openai_base_url: str = Field("https://api.openai.com/v1", description="Base URL of the chat completions API")
    default_model: str = Field("openai/gpt-4o-mini", description="Model used when a caller does not pick one")
    request_timeout: float = Field(60.0, gt=0)

    # Logging
    log_level: str = Field("INFO")
    log_format: str = Field("text", pattern="^(json|text)$")

    # Chunked extraction
    checkpoint_dir: Path = Field(Path(".checkpoints"))
    chunk_size: int = Field(4000, ge=1, description="Approximate tokens per chunk")
    chunk_overlap: int = Field(200, ge=0, description="Approximate tokens carried into the next chunk")
    max_retries: int = Field(3, ge=0, le=10)
    retry_base_delay: float = Field(1.0, ge=0, description="Seconds; the n-th retry waits n times this")

    # Model router
    telemetry_capacity: int = Field(1000, ge=1)
    telemetry_min_calls: int = Field(
        5,
        ge=0,
        description="Observed latency replaces the static value once a model has more calls than this",
    )


# Instantiate global settings
settings = Settings()
