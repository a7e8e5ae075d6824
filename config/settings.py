"""
Settings Configuration
Pydantic-backed configuration for the pipeline, storage, scraper and LLM layers.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class PipelineSettings(BaseSettings):
    """Website analysis pipeline tuning"""
    cache_ttl_days: int = Field(default=30, description="Max age of a prior analysis served as cache hit")
    max_content_chars: int = Field(default=12000, description="Character ceiling for content sent to analysis")
    narrative_token_delay_ms: int = Field(default=35, description="Pause after each streamed narrative word")
    insight_card_delay_ms: int = Field(default=600, description="Pause between streamed insight cards")
    slug_insert_attempts: int = Field(default=3, description="Organization insert attempts on slug conflicts")
    stored_cta_limit: int = Field(default=5, description="Top CTAs returned with a result")
    sufficient_cta_count: int = Field(default=3, description="CTA count considered sufficient")

    class Config:
        env_prefix = "PIPELINE_"


class DatabaseSettings(BaseSettings):
    """Relational storage"""
    url: str = Field(default="sqlite:///./data/site_intel.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log emitted SQL")

    class Config:
        env_prefix = "DATABASE_"


class ScraperSettings(BaseSettings):
    """Website scraper"""
    timeout: float = Field(default=20.0, description="HTTP timeout (seconds)")
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; SiteIntelBot/1.0; +https://example.invalid/bot)",
        description="User-Agent header",
    )

    class Config:
        env_prefix = "SCRAPER_"


class JobSettings(BaseSettings):
    """Job queue and SSE stream"""
    stream_poll_seconds: float = Field(default=2.0, description="Status poll interval of the job event stream")
    stream_retry_ms: int = Field(default=3000, description="Client reconnect delay advertised to EventSource")

    class Config:
        env_prefix = "JOBS_"


class LLMSettings(BaseSettings):
    """LLM providers"""
    provider: str = Field(default="openai", description="LLM provider: openai, deepseek")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: int = Field(default=4096, description="Max completion tokens")
    image_model: str = Field(default="dall-e-3", description="Image generation model")
    image_size: str = Field(default="1024x1024", description="Generated image size")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")

    class Config:
        env_prefix = "LLM_"


class Settings(BaseSettings):
    """Root settings aggregating every section"""

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    jobs: JobSettings = Field(default_factory=JobSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying the given .env file (config/.env by default)."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            pipeline=PipelineSettings(),
            database=DatabaseSettings(),
            scraper=ScraperSettings(),
            llm=LLMSettings(),
            jobs=JobSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings.load_from_env_file()


def get_pipeline_settings() -> PipelineSettings:
    return get_settings().pipeline


def get_database_settings() -> DatabaseSettings:
    return get_settings().database


def get_scraper_settings() -> ScraperSettings:
    return get_settings().scraper


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_job_settings() -> JobSettings:
    return get_settings().jobs
