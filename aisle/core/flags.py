"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Cache / Realtime ─────────────────────────────────────────────
    use_redis: bool = Field(default=False, alias="FF_USE_REDIS")
    # ON  → Redis pub/sub for planner events + shared rate-limit windows. Needs REDIS_URL.
    # OFF → Events silently skipped, rate limiting kept in-process.

    # ── LLM Provider ─────────────────────────────────────────────────
    llm_provider: str = Field(default="gemini", alias="FF_LLM_PROVIDER")
    # "gemini"    → Google Gemini (OpenAI-compatible endpoint). Needs GEMINI_API_KEY.
    # "anthropic" → Anthropic OpenAI-compatible endpoint. Needs ANTHROPIC_API_KEY.
    # "aiml"      → AIML API proxy. Needs AIML_API_KEY.
    # "openai"    → Direct OpenAI. Needs OPENAI_API_KEY.

    # ── Rate limiting ────────────────────────────────────────────────
    use_rate_limit: bool = Field(default=True, alias="FF_USE_RATE_LIMIT")
    # OFF → every request allowed (local development, tests).


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
