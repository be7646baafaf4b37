from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # OpenAI (completion service)
    openai_api_key: str = ""  # Empty: every generation fails, validation returns False
    openai_base_url: str = ""  # Optional: OpenAI-compatible endpoint
    openai_default_model: str = "gpt-4o"

    # GitHub (source hosting)
    github_api_url: str = "https://api.github.com"

    # Telegram
    telegram_poll_interval: float = 5.0  # Seconds between getUpdates calls

    # Fixed identity until real auth exists
    demo_user_id: str = "demo-user"

    # Rate limit for AI endpoints (slowapi notation)
    ai_rate_limit: str = "20/minute"

    # Environment
    environment: str = "development"
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
