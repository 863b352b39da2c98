"""Application configuration using pydantic-settings."""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    port: int = 8000  # llama-server owns 8080 by default
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # Page fetching
    http_timeout: int = 30  # seconds
    fetch_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )

    # Rate Limiting
    rate_limit_per_hour: int = 100

    # CORS
    cors_origins: str = "*"  # Comma-separated origins or "*" for all

    # LLM - local llama.cpp / OpenAI-compatible server
    llm_local_base_url: str = "http://127.0.0.1:8080"
    llm_local_model: str = "qwen3-4b-instruct"

    # LLM - cloud (OpenRouter-compatible)
    llm_cloud_base_url: str = "https://openrouter.ai/api"
    llm_cloud_model: str = "qwen/qwen3-235b-a22b-2507"
    llm_cloud_api_key: Optional[str] = None
    llm_app_url: str = "http://localhost:3000"
    llm_app_title: str = "Recipe Keeper"

    # LLM request settings
    llm_timeout: float = 120.0  # seconds, hard upper bound
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.4
    llm_top_p: float = 0.9

    # Patch validation
    max_step_length: int = 500

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Get list of CORS origins."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
