"""
Configuration management for the German Contract Analyzer.
Settings are read from the environment and an optional .env file.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "German Contract Analyzer"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # CORS Configuration - for the Next.js frontend
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
    ]
    ALLOW_CREDENTIALS: bool = True

    # Upload handling
    MAX_FILE_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: List[str] = ["pdf", "docx", "txt"]

    # Groq (OpenAI-compatible chat completions)
    GROQ_API_KEY: Optional[str] = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_MODEL: str = "moonshotai/kimi-k2-instruct"
    GENERATION_TEMPERATURE: float = 0.1
    GENERATION_MAX_TOKENS: int = 4000
    CLASSIFICATION_MAX_TOKENS: int = 1000
    REQUEST_TIMEOUT_SECONDS: float = 120.0

    # Contract classification
    CLASSIFICATION_EXCERPT_CHARS: int = 3000
    CLASSIFICATION_USE_LLM: bool = True

    # Highlighting
    LOCATOR_PREFIX_LENGTH: int = 20
    LOCATOR_MIN_KEYWORD_LENGTH: int = 4
    MIN_NEEDLE_LENGTH: int = 4
    SECTION_FALLBACK_ENABLED: bool = True

    @property
    def max_file_size_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def is_configured_for_llm(self) -> bool:
        """Whether an API key for the model service is present."""
        return bool(self.GROQ_API_KEY)

    @property
    def llm_config(self) -> Dict[str, Any]:
        """Chat completion configuration."""
        return {
            "base_url": self.GROQ_BASE_URL,
            "model": self.GROQ_MODEL,
            "temperature": self.GENERATION_TEMPERATURE,
            "max_tokens": self.GENERATION_MAX_TOKENS,
            "timeout": self.REQUEST_TIMEOUT_SECONDS,
        }

    @property
    def locator_config(self) -> Dict[str, int]:
        """Text locator tuning."""
        return {
            "prefix_length": self.LOCATOR_PREFIX_LENGTH,
            "min_keyword_length": self.LOCATOR_MIN_KEYWORD_LENGTH,
        }

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
