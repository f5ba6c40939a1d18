"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./colist.db")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    DEFAULT_LOCALE: str = "fr"
    SUPPORTED_LOCALES: List[str] = ["fr", "en", "es", "de", "it", "pt", "el", "nl", "pl", "sv", "da", "tr"]

    # Plan revalidation window (seconds) for cached event plans
    REVALIDATE_SECONDS: int = 30

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30
    AI_RATE_LIMIT_PER_MINUTE: int = 10

    # AI ingredient generation
    OPENROUTER_API_KEY: str | None = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODELS: List[str] = [
        "mistralai/mistral-7b-instruct:free",
        "openai/gpt-oss-20b:free",
    ]
    OPENROUTER_TIMEOUT: float = 30.0
    USE_MOCK_LLM: bool = os.getenv("USE_MOCK_LLM", "false").lower() in ("1", "true", "yes")
    AI_CACHE_MIN_CONFIRMATIONS: int = 3
    AI_MAX_INGREDIENTS: int = 12

    class Config:
        env_file = ".env"

settings = Settings()
