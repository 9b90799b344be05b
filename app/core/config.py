"""
Application configuration settings.
"""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Project settings
    PROJECT_NAME: str = "Shop Chat Assistant"
    VERSION: str = "0.1.0"

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shop_chat.db")
    AUTO_CREATE_TABLES: bool = True

    # Completion provider settings (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    DEFAULT_LLM_MODEL: str = os.getenv("DEFAULT_LLM_MODEL", "gpt-4o-mini")
    LLM_MAX_TOKENS: int = 2000
    LLM_TIMEOUT: float = 60.0
    DEFAULT_PROMPT_TYPE: str = "standardAssistant"

    # Shopify Storefront settings
    STOREFRONT_ACCESS_TOKEN: str = os.getenv("STOREFRONT_ACCESS_TOKEN", "")
    STOREFRONT_API_VERSION: str = "2025-04"
    SHOP_DOMAIN_SUFFIX: str = ".myshopify.com"

    # Tool execution
    TOOL_TIMEOUT: float = 15.0
    TOOL_MAX_RETRIES: int = 1

    # Policy cache (empty REDIS_URL = in-process cache)
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    POLICY_CACHE_TTL: int = 3600

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Development settings
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra environment variables


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
