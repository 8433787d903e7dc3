from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Force dotenv to load from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_DEFAULT_MODEL = "llama-3.1-8b-instant"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self):
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "3000"))

        self.database_url: Optional[str] = os.getenv("DATABASE_URL")
        if not self.database_url:
            raise ValueError("❌ DATABASE_URL is not set. Check your .env file!")

        self.auth_secret_key: Optional[str] = os.getenv("AUTH_SECRET_KEY")
        if not self.auth_secret_key:
            raise ValueError("❌ AUTH_SECRET_KEY is not set. Check your .env file!")
        self.access_token_expire_minutes: int = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24))
        )
        self.trust_user_id_header: bool = _env_bool("TRUST_USER_ID_HEADER")

        self.groq_api_key: Optional[str] = os.getenv("GROQ_API_KEY") or None
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY") or None
        default_model = GROQ_DEFAULT_MODEL if self.groq_api_key else OPENAI_DEFAULT_MODEL
        self.llm_model: str = os.getenv("LLM_MODEL", default_model)
        self.llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
        self.llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "1024"))
        self.system_prompt: str = os.getenv("SYSTEM_PROMPT", "")

        self.max_connections: int = int(os.getenv("MAX_CONNECTIONS", "100"))
        self.load_shed_threshold: int = int(os.getenv("LOAD_SHED_THRESHOLD", "90"))
        self.rate_limit_requests: int = int(os.getenv("RATE_LIMIT_REQUESTS", "20"))
        self.rate_limit_window: float = float(os.getenv("RATE_LIMIT_WINDOW", "60"))
        self.cache_ttl: float = float(os.getenv("CACHE_TTL", "30"))
        self.cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "512"))

        self.allowed_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
            if origin.strip()
        ]

    @property
    def provider_api_key(self) -> Optional[str]:
        return self.groq_api_key or self.openai_api_key

    @property
    def provider_base_url(self) -> Optional[str]:
        # OpenAI's client default is used when no Groq key is configured
        return GROQ_BASE_URL if self.groq_api_key else None

    @property
    def provider_name(self) -> Optional[str]:
        if self.groq_api_key:
            return "groq"
        if self.openai_api_key:
            return "openai"
        return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
