"""
Application configuration loaded from environment variables / .env file.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ── App ──
    APP_NAME: str = "Writing Companion API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # ── Database ──
    DATABASE_URL: str = "sqlite:///./writing_companion.db"

    # ── JWT / Auth ──
    SECRET_KEY: str = "writing-companion-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # ── LLM (primary analyzer strategies) ──
    LLM_API_KEY: str = ""
    LLM_API_URL: str = "https://api.anthropic.com/v1/messages"
    LLM_API_VERSION: str = "2023-06-01"
    LLM_MODEL: str = "claude-3-haiku-20240307"
    LLM_MAX_TOKENS: int = 1500
    LLM_TIMEOUT_SECONDS: float = 8.0
    LLM_MAX_INPUT_CHARS: int = 4000

    # ── Analysis ──
    ANALYSIS_CACHE_TTL_SECONDS: int = 60 * 60  # 1 hour
    ANALYZER_TIMEOUT_HEAVY_SECONDS: float = 10.0
    ANALYZER_TIMEOUT_LIGHT_SECONDS: float = 5.0
    ANALYSIS_WORKERS: int = 4
    ANALYSIS_QUEUE_LIMIT: int = 100

    # ── Rate Limiting ──
    RATE_LIMIT_DEFAULT: str = "60/minute"
    RATE_LIMIT_SUBMIT: str = "10/minute"
    RATE_LIMIT_REVIEW: str = "30/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"          # ignore unknown vars in .env


settings = Settings()

# ── Security: reject the default placeholder secret in production ──
_DEFAULT_SECRET = "writing-companion-secret-key-change-in-production"
if settings.SECRET_KEY == _DEFAULT_SECRET and not settings.DEBUG:
    import warnings
    warnings.warn(
        "\n⚠  SECRET_KEY is set to the insecure default!\n"
        "   Set a strong, random SECRET_KEY in your .env file.\n",
        stacklevel=1,
    )
