"""Configuration from .env file."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com"
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    # Only pre-fills the credential box in the UI; sessions hold their own key.
    GEMINI_API_KEY: str | None = None

    # Generation config sent with every evaluation request.
    GEMINI_TEMPERATURE: float = 0.2
    GEMINI_TOP_K: int = 1
    GEMINI_TOP_P: float = 1.0
    GEMINI_MAX_OUTPUT_TOKENS: int = 200

    EVALUATOR_TIMEOUT: float = 30.0  # seconds, passed straight to httpx
    PASS_THRESHOLD: int = 6  # Task counts as completed at or above this score
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
