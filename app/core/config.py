"""Application configuration from environment variables."""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Configuration
    APP_NAME: str = "class-navigator"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "class_navigator"
    POSTGRES_USER: str = "navigator"
    POSTGRES_PASSWORD: str = "navigator"
    DATABASE_URL: Optional[str] = None

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None

    def get_database_url(self) -> str:
        """Get or construct database URL from components."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def get_redis_url(self) -> str:
        """Get or construct Redis URL from components."""
        if self.REDIS_URL:
            return self.REDIS_URL
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Celery (document processing queue); both default to the Redis URL
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    def get_celery_broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.get_redis_url()

    def get_celery_result_backend(self) -> str:
        return self.CELERY_RESULT_BACKEND or self.get_redis_url()

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TITLE_MODEL: str = "gpt-4o-mini"  # Cheap model for chat titles
    OPENAI_VISION_MODEL: str = "gpt-4o"
    OPENAI_ASSISTANT_MODEL: str = "gpt-4o"
    OPENAI_PDF_ASSISTANT_ID: Optional[str] = None  # Reuse a pre-created extraction assistant
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    MAX_TOKENS: int = 1024
    TEMPERATURE: float = 0.7

    # Chunking
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200

    # Retrieval and chat
    TOP_K_RESULTS: int = 5
    CHAT_HISTORY_LIMIT: int = 10
    CITATION_PREVIEW_CHARS: int = 150

    # PDF extraction: "assistant" (file-based assistant run) or "vision" (pypdf + page OCR)
    PDF_EXTRACTION_STRATEGY: str = "assistant"
    PDF_MIN_TEXT_LENGTH: int = 50  # Below this, local parse falls back to page OCR
    ASSISTANT_POLL_INTERVAL_SECONDS: float = 5.0
    ASSISTANT_TIMEOUT_SECONDS: float = 30 * 60
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Web search (Google Programmable Search)
    GOOGLE_API_KEY: Optional[str] = None
    GOOGLE_SEARCH_ENGINE_ID: Optional[str] = None
    WEB_SEARCH_RESULTS: int = 3

    # Security (tokens are issued by the external auth provider)
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"

    class Config:
        """Pydantic config."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env


settings = Settings()
