import logging
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./flashcards.db"

    # Serviço de completion (Groq)
    GROQ_API_KEY: Optional[str] = None
    COMPLETION_MODEL: str = "llama-3.3-70b-versatile"
    COMPLETION_TEMPERATURE: float = 0.4

    # Limites do pipeline
    MAX_DOCUMENT_CHARS: int = 30000
    MAX_CARDS: int = 60
    DEFAULT_CARD_COUNT: int = 20
    MASTERED_THRESHOLD: int = 80

    LOG_LEVEL: str = "INFO"


settings = Settings()

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=settings.LOG_LEVEL.upper()
)
