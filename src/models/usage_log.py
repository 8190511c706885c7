from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from src.models.common import utcnow


class UsageLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=utcnow)

    # Qual modelo respondeu (ex: llama-3.3-70b-versatile)
    model_id: str

    # Métricas devolvidas pela Groq
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    time_taken_seconds: float = 0.0

    # Contexto da chamada: "generation", "judge" ou "healthcheck"
    context_tag: str
    # Preenchido quando a chamada falhou (ex: "QuotaExceeded")
    error_kind: Optional[str] = None
