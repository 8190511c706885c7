from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from src.models.common import DeckStatus, new_document_id, utcnow


class Deck(SQLModel, table=True):
    id: str = Field(default_factory=new_document_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    source: str = "generated"  # nome do arquivo original ou "generated"
    card_count: int = 0

    # Derivados: só a reconciliação da sessão de estudo altera
    mastery: int = 0
    progress: int = 0
    status: DeckStatus = DeckStatus.NEW

    # Só existe em cópias importadas (evita importar duas vezes)
    original_deck_id: Optional[str] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
