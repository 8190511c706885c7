from sqlmodel import SQLModel, Field
from src.models.common import new_document_id


class StudySession(SQLModel, table=True):
    """Registro append-only: um por passada completa no deck."""
    id: str = Field(default_factory=new_document_id, primary_key=True)
    user_id: str = Field(index=True)
    deck_id: str = Field(index=True)
    deck_title: str

    date: str  # ISO, truncado para meia-noite
    cards_studied: int
    correct_answers: int
    mastery_achieved: int
    timestamp: str  # ISO, precisão total
