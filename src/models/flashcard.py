from sqlmodel import SQLModel, Field
from src.models.common import new_document_id


class Flashcard(SQLModel, table=True):
    id: str = Field(default_factory=new_document_id, primary_key=True)
    # Referência fraca: apagar o deck não apaga os cards
    deck_id: str = Field(index=True)
    user_id: str = Field(index=True)

    question: str
    answer: str
    position: int = 0  # ordem em que o modelo gerou o card

    mastered: bool = False
    review_count: int = 0
