from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from src.models.common import DeckStatus
from src.schemas.flashcard_schemas import FlashcardResponse
from src.utils.config import settings


# Input
class GenerateDeckRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    text: str = Field(..., min_length=1)
    number_of_cards: int = Field(settings.DEFAULT_CARD_COUNT, ge=1, le=settings.MAX_CARDS)
    simple_definition: bool = False
    source: str = "generated"


class ImportDeckRequest(BaseModel):
    share_code: str = Field(..., min_length=3, max_length=32)


class DeckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    source: str
    card_count: int
    mastery: int
    progress: int
    status: DeckStatus
    original_deck_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DeckListResponse(BaseModel):
    total: int
    decks: List[DeckResponse]


class ShareCodeResponse(BaseModel):
    deck_id: str
    share_code: str


# Output da geração: o deck salvo e os cards na ordem gerada
class GeneratedDeckResponse(BaseModel):
    deck: DeckResponse
    cards: List[FlashcardResponse]
