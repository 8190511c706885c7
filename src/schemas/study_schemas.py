from typing import List, Optional
from pydantic import BaseModel
from src.schemas.flashcard_schemas import JudgeResult


class CardView(BaseModel):
    id: str
    question: str
    # Só aparece depois da correção
    answer: Optional[str] = None


class StudySessionView(BaseModel):
    id: str
    deck_id: str
    deck_title: str
    state: str
    index: int
    total: int
    answered: int
    correct_so_far: int
    is_last: bool
    current_card: Optional[CardView] = None
    last_result: Optional[JudgeResult] = None


class AnswerResponse(BaseModel):
    result: JudgeResult
    session: StudySessionView


class SessionResultResponse(BaseModel):
    deck_id: str
    cards_studied: int
    correct_answers: int
    mastery: int
    progress: int
    record_id: str


class HistoryEntry(BaseModel):
    date: str
    sessions: int
    cards_studied: int
    correct_answers: int
    best_mastery: int


class ProgressResponse(BaseModel):
    total_decks: int
    total_cards: int
    average_mastery: int
    decks_by_status: dict
    total_sessions: int
    cards_studied: int
    accuracy: int
    current_streak: int
    longest_streak: int
    history: List[HistoryEntry]
