from pydantic import BaseModel, ConfigDict, Field


# Card recém-saído do modelo, antes de ir para o banco
class GeneratedCard(BaseModel):
    local_id: str  # id temporário; o store atribui o definitivo
    question: str
    answer: str
    mastered: bool = False
    review_count: int = 0


# O card que devolvemos para o Frontend (Output)
class FlashcardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deck_id: str
    question: str
    answer: str
    position: int
    mastered: bool
    review_count: int


class JudgeResult(BaseModel):
    correct: bool
    feedback: str = ""


class AnswerRequest(BaseModel):
    answer: str = Field(..., min_length=1, max_length=5000)
