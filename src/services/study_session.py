"""
Motor de uma sessão de estudo: uma passada pelos cards de um deck.

Loading -> Presenting(0) -> [Judging -> ResultShown -> Presenting(i+1)]* -> Complete

Os acertos ficam num conjunto local da sessão; só o percentual agregado vai
para o deck em finish(), junto com um registro no log de sessões.
"""
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from src.models.deck import Deck
from src.models.flashcard import Flashcard
from src.schemas.flashcard_schemas import JudgeResult
from src.services import deck_store
from src.services.ai_orchestrator import judge_answer
from src.services.errors import InvalidSessionState, SessionNotFound, SessionPersistError
from src.services.progress_service import append_session_record
from src.utils.groq_client import CompletionFn

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    PRESENTING = "presenting"
    JUDGING = "judging"
    RESULT_SHOWN = "result_shown"
    COMPLETE = "complete"


@dataclass
class SessionResult:
    deck_id: str
    cards_studied: int
    correct_answers: int
    mastery: int
    progress: int
    record_id: str


def mastery_percent(mastered: int, total: int) -> int:
    if total <= 0:
        return 0
    # arredonda .5 para cima (round() do Python arredonda para o par)
    return int(100 * mastered / total + 0.5)


class StudySessionEngine:
    def __init__(self, account_id: str, deck: Deck):
        self.id = uuid.uuid4().hex
        self.account_id = account_id
        self.deck = deck
        self.state = SessionState.LOADING
        self.cards: List[Flashcard] = []
        self.index = 0
        self.mastered: Set[str] = set()
        self.answers: Dict[str, JudgeResult] = {}
        self.last_result: Optional[JudgeResult] = None
        self.result: Optional[SessionResult] = None

    # --- leitura -------------------------------------------------------

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def current_card(self) -> Optional[Flashcard]:
        if self.state in (SessionState.LOADING, SessionState.COMPLETE) or not self.cards:
            return None
        return self.cards[self.index]

    @property
    def is_last(self) -> bool:
        return self.index >= self.total - 1

    def _expect(self, *states: SessionState) -> None:
        if self.state not in states:
            raise InvalidSessionState(
                detail=f"session {self.id} is {self.state.value}, expected {[s.value for s in states]}"
            )

    # --- transições ----------------------------------------------------

    async def load_cards(self) -> List[Flashcard]:
        self._expect(SessionState.LOADING)
        # Ordem estável: position (ordem de geração), depois id
        cards = deck_store.list_flashcards(self.account_id, self.deck.id)
        if not cards:
            raise InvalidSessionState("This deck has no flashcards yet.", detail=f"deck={self.deck.id}")
        self.cards = cards
        self.index = 0
        self.state = SessionState.PRESENTING
        return cards

    async def submit_answer(self, student_text: str, complete: Optional[CompletionFn] = None) -> JudgeResult:
        self._expect(SessionState.PRESENTING)
        if not student_text or not student_text.strip():
            raise ValueError("answer must not be empty")

        card = self.cards[self.index]
        self.state = SessionState.JUDGING
        try:
            result = await judge_answer(card.question, card.answer, student_text.strip(), complete)
        except Exception:
            # Falhou a correção: o card volta a ser apresentado, sem acerto
            self.state = SessionState.PRESENTING
            raise

        # Vale o último julgamento do card (o usuário pode voltar e responder de novo)
        if result.correct:
            self.mastered.add(card.id)
        else:
            self.mastered.discard(card.id)
        self.answers[card.id] = result
        self.last_result = result
        self.state = SessionState.RESULT_SHOWN

        await deck_store.record_review(self.account_id, card.id)
        return result

    def _move_next(self) -> None:
        self.last_result = None
        if self.index + 1 < self.total:
            self.index += 1
            self.state = SessionState.PRESENTING
        else:
            self.state = SessionState.COMPLETE

    def advance(self) -> None:
        self._expect(SessionState.RESULT_SHOWN)
        self._move_next()

    def skip(self) -> None:
        """Pula o card sem corrigir; não mexe no conjunto de acertos."""
        self._expect(SessionState.PRESENTING)
        self._move_next()

    def previous(self) -> None:
        self._expect(SessionState.PRESENTING, SessionState.RESULT_SHOWN)
        if self.index == 0:
            raise InvalidSessionState("You are already on the first card.")
        self.index -= 1
        self.last_result = None
        self.state = SessionState.PRESENTING

    async def finish(self) -> SessionResult:
        self._expect(SessionState.COMPLETE)
        if self.result is not None:
            return self.result

        correct = len(self.mastered)
        mastery = mastery_percent(correct, self.total)
        try:
            # Sobrescreve o mastery anterior; o histórico fica no log de sessões
            self.deck = await deck_store.update_mastery(self.account_id, self.deck.id, mastery, 100)
            record = await append_session_record(self.account_id, self.deck, self.total, correct, mastery)
        except SQLAlchemyError as e:
            logger.exception(f"Falha ao salvar a sessão {self.id}")
            raise SessionPersistError(detail=str(e)) from e

        # Sucesso só é declarado depois da escrita confirmada
        self.result = SessionResult(
            deck_id=self.deck.id,
            cards_studied=self.total,
            correct_answers=correct,
            mastery=mastery,
            progress=100,
            record_id=record.id,
        )
        logger.info(f"🏁 Sessão {self.id}: {correct}/{self.total} no deck {self.deck.id} ({mastery}%)")
        return self.result

    def restart(self) -> None:
        self._expect(SessionState.COMPLETE)
        self.index = 0
        self.mastered.clear()
        self.answers.clear()
        self.last_result = None
        self.result = None
        self.state = SessionState.PRESENTING


class SessionRegistry:
    """Sessões ativas em memória, por id, presas à conta que abriu."""

    def __init__(self, max_sessions: int = 1000):
        self._sessions: "OrderedDict[str, StudySessionEngine]" = OrderedDict()
        self.max_sessions = max_sessions

    async def open(self, account_id: str, deck_id: str) -> StudySessionEngine:
        deck = deck_store.get_deck(account_id, deck_id)
        engine = StudySessionEngine(account_id, deck)
        await engine.load_cards()

        self._sessions[engine.id] = engine
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Sessão {evicted} descartada (limite de sessões ativas)")
        return engine

    def get(self, account_id: str, session_id: str) -> StudySessionEngine:
        engine = self._sessions.get(session_id)
        if engine is None or engine.account_id != account_id:
            raise SessionNotFound(detail=f"session={session_id}")
        self._sessions.move_to_end(session_id)
        return engine

    def close(self, account_id: str, session_id: str) -> None:
        self.get(account_id, session_id)
        del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()
