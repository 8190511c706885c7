"""
Deck Store: coleção de decks da conta atual.

Funções de módulo fazem as escritas e leituras (sempre filtrando por conta);
a classe DeckStore mantém uma lista em memória sincronizada com o banco
através do feed de mudanças, no mesmo espírito de um listener em tempo real.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from sqlmodel import col, select

from src.db.changes import DECKS, FLASHCARDS, ChangeFeed, feed
from src.db.session import new_session
from src.models.common import DeckStatus, utcnow
from src.models.deck import Deck
from src.models.flashcard import Flashcard
from src.schemas.flashcard_schemas import GeneratedCard
from src.services.account_service import require_account
from src.services.errors import DeckNotFound, PermissionDenied
from src.utils.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Consultas (sempre com o filtro de conta)
# ---------------------------------------------------------

def query_decks(account_id: str) -> List[Deck]:
    require_account(account_id)
    with new_session() as session:
        statement = (
            select(Deck)
            .where(Deck.user_id == account_id)
            .order_by(col(Deck.created_at).desc(), col(Deck.id))
        )
        return list(session.exec(statement).all())


def get_deck(account_id: str, deck_id: str) -> Deck:
    with new_session() as session:
        deck = session.get(Deck, deck_id)
    # Deck de outra conta é tratado como inexistente
    if deck is None or deck.user_id != account_id:
        raise DeckNotFound("Deck not found.", detail=f"deck={deck_id} account={account_id}")
    return deck


def list_flashcards(account_id: str, deck_id: str) -> List[Flashcard]:
    """Cards do deck na ordem em que foram gerados (position, depois id)."""
    with new_session() as session:
        statement = (
            select(Flashcard)
            .where(Flashcard.deck_id == deck_id)
            .where(Flashcard.user_id == account_id)
            .order_by(Flashcard.position, Flashcard.id)
        )
        return list(session.exec(statement).all())


def status_for_mastery(mastery: int) -> DeckStatus:
    return DeckStatus.MASTERED if mastery >= settings.MASTERED_THRESHOLD else DeckStatus.NEEDS_REVIEW


# ---------------------------------------------------------
# Escritas
# ---------------------------------------------------------

async def create_deck(account_id: str, title: str, source: str = "generated", card_count: int = 0,
                      status: DeckStatus = DeckStatus.NEW,
                      original_deck_id: Optional[str] = None) -> Deck:
    require_account(account_id)
    deck = Deck(
        user_id=account_id,
        title=title.strip(),
        source=source,
        card_count=card_count,
        status=status,
        original_deck_id=original_deck_id,
    )
    with new_session() as session:
        session.add(deck)
        session.commit()
        session.refresh(deck)
    logger.info(f"🗂️ Deck {deck.id} ({deck.title!r}) criado para {account_id}")
    feed.notify(DECKS)
    return deck


async def delete_deck(account_id: str, deck_id: str) -> None:
    """Apaga só o documento do deck; cards e sessões ficam órfãos."""
    with new_session() as session:
        deck = session.get(Deck, deck_id)
        if deck is None or deck.user_id != account_id:
            raise DeckNotFound("Deck not found.", detail=f"deck={deck_id} account={account_id}")
        session.delete(deck)
        session.commit()
    logger.info(f"🗑️ Deck {deck_id} removido por {account_id}")
    feed.notify(DECKS)


async def update_mastery(account_id: str, deck_id: str, mastery_pct: int, progress_pct: int) -> Deck:
    for name, value in (("mastery", mastery_pct), ("progress", progress_pct)):
        if not 0 <= value <= 100:
            raise ValueError(f"{name} must be between 0 and 100, got {value}")

    with new_session() as session:
        deck = session.get(Deck, deck_id)
        if deck is None or deck.user_id != account_id:
            raise DeckNotFound("Deck not found.", detail=f"deck={deck_id} account={account_id}")
        deck.mastery = mastery_pct
        deck.progress = progress_pct
        deck.status = status_for_mastery(mastery_pct)
        deck.updated_at = utcnow()
        session.add(deck)
        session.commit()
        session.refresh(deck)
    feed.notify(DECKS)
    return deck


async def _save_card(account_id: str, deck_id: str, position: int, question: str, answer: str) -> Flashcard:
    card = Flashcard(
        deck_id=deck_id,
        user_id=account_id,
        question=question,
        answer=answer,
        position=position,
    )
    with new_session() as session:
        session.add(card)
        session.commit()
        session.refresh(card)
    return card


async def save_flashcards(account_id: str, deck_id: str, cards: Sequence[GeneratedCard]) -> List[Flashcard]:
    # Lote disparado de uma vez e aguardado junto; cada escrita é síncrona,
    # então os INSERTs saem em sequência (decks têm no máximo MAX_CARDS cards)
    saved = await asyncio.gather(*[
        _save_card(account_id, deck_id, index, card.question, card.answer)
        for index, card in enumerate(cards)
    ])
    feed.notify(FLASHCARDS)
    return list(saved)


async def record_review(account_id: str, card_id: str) -> None:
    with new_session() as session:
        card = session.get(Flashcard, card_id)
        if card is None or card.user_id != account_id:
            return  # card apagado no meio da sessão
        card.review_count += 1
        session.add(card)
        session.commit()


# ---------------------------------------------------------
# Lista ao vivo
# ---------------------------------------------------------

class SubscriptionState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


class DeckStore:
    def __init__(self, change_feed: ChangeFeed = feed,
                 on_change: Optional[Callable[[List[Deck]], None]] = None):
        self.decks: List[Deck] = []
        self.account_id: Optional[str] = None
        self._feed = change_feed
        self._on_change = on_change
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def state(self) -> SubscriptionState:
        if self._unsubscribe is None:
            return SubscriptionState.UNSUBSCRIBED
        return SubscriptionState.SUBSCRIBED

    def set_account(self, account_id: Optional[str]) -> None:
        """Chamado quando a identidade muda (login, logout, troca de conta)."""
        if account_id == self.account_id and self.state is SubscriptionState.SUBSCRIBED:
            return
        # Limpa antes de desinscrever: nada da conta anterior aparece na troca
        had_account = self.account_id is not None
        self.decks = []
        if had_account:
            self._publish()
        self._teardown()
        self.account_id = account_id
        if account_id:
            self._unsubscribe = self._feed.watch(DECKS, self._refresh)
            try:
                self._refresh()
            except Exception:
                self._teardown()
                raise

    def _refresh(self) -> None:
        if self.account_id is None:
            return
        try:
            self.decks = query_decks(self.account_id)
        except PermissionDenied:
            logger.warning(f"Permissão negada ao listar decks de {self.account_id}; lista vazia")
            self.decks = []
        self._publish()

    def _publish(self) -> None:
        if self._on_change is not None:
            self._on_change(list(self.decks))

    def _teardown(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def close(self) -> None:
        self.decks = []
        self._teardown()
        self.account_id = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _require_account(self) -> str:
        if self.account_id is None:
            raise PermissionDenied(detail="DeckStore has no authenticated account")
        return self.account_id

    async def create_deck(self, title: str, source: str = "generated", card_count: int = 0, **kwargs) -> Deck:
        return await create_deck(self._require_account(), title, source, card_count, **kwargs)

    async def delete_deck(self, deck_id: str) -> None:
        await delete_deck(self._require_account(), deck_id)

    async def update_mastery(self, deck_id: str, mastery_pct: int, progress_pct: int) -> Deck:
        return await update_mastery(self._require_account(), deck_id, mastery_pct, progress_pct)
