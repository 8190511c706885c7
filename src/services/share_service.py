"""
Compartilhamento de decks por código curto (FC-XXXXXXXX).

O código é o prefixo do id do deck; importar faz uma cópia profunda do deck
e dos cards para a conta de quem importa, sem levar o progresso junto.
"""
import asyncio
import logging
import re
from typing import List

from sqlmodel import col, select

from src.db.changes import FLASHCARDS, feed
from src.db.session import new_session
from src.models.common import DeckStatus
from src.models.deck import Deck
from src.models.flashcard import Flashcard
from src.services import deck_store
from src.services.account_service import require_account
from src.services.errors import AlreadyImported, DeckNotFound, InvalidShareCode

logger = logging.getLogger(__name__)

SHARE_PREFIX = "FC-"
CODE_LENGTH = 8
_CODE_RE = re.compile(r"^FC-([0-9A-Z]{8})$", re.IGNORECASE)


def share_code_for(account_id: str, deck_id: str) -> str:
    deck = deck_store.get_deck(account_id, deck_id)
    return f"{SHARE_PREFIX}{deck.id[:CODE_LENGTH].upper()}"


def parse_share_code(share_code: str) -> str:
    match = _CODE_RE.match((share_code or "").strip())
    if not match:
        raise InvalidShareCode(detail=f"bad share code {share_code!r}")
    return match.group(1).lower()


def resolve_share_code(share_code: str) -> Deck:
    """
    Procura o deck cujo id começa com o código (busca entre todas as contas).

    Mais de um deck com o mesmo prefixo: fica o primeiro que o banco devolver.
    """
    prefix = parse_share_code(share_code)
    with new_session() as session:
        matches = session.exec(
            select(Deck).where(col(Deck.id).startswith(prefix)).limit(2)
        ).all()
    if not matches:
        raise DeckNotFound(detail=f"no deck with prefix {prefix}")
    if len(matches) > 1:
        logger.warning(f"Código {share_code} bate com mais de um deck; usando {matches[0].id}")
    return matches[0]


def _already_imported(account_id: str, source_deck_id: str) -> bool:
    with new_session() as session:
        existing = session.exec(
            select(Deck)
            .where(Deck.user_id == account_id)
            .where(Deck.original_deck_id == source_deck_id)
        ).first()
    return existing is not None


def _source_cards(source: Deck) -> List[Flashcard]:
    # Leitura cruzada de conta: só os cards do dono do deck de origem
    return deck_store.list_flashcards(source.user_id, source.id)


async def _copy_card(account_id: str, deck_id: str, card: Flashcard) -> Flashcard:
    copy = Flashcard(
        deck_id=deck_id,
        user_id=account_id,
        question=card.question,
        answer=card.answer,
        position=card.position,
    )
    with new_session() as session:
        session.add(copy)
        session.commit()
        session.refresh(copy)
    return copy


async def import_by_code(account_id: str, share_code: str) -> Deck:
    require_account(account_id)
    source = resolve_share_code(share_code)

    if _already_imported(account_id, source.id):
        raise AlreadyImported(detail=f"account={account_id} source={source.id}")

    deck = await deck_store.create_deck(
        account_id,
        source.title,
        source=source.source,
        card_count=source.card_count,
        status=DeckStatus.IMPORTED,
        original_deck_id=source.id,
    )

    # Cópias disparadas juntas e aguardadas juntas; as escritas em si rodam em
    # sequência no loop (Session é síncrona). Falha parcial deixa o deck com
    # menos cards (sem rollback)
    cards = _source_cards(source)
    results = await asyncio.gather(
        *[_copy_card(account_id, deck.id, card) for card in cards],
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error(f"Import de {source.id}: {len(failures)} de {len(cards)} cards falharam",
                     exc_info=failures[0])
    feed.notify(FLASHCARDS)

    logger.info(f"📥 Deck {source.id} importado por {account_id} como {deck.id}")
    return deck
