import logging
import time
from typing import Any, Dict, List, Optional

from src.schemas.flashcard_schemas import GeneratedCard, JudgeResult
from src.services.errors import FlashcardError, MalformedResponse, classify_completion_error
from src.services import deck_store
from src.services.prompt_builder import build_generation_prompt, build_judge_prompt
from src.services.response_coercer import coerce, pick
from src.utils.config import settings
from src.utils.groq_client import CompletionFn, complete_text

logger = logging.getLogger(__name__)

# Nomes aceitos para cada campo do card (o modelo nem sempre obedece)
CARD_ALIASES = {
    "question": ("question", "q", "front"),
    "answer": ("answer", "a", "back"),
}
MISSING_QUESTION = "Question not provided"
MISSING_ANSWER = "Answer not provided"


# ---------------------------------------------------------
# 0. CHAMADA AO SERVIÇO DE COMPLETION
# ---------------------------------------------------------

async def _call_completion(prompt: str, tag: str, complete: Optional[CompletionFn]) -> str:
    complete = complete or complete_text
    try:
        return await complete(prompt, tag)
    except Exception as e:
        err = classify_completion_error(e)
        logger.warning(f"⚠️ Falha no serviço de completion ({tag}): {err.kind} - {e}")
        if err is e:
            raise
        raise err from e


# ---------------------------------------------------------
# 1. GERAÇÃO DE FLASHCARDS
# ---------------------------------------------------------

def normalize_cards(items: List[Any], card_count: int) -> List[GeneratedCard]:
    """Corta no tamanho pedido; nunca completa com cards inventados."""
    batch_stamp = int(time.time() * 1000)
    cards = []
    for item in items:
        if not isinstance(item, dict):
            logger.info(f"Ignorando item que não é objeto: {item!r:.80}")
            continue
        if len(cards) == card_count:
            break
        index = len(cards)
        cards.append(GeneratedCard(
            local_id=f"card_{batch_stamp}_{index}",
            question=str(pick(item, CARD_ALIASES["question"], MISSING_QUESTION)).strip(),
            answer=str(pick(item, CARD_ALIASES["answer"], MISSING_ANSWER)).strip(),
        ))
    return cards


async def generate_flashcards(
    document_text: str,
    card_count: int,
    simple_style: bool = False,
    complete: Optional[CompletionFn] = None,
) -> List[GeneratedCard]:
    if not document_text or not document_text.strip():
        raise ValueError("document_text is empty")
    if not 1 <= card_count <= settings.MAX_CARDS:
        raise ValueError(f"card_count must be between 1 and {settings.MAX_CARDS}")

    logger.info(f"🤖 [Gerador] Pedindo {card_count} cards ({len(document_text)} chars de texto)...")
    prompt = build_generation_prompt(document_text, card_count, simple_style)
    raw = await _call_completion(prompt, "generation", complete)

    try:
        items = coerce(raw, "array")
    except MalformedResponse:
        logger.warning(f"❌ Nenhum array JSON na resposta: {raw[:200]!r}")
        raise

    cards = normalize_cards(items, card_count)
    if not cards:
        raise MalformedResponse(detail="JSON array had no card objects")
    if len(cards) < card_count:
        logger.info(f"Modelo devolveu só {len(cards)} de {card_count} cards")

    logger.info(f"✅ {len(cards)} flashcards gerados")
    return cards


# ---------------------------------------------------------
# 2. CORREÇÃO DE RESPOSTAS
# ---------------------------------------------------------

def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "correct"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "incorrect"):
        return False
    return None


async def judge_answer(
    question: str,
    correct_answer: str,
    student_answer: str,
    complete: Optional[CompletionFn] = None,
) -> JudgeResult:
    prompt = build_judge_prompt(question, correct_answer, student_answer)
    raw = await _call_completion(prompt, "judge", complete)

    data: Dict[str, Any] = coerce(raw, "object")
    correct = _as_bool(pick(data, ("correct", "is_correct", "isCorrect")))
    if correct is None:
        raise MalformedResponse(detail=f"Judge verdict missing 'correct': {data!r:.200}")

    feedback = pick(data, ("feedback", "explanation", "reason"), "")
    return JudgeResult(correct=correct, feedback=str(feedback).strip())


# ---------------------------------------------------------
# 3. HEALTHCHECK
# ---------------------------------------------------------

async def check_completion_service(complete: Optional[CompletionFn] = None) -> Dict[str, Any]:
    """Chamada mínima para saber se a chave e o modelo estão funcionando."""
    try:
        text = await _call_completion("Say hello in one word", "healthcheck", complete)
    except FlashcardError as e:
        return {"success": False, "error": e.kind, "message": e.user_message}
    return {"success": True, "message": text.strip()}


# ---------------------------------------------------------
# 4. O ORQUESTRADOR (documento -> deck salvo)
# ---------------------------------------------------------

async def generate_deck(
    account_id: str,
    title: str,
    document_text: str,
    card_count: int,
    simple_style: bool = False,
    source: str = "generated",
    complete: Optional[CompletionFn] = None,
):
    # O deck só é criado depois de uma geração completa
    cards = await generate_flashcards(document_text, card_count, simple_style, complete)

    deck = await deck_store.create_deck(account_id, title, source=source, card_count=len(cards))
    saved = await deck_store.save_flashcards(account_id, deck.id, cards)
    logger.info(f"🚀 Deck {deck.id} salvo com {len(saved)} cards")
    return deck, saved
