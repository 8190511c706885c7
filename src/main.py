import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import requests
from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from src.db.session import init_db
from src.schemas.account_schemas import AccountResponse, UpdateProfileRequest
from src.schemas.deck_schemas import (
    DeckListResponse,
    DeckResponse,
    GenerateDeckRequest,
    GeneratedDeckResponse,
    ImportDeckRequest,
    ShareCodeResponse,
)
from src.schemas.flashcard_schemas import AnswerRequest, FlashcardResponse
from src.schemas.study_schemas import (
    AnswerResponse,
    CardView,
    ProgressResponse,
    SessionResultResponse,
    StudySessionView,
)
from src.services import account_service, deck_store
from src.services.ai_orchestrator import check_completion_service, generate_deck
from src.services.deck_store import DeckStore
from src.services.document_service import extract_document_text
from src.services.errors import FlashcardError
from src.services.progress_service import progress_summary
from src.services.share_service import import_by_code, share_code_for
from src.services.study_session import SessionState, StudySessionEngine, registry
from src.services.usage_service import get_daily_usage_stats
from src.utils.config import settings
from src.utils.groq_client import CompletionFn, complete_text

logger = logging.getLogger(__name__)


# Evento para criar tabelas ao iniciar
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield

app = FastAPI(title="AI Flashcards API", lifespan=lifespan)


@app.exception_handler(FlashcardError)
async def flashcard_error_handler(request: Request, exc: FlashcardError):
    # Nunca devolve o texto cru do provedor, só a mensagem para o usuário
    if exc.detail:
        logger.info(f"{exc.kind} em {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.user_message, "retryable": exc.retryable},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"error": "InvalidInput", "detail": str(exc), "retryable": False})


# --- Dependências -------------------------------------------------------

def current_account(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
) -> str:
    """O provedor de identidade já autenticou; aqui só recebemos o id opaco."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    account_service.ensure_account(x_user_id, x_user_name, x_user_email)
    return x_user_id


def get_completion() -> CompletionFn:
    return complete_text


def session_view(engine: StudySessionEngine) -> StudySessionView:
    card = engine.current_card
    card_view = None
    if card is not None:
        reveal = engine.state == SessionState.RESULT_SHOWN
        card_view = CardView(id=card.id, question=card.question, answer=card.answer if reveal else None)
    return StudySessionView(
        id=engine.id,
        deck_id=engine.deck.id,
        deck_title=engine.deck.title,
        state=engine.state.value,
        index=engine.index,
        total=engine.total,
        answered=len(engine.answers),
        correct_so_far=len(engine.mastered),
        is_last=engine.is_last,
        current_card=card_view,
        last_result=engine.last_result,
    )


# --- Rotas ---------------------------------------------------------------

@app.get("/")
def read_root():
    return {"status": "AI Flashcards API is running 🚀"}


@app.get("/api/me", response_model=AccountResponse)
def read_me(account_id: str = Depends(current_account)):
    return account_service.require_account(account_id)


@app.patch("/api/me", response_model=AccountResponse)
def update_me(body: UpdateProfileRequest, account_id: str = Depends(current_account)):
    return account_service.update_preferences(account_id, body.display_name, body.theme, body.notifications_enabled)


@app.post("/api/decks/generate", response_model=GeneratedDeckResponse, status_code=201)
async def generate_deck_from_text(
    request: GenerateDeckRequest,
    account_id: str = Depends(current_account),
    complete: CompletionFn = Depends(get_completion),
):
    deck, cards = await generate_deck(
        account_id,
        request.title,
        request.text,
        request.number_of_cards,
        simple_style=request.simple_definition,
        source=request.source,
        complete=complete,
    )
    return {"deck": deck, "cards": cards}


@app.post("/api/decks/upload", response_model=GeneratedDeckResponse, status_code=201)
async def generate_deck_from_upload(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    number_of_cards: int = Form(settings.DEFAULT_CARD_COUNT),
    simple_definition: bool = Form(False),
    account_id: str = Depends(current_account),
    complete: CompletionFn = Depends(get_completion),
):
    if not 1 <= number_of_cards <= settings.MAX_CARDS:
        raise ValueError(f"number_of_cards must be between 1 and {settings.MAX_CARDS}")
    text = extract_document_text(file.filename, await file.read(), file.content_type)
    deck_title = title or (file.filename or "Untitled").rsplit(".", 1)[0]

    deck, cards = await generate_deck(
        account_id,
        deck_title,
        text,
        number_of_cards,
        simple_style=simple_definition,
        source=file.filename or "upload",
        complete=complete,
    )
    return {"deck": deck, "cards": cards}


@app.get("/api/decks", response_model=DeckListResponse)
async def list_decks(account_id: str = Depends(current_account)):
    decks = deck_store.query_decks(account_id)
    return {"total": len(decks), "decks": decks}


@app.get("/api/decks/{deck_id}", response_model=DeckResponse)
async def read_deck(deck_id: str, account_id: str = Depends(current_account)):
    return deck_store.get_deck(account_id, deck_id)


@app.delete("/api/decks/{deck_id}", status_code=204)
async def remove_deck(deck_id: str, account_id: str = Depends(current_account)):
    await deck_store.delete_deck(account_id, deck_id)


@app.get("/api/decks/{deck_id}/cards", response_model=list[FlashcardResponse])
async def read_deck_cards(deck_id: str, account_id: str = Depends(current_account)):
    deck_store.get_deck(account_id, deck_id)
    return deck_store.list_flashcards(account_id, deck_id)


@app.get("/api/decks/{deck_id}/share-code", response_model=ShareCodeResponse)
async def read_share_code(deck_id: str, account_id: str = Depends(current_account)):
    return {"deck_id": deck_id, "share_code": share_code_for(account_id, deck_id)}


@app.post("/api/decks/import", response_model=DeckResponse, status_code=201)
async def import_deck(request: ImportDeckRequest, account_id: str = Depends(current_account)):
    return await import_by_code(account_id, request.share_code)


# --- Sessões de estudo ---------------------------------------------------

@app.post("/api/decks/{deck_id}/sessions", response_model=StudySessionView, status_code=201)
async def open_session(deck_id: str, account_id: str = Depends(current_account)):
    engine = await registry.open(account_id, deck_id)
    return session_view(engine)


@app.get("/api/sessions/{session_id}", response_model=StudySessionView)
async def read_session(session_id: str, account_id: str = Depends(current_account)):
    return session_view(registry.get(account_id, session_id))


@app.post("/api/sessions/{session_id}/answer", response_model=AnswerResponse)
async def answer_card(
    session_id: str,
    body: AnswerRequest,
    account_id: str = Depends(current_account),
    complete: CompletionFn = Depends(get_completion),
):
    engine = registry.get(account_id, session_id)
    result = await engine.submit_answer(body.answer, complete)
    return {"result": result, "session": session_view(engine)}


@app.post("/api/sessions/{session_id}/next", response_model=StudySessionView)
async def next_card(session_id: str, account_id: str = Depends(current_account)):
    engine = registry.get(account_id, session_id)
    engine.advance()
    return session_view(engine)


@app.post("/api/sessions/{session_id}/skip", response_model=StudySessionView)
async def skip_card(session_id: str, account_id: str = Depends(current_account)):
    engine = registry.get(account_id, session_id)
    engine.skip()
    return session_view(engine)


@app.post("/api/sessions/{session_id}/previous", response_model=StudySessionView)
async def previous_card(session_id: str, account_id: str = Depends(current_account)):
    engine = registry.get(account_id, session_id)
    engine.previous()
    return session_view(engine)


@app.post("/api/sessions/{session_id}/finish", response_model=SessionResultResponse)
async def finish_session(session_id: str, account_id: str = Depends(current_account)):
    engine = registry.get(account_id, session_id)
    return await engine.finish()


@app.post("/api/sessions/{session_id}/restart", response_model=StudySessionView)
async def restart_session(session_id: str, account_id: str = Depends(current_account)):
    engine = registry.get(account_id, session_id)
    engine.restart()
    return session_view(engine)


@app.delete("/api/sessions/{session_id}", status_code=204)
async def close_session(session_id: str, account_id: str = Depends(current_account)):
    registry.close(account_id, session_id)


# --- Progresso / consumo -------------------------------------------------

@app.get("/api/progress", response_model=ProgressResponse)
async def read_progress(account_id: str = Depends(current_account)):
    return progress_summary(account_id)


@app.get("/api/usage")
def read_usage():
    """
    Retorna o consumo de tokens e requisições do dia atual.
    """
    return get_daily_usage_stats()


@app.get("/api/health/completion")
async def completion_health(complete: CompletionFn = Depends(get_completion)):
    return await check_completion_service(complete)


@app.get('/models')
def get_groq_models():
    url = "https://api.groq.com/openai/v1/models"

    headers = {
        "Authorization": f"Bearer {settings.GROQ_API_KEY}",
        "Content-Type": "application/json"
    }

    response = requests.get(url, headers=headers, timeout=15)
    return response.json()


# --- Lista de decks ao vivo ----------------------------------------------

@app.websocket("/ws/decks")
async def decks_socket(websocket: WebSocket):
    account_id = websocket.headers.get("x-user-id") or websocket.query_params.get("user_id")
    if not account_id:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    account_service.ensure_account(account_id)

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(decks):
        snapshot = [DeckResponse.model_validate(d).model_dump(mode="json") for d in decks]
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    async def forward():
        while True:
            snapshot = await queue.get()
            await websocket.send_json({"decks": snapshot})

    store = DeckStore(on_change=push)
    sender = asyncio.create_task(forward())
    try:
        store.set_account(account_id)
        # Só escuta o cliente para perceber a desconexão
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket de decks fechado para {account_id}")
    finally:
        # Toda inscrição é desfeita, inclusive em caminho de erro
        sender.cancel()
        store.close()
