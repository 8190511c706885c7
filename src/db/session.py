from sqlmodel import SQLModel, Session, create_engine
from src.utils.config import settings

# IMPORTANTE: Importe os modelos aqui para registrá-los no SQLModel
from src.models.account import Account
from src.models.deck import Deck
from src.models.flashcard import Flashcard
from src.models.study_session import StudySession
from src.models.usage_log import UsageLog


def build_engine(url: str, **kwargs):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, echo=False, **kwargs)


engine = build_engine(settings.DATABASE_URL)


def init_db():
    SQLModel.metadata.create_all(engine)


def new_session() -> Session:
    # Lê o engine do módulo a cada chamada (os testes trocam o engine)
    return Session(engine, expire_on_commit=False)


def get_session():
    with new_session() as session:
        yield session
