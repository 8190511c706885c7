"""
Fixtures compartilhadas.

Cada teste roda num SQLite em memória novo (StaticPool) e com um serviço de
completion falso; nada sai para a rede.
"""
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import src.db.session as db_session
from src.db.changes import feed
from src.services.account_service import ensure_account
from src.services.study_session import registry
from tests.fakes import fake_judge


@pytest.fixture(autouse=True)
def engine(monkeypatch):
    test_engine = db_session.build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(test_engine)
    monkeypatch.setattr(db_session, "engine", test_engine)
    feed._listeners.clear()
    registry._sessions.clear()
    yield test_engine
    feed._listeners.clear()
    registry._sessions.clear()
    test_engine.dispose()


@pytest.fixture
def alice():
    return ensure_account("alice", "Alice", "alice@example.com").id


@pytest.fixture
def bob():
    return ensure_account("bob", "Bob", "bob@example.com").id


@pytest.fixture
def judge():
    return fake_judge
