import pytest
from fastapi.testclient import TestClient
from sqlmodel import select

from src.db.session import new_session
from src.main import app, get_completion
from src.models.study_session import StudySession
from tests.fakes import cards_json, fake_judge

TEXT = ("The water cycle describes how water evaporates from the surface, condenses into clouds, "
        "and returns as precipitation. Transpiration from plants also adds vapour to the atmosphere daily. "
        "Runoff and groundwater flow then carry the water back to rivers, lakes and eventually the oceans.")
ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


class ScriptedCompletion:
    def __init__(self, generation=None, error=None):
        self.generation = generation or cards_json(5)
        self.error = error

    async def __call__(self, prompt, tag="generation"):
        if self.error is not None:
            raise self.error
        if tag == "judge":
            return await fake_judge(prompt, tag)
        return self.generation


@pytest.fixture
def completion():
    scripted = ScriptedCompletion()
    app.dependency_overrides[get_completion] = lambda: scripted
    yield scripted
    app.dependency_overrides.clear()


@pytest.fixture
def client(completion):
    return TestClient(app)


def _generate(client, headers=ALICE, n=5):
    r = client.post("/api/decks/generate", headers=headers,
                    json={"title": "Water cycle", "text": TEXT, "number_of_cards": n})
    assert r.status_code == 201, r.text
    return r.json()


def test_study_flow_end_to_end(client):
    assert len(TEXT) >= 200
    body = _generate(client)
    deck = body["deck"]
    assert (deck["card_count"], deck["mastery"], deck["status"]) == (5, 0, "New")
    assert len(body["cards"]) == 5

    r = client.post(f"/api/decks/{deck['id']}/sessions", headers=ALICE)
    assert r.status_code == 201
    session = r.json()
    assert session["state"] == "presenting"
    assert session["current_card"]["answer"] is None

    for answer in ["right", "right", "right", "wrong", "wrong"]:
        r = client.post(f"/api/sessions/{session['id']}/answer", headers=ALICE, json={"answer": answer})
        assert r.status_code == 200, r.text
        assert r.json()["result"]["correct"] is (answer == "right")
        assert r.json()["session"]["current_card"]["answer"] is not None
        client.post(f"/api/sessions/{session['id']}/next", headers=ALICE)

    r = client.post(f"/api/sessions/{session['id']}/finish", headers=ALICE)
    assert r.status_code == 200, r.text
    assert r.json()["mastery"] == 60

    assert client.get(f"/api/decks/{deck['id']}", headers=ALICE).json()["mastery"] == 60
    with new_session() as db:
        rows = db.exec(select(StudySession).where(StudySession.deck_id == deck["id"])).all()
    assert len(rows) == 1
    assert rows[0].correct_answers == 3

    progress = client.get("/api/progress", headers=ALICE).json()
    assert progress["total_sessions"] == 1
    assert progress["current_streak"] == 1


def test_requires_identity(client):
    assert client.get("/api/decks").status_code == 401


def test_decks_are_scoped_per_account(client):
    _generate(client, ALICE)
    assert client.get("/api/decks", headers=ALICE).json()["total"] == 1
    assert client.get("/api/decks", headers=BOB).json()["total"] == 0


def test_completion_error_is_mapped_without_raw_text(client, completion):
    completion.error = RuntimeError("429 RESOURCE_EXHAUSTED secret-project-id")
    r = client.post("/api/decks/generate", headers=ALICE, json={"title": "x", "text": TEXT})

    assert r.status_code == 429
    assert r.json()["error"] == "QuotaExceeded"
    assert r.json()["retryable"] is True
    assert "secret-project-id" not in r.text
    assert client.get("/api/decks", headers=ALICE).json()["total"] == 0


def test_malformed_generation(client, completion):
    completion.generation = "I'm sorry, I can't do that."
    r = client.post("/api/decks/generate", headers=ALICE, json={"title": "x", "text": TEXT})
    assert r.status_code == 502
    assert r.json()["error"] == "MalformedResponse"


def test_card_count_validation(client):
    r = client.post("/api/decks/generate", headers=ALICE, json={"title": "x", "text": TEXT, "number_of_cards": 61})
    assert r.status_code == 422


def test_upload_plain_text(client):
    r = client.post("/api/decks/upload", headers=ALICE,
                    files={"file": ("water.txt", TEXT.encode(), "text/plain")},
                    data={"number_of_cards": "3"})
    assert r.status_code == 201, r.text
    deck = r.json()["deck"]
    assert deck["title"] == "water"
    assert deck["source"] == "water.txt"
    assert deck["card_count"] == 3


def test_upload_pdf_rejected(client):
    r = client.post("/api/decks/upload", headers=ALICE,
                    files={"file": ("paper.pdf", b"%PDF-1.7", "application/pdf")})
    assert r.status_code == 415
    assert r.json()["error"] == "UnsupportedDocument"


def test_share_and_import(client):
    deck = _generate(client, ALICE)["deck"]
    code = client.get(f"/api/decks/{deck['id']}/share-code", headers=ALICE).json()["share_code"]
    assert code.startswith("FC-") and len(code) == 11

    r = client.post("/api/decks/import", headers=BOB, json={"share_code": code})
    assert r.status_code == 201
    imported = r.json()
    assert imported["status"] == "Imported"
    assert imported["original_deck_id"] == deck["id"]
    assert len(client.get(f"/api/decks/{imported['id']}/cards", headers=BOB).json()) == 5

    r = client.post("/api/decks/import", headers=BOB, json={"share_code": code})
    assert r.status_code == 409
    assert client.get("/api/decks", headers=BOB).json()["total"] == 1


def test_delete_deck(client):
    deck = _generate(client)["deck"]
    assert client.delete(f"/api/decks/{deck['id']}", headers=BOB).status_code == 404
    assert client.delete(f"/api/decks/{deck['id']}", headers=ALICE).status_code == 204
    assert client.get(f"/api/decks/{deck['id']}", headers=ALICE).status_code == 404


def test_session_belongs_to_opener(client):
    deck = _generate(client)["deck"]
    session = client.post(f"/api/decks/{deck['id']}/sessions", headers=ALICE).json()

    assert client.get(f"/api/sessions/{session['id']}", headers=BOB).status_code == 404
    assert client.post(f"/api/sessions/{session['id']}/finish", headers=ALICE).status_code == 409
    assert client.delete(f"/api/sessions/{session['id']}", headers=ALICE).status_code == 204
    assert client.get(f"/api/sessions/{session['id']}", headers=ALICE).status_code == 404


def test_profile_update(client):
    r = client.patch("/api/me", headers=ALICE, json={"theme": "dark", "display_name": "Alice"})
    assert r.status_code == 200
    assert r.json()["theme"] == "dark"
    assert client.patch("/api/me", headers=ALICE, json={"theme": "neon"}).status_code == 422


def test_completion_health(client):
    r = client.get("/api/health/completion")
    assert r.json()["success"] is True


def test_live_deck_socket_sends_snapshot(client):
    _generate(client, ALICE)
    with client.websocket_connect("/ws/decks", headers=ALICE) as ws:
        snapshot = ws.receive_json()
    assert [d["title"] for d in snapshot["decks"]] == ["Water cycle"]
