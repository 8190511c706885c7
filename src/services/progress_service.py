"""Log de sessões de estudo (append-only) e as estatísticas derivadas dele."""
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import select

from src.db.changes import SESSIONS, feed
from src.db.session import new_session
from src.models.deck import Deck
from src.models.study_session import StudySession
from src.services.account_service import require_account



async def append_session_record(account_id: str, deck: Deck, cards_studied: int, correct_answers: int,
                                mastery_achieved: int, now: Optional[datetime] = None) -> StudySession:
    now = now or datetime.now()
    record = StudySession(
        user_id=account_id,
        deck_id=deck.id,
        deck_title=deck.title,
        date=datetime.combine(now.date(), datetime.min.time()).isoformat(),
        cards_studied=cards_studied,
        correct_answers=correct_answers,
        mastery_achieved=mastery_achieved,
        timestamp=now.isoformat(),
    )
    with new_session() as session:
        session.add(record)
        session.commit()
        session.refresh(record)
    feed.notify(SESSIONS)
    return record


def list_sessions(account_id: str, deck_id: Optional[str] = None) -> List[StudySession]:
    with new_session() as session:
        statement = select(StudySession).where(StudySession.user_id == account_id)
        if deck_id is not None:
            statement = statement.where(StudySession.deck_id == deck_id)
        statement = statement.order_by(StudySession.timestamp)
        return list(session.exec(statement).all())


def compute_streaks(days: List[date], today: date) -> Dict[str, int]:
    """Sequência atual (terminando hoje ou ontem) e a maior sequência de dias seguidos."""
    unique = sorted(set(days))
    longest = run = 0
    previous = None
    for day in unique:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day

    current = 0
    if unique and (today - unique[-1]).days <= 1:
        current = 1
        newest_first = unique[::-1]
        for newer, older in zip(newest_first, newest_first[1:]):
            if newer - older != timedelta(days=1):
                break
            current += 1
    return {"current_streak": current, "longest_streak": longest}


def progress_summary(account_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    require_account(account_id)
    today = today or date.today()

    with new_session() as session:
        decks = list(session.exec(select(Deck).where(Deck.user_id == account_id)).all())
    sessions = list_sessions(account_id)

    by_status = Counter(deck.status.value for deck in decks)
    cards_studied = sum(s.cards_studied for s in sessions)
    correct = sum(s.correct_answers for s in sessions)

    history: Dict[str, Dict[str, Any]] = {}
    for s in sessions:
        day = s.date[:10]
        entry = history.setdefault(day, {
            "date": day, "sessions": 0, "cards_studied": 0, "correct_answers": 0, "best_mastery": 0
        })
        entry["sessions"] += 1
        entry["cards_studied"] += s.cards_studied
        entry["correct_answers"] += s.correct_answers
        entry["best_mastery"] = max(entry["best_mastery"], s.mastery_achieved)

    streaks = compute_streaks([date.fromisoformat(d) for d in history], today)

    return {
        "total_decks": len(decks),
        "total_cards": sum(deck.card_count for deck in decks),
        "average_mastery": round(sum(deck.mastery for deck in decks) / len(decks)) if decks else 0,
        "decks_by_status": dict(by_status),
        "total_sessions": len(sessions),
        "cards_studied": cards_studied,
        "accuracy": round(100 * correct / cards_studied) if cards_studied else 0,
        **streaks,
        "history": [history[day] for day in sorted(history)],
    }
