import uuid
from datetime import datetime, timezone
from enum import Enum


def new_document_id() -> str:
    # Ids atribuídos pelo store no momento do insert (32 chars hex)
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Timestamps sempre com fuso (UTC); o SQLite devolve o valor sem tzinfo
    return datetime.now(timezone.utc)


class DeckStatus(str, Enum):
    NEW = "New"
    IMPORTED = "Imported"
    NEEDS_REVIEW = "Needs Review"
    MASTERED = "Mastered"
