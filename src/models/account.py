from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from src.models.common import utcnow


class Account(SQLModel, table=True):
    # id opaco vindo do provedor de identidade
    id: str = Field(primary_key=True)
    display_name: Optional[str] = None
    email: Optional[str] = None
    theme: str = "light"
    notifications_enabled: bool = True
    created_at: datetime = Field(default_factory=utcnow)
