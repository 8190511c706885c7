import logging
from typing import Optional
from src.db.session import new_session
from src.models.account import Account
from src.services.errors import PermissionDenied

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")


def get_account(account_id: str) -> Optional[Account]:
    if not account_id:
        return None
    with new_session() as session:
        return session.get(Account, account_id)


def require_account(account_id: str) -> Account:
    account = get_account(account_id)
    if account is None:
        raise PermissionDenied(detail=f"Unknown account {account_id!r}")
    return account


def ensure_account(account_id: str, display_name: Optional[str] = None,
                   email: Optional[str] = None) -> Account:
    """Cria a conta no primeiro acesso (o provedor de identidade já validou o id)."""
    with new_session() as session:
        account = session.get(Account, account_id)
        if account is None:
            account = Account(id=account_id, display_name=display_name, email=email)
            session.add(account)
            session.commit()
            session.refresh(account)
            logger.info(f"👤 Conta criada: {account_id}")
        return account


def update_preferences(account_id: str, display_name: Optional[str] = None,
                       theme: Optional[str] = None,
                       notifications_enabled: Optional[bool] = None) -> Account:
    if theme is not None and theme not in THEMES:
        raise ValueError(f"theme must be one of {THEMES}")

    with new_session() as session:
        account = session.get(Account, account_id)
        if account is None:
            raise PermissionDenied(detail=f"Unknown account {account_id!r}")
        if display_name is not None:
            account.display_name = display_name
        if theme is not None:
            account.theme = theme
        if notifications_enabled is not None:
            account.notifications_enabled = notifications_enabled
        session.add(account)
        session.commit()
        session.refresh(account)
        return account
