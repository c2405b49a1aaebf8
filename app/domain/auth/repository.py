from typing import Optional
from sqlalchemy import func
import uuid

from app.core.clock import utcnow
from app.domain.auth.models import UserAccount


class UserAccountRepository:
    """Repository for login account data access operations"""

    def __init__(self, db):
        self.db = db

    def create(self, email: str, password: str) -> UserAccount:
        """Create a new account with a hashed password"""
        account = UserAccount(email=email.strip().lower())
        account.set_password(password)
        self.db.add(account)
        self.db.flush()
        return account

    def get_by_id(self, account_id: uuid.UUID) -> Optional[UserAccount]:
        return self.db.query(UserAccount).filter(UserAccount.id == account_id).first()

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        """Case-insensitive lookup by e-mail"""
        return self.db.query(UserAccount).filter(
            func.lower(UserAccount.email) == email.strip().lower()
        ).first()

    def update_last_login(self, account: UserAccount) -> None:
        account.last_login_at = utcnow()
        self.db.commit()

    def set_password(self, account: UserAccount, password: str) -> None:
        account.set_password(password)
        account.password_changed_at = utcnow()
        self.db.commit()
