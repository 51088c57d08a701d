"""Credential store: persistence of user records with uniqueness on email and username."""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import UserExistsError
from app.core.security import normalize_email
from app.models import Role, User

logger = logging.getLogger(__name__)

# Profile fields a user may change about themselves.
PROFILE_FIELDS = ("display_name", "bio", "phone_number")


class UserStore:
    """
    Data access for users on an explicitly passed session.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def exists(self, email: str, username: str) -> bool:
        return (
            self.db.query(User.id)
            .filter(or_(User.email == normalize_email(email), User.username == username))
            .first()
            is not None
        )

    def create(
        self,
        *,
        email: str,
        username: str,
        password_hash: str,
        display_name: str | None = None,
        role: Role = Role.USER,
    ) -> User:
        """
        Insert a user. Raises UserExistsError when email or username is taken.

        The unique indexes are the source of truth: two concurrent inserts of the
        same email cannot both flush, whatever the pre-checks saw.
        """
        user = User(
            email=normalize_email(email),
            username=username,
            password_hash=password_hash,
            display_name=display_name,
            role=role.value,
        )
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("User insert rejected by unique constraint", extra={"username": username})
            raise UserExistsError() from e
        return user

    def get_by_id(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def list_users(
        self,
        offset: int = 0,
        limit: int = 50,
        role: Role | None = None,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        """
        Return a page of users, newest first, plus the total matching count.

        `search` matches username, email or display name as a case-insensitive substring.
        """
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role.value)
        if search:
            needle = search.strip().lower()
            query = query.filter(
                or_(
                    func.lower(User.username).contains(needle, autoescape=True),
                    func.lower(User.email).contains(needle, autoescape=True),
                    func.lower(User.display_name).contains(needle, autoescape=True),
                )
            )
        total = query.count()
        users = query.order_by(User.created_at.desc(), User.id).offset(offset).limit(limit).all()
        return users, total

    def update_profile(self, user: User, fields: dict[str, str | None]) -> User:
        for name, value in fields.items():
            if name in PROFILE_FIELDS:
                setattr(user, name, value)
        self.db.flush()
        return user

    def set_password_hash(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        self.db.flush()

    def touch_last_login(self, user: User) -> None:
        user.last_login_at = datetime.now(UTC)
        self.db.flush()

    def set_active(self, user: User, active: bool) -> None:
        user.is_active = active
        self.db.flush()

    def delete(self, user: User) -> None:
        """Remove the user; their refresh tokens go with them (FK cascade)."""
        self.db.delete(user)
        self.db.flush()
