"""User accounts and their storage."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, String, Uuid, create_engine, delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, MappedAsDataclass, Session, mapped_column, validates

from shopmesh.auth import UserRole

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class _Base(MappedAsDataclass, DeclarativeBase):
    pass


class User(_Base):
    """A registered account; the password column holds a hash."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False, repr=False)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default_factory=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.BUYER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    @validates("role")
    def _normalise_role(self, _key: str, value: Any) -> str:
        return value.value if isinstance(value, UserRole) else str(value)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view of the user; the password hash is never included."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "deleted_at": _iso(self.deleted_at),
        }


@dataclass(frozen=True)
class PartnerSummary:
    id: uuid.UUID
    name: str

    @classmethod
    def from_user(cls, user: User) -> "PartnerSummary":
        return cls(id=user.id, name=user.name)

    def to_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "name": self.name}


class UserNotFound(LookupError):
    """Raised when no user matches a lookup."""


def init_db(url: str) -> Engine:
    """Open the database at url and create the users table if needed."""
    engine = create_engine(url)
    _Base.metadata.create_all(engine)
    return engine


class UserRepository:
    """Stores users in a relational database."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    def create_user(self, user: User) -> User:
        user.updated_at = _now()
        with self._session() as session:
            session.add(user)
            session.commit()
        return user

    def get_user_by_id(self, user_id: uuid.UUID) -> User:
        with self._session() as session:
            user = session.get(User, user_id)
        if user is None:
            raise UserNotFound("record not found")
        return user

    def get_user_by_email(self, email: str) -> User:
        log.info("Searching for user with email: %s", email)
        with self._session() as session:
            user = session.scalars(
                select(User).where(User.email == email).order_by(User.id).limit(1)
            ).first()
        if user is None:
            log.info("No user with email: %s", email)
            raise UserNotFound("record not found")
        log.info("Found user: %s", user.id)
        return user

    def update_user(self, user: User) -> User:
        user.updated_at = _now()
        with self._session() as session:
            merged = session.merge(user)
            session.commit()
        return merged

    def delete_user(self, user_id: uuid.UUID) -> None:
        with self._session() as session:
            session.execute(delete(User).where(User.id == user_id))
            session.commit()

    def set_user_active(self, user_id: uuid.UUID, is_active: bool) -> None:
        with self._session() as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(is_active=is_active, updated_at=_now())
            )
            session.commit()

    def get_all_users(self) -> list[User]:
        with self._session() as session:
            return list(session.scalars(select(User)))

    def get_partners(self) -> list[User]:
        with self._session() as session:
            return list(
                session.scalars(select(User).where(User.role == UserRole.PARTNER.value))
            )