"""
NoteKeeper Backend: User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table (account identity records).
Who:   CredentialStore reads/writes it; Note.owner points at it.

Table Design:
    - email is stored lower-cased, so the unique index gives
      case-insensitive uniqueness without a functional index
    - password_hash is a passlib bcrypt hash; plaintext is never stored
    - token_version is embedded in every issued token as the `ver` claim;
      bumping it revokes all tokens issued before the bump
    - users are never hard-deleted
"""

import uuid
from datetime import datetime

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notekeeper.database import Base
from notekeeper.models.types import UTCDateTime, utcnow


class User(Base):
    """An account that owns notes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased login email",
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    token_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Incremented on password change to revoke older tokens",
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
