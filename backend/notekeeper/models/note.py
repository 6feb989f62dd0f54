"""
NoteKeeper Backend: Note SQLAlchemy Models
===========================================

What:  ORM models for the `notes` and `note_images` tables.
Who:   NoteStore queries them; NoteService mutates them; Alembic migrates them.

Table Design:
    notes
        - owner_id is set once at creation and never reassigned
        - last_viewed is bumped by every single-note read
        - template keeps the catalogue id the note was started from (or NULL)
        - (owner_id, created_at) index serves the "my notes, newest first" list

    note_images
        - one row per image attachment, owned by exactly one note
        - position is the 0-based index inside the note; position 0 is the
          cover image. Maintained by `ordering_list`, so appends go to the end
          and removals close the gap
        - url and storage_handle are both NOT NULL: an attachment row only
          exists once the object store returned both values

Lifecycle:
    1. Created by NoteService.create (images = uploads that succeeded)
    2. Updated in place (fields, favorite flag, appended images, last_viewed)
    3. Hard-deleted; image rows go with it through the delete-orphan cascade
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notekeeper.database import Base
from notekeeper.models.types import UTCDateTime, utcnow
from notekeeper.models.user import User


class NoteImage(Base):
    """An image attachment hosted by the object storage gateway."""

    __tablename__ = "note_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Durable retrieval URL returned by the storage gateway",
    )

    storage_handle: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Opaque key used to delete the object from the storage gateway",
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<NoteImage(id={self.id}, note_id={self.note_id}, position={self.position})>"


class Note(Base):
    """A user's note with its ordered image attachments."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    template: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default=None)

    last_viewed: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    # Set explicitly by NoteService on edits; a view only moves last_viewed
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # Many-to-one, eagerly joined so owner fields are available after any load
    owner: Mapped[User] = relationship(lazy="joined")

    # selectin: async sessions cannot lazy-load on attribute access
    images: Mapped[List[NoteImage]] = relationship(
        order_by=NoteImage.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_notes_owner_created_at", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, owner_id={self.owner_id}, "
            f"title='{self.title}', images={len(self.images)})>"
        )
