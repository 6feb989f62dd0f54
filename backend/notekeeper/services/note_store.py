"""
NoteKeeper Backend: Note Store
===============================

What:  Owner-scoped persistence for notes and their image attachments.
How:   Every lookup filters on (id, owner_id) together. There is
       no method that loads a note by id alone.
Who:   NoteService and ExportService.

Query plan (list_owned, no filters):
    SELECT * FROM notes WHERE owner_id = :owner ORDER BY created_at DESC
    → idx_notes_owner_created_at; images come in one extra SELECT ... IN
      (selectin loading), owner fields through the joined eager load
"""

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.exceptions import DatabaseError, NotFoundError
from notekeeper.models.note import Note

logger = logging.getLogger(__name__)


class NoteStore:
    """Scoped CRUD on the `notes` table."""

    async def add(self, db: AsyncSession, note: Note) -> Note:
        db.add(note)
        await self.flush(db, note)
        return note

    async def get_owned(self, db: AsyncSession, note_id: uuid.UUID, owner_id: uuid.UUID) -> Note:
        """
        Raises:
            NotFoundError: absent, or owned by someone else (indistinguishable)
        """
        try:
            result = await db.execute(
                select(Note).where(Note.id == note_id, Note.owner_id == owner_id)
            )
            note = result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def list_owned(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        category: Optional[str] = None,
        favorites_only: bool = False,
        search: Optional[str] = None,
        ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> List[Note]:
        """
        Notes of one owner, newest first.

        Args:
            category:       case-insensitive exact match
            favorites_only: only notes with is_favorite set
            search:         case-insensitive substring of title or content
            ids:            restrict to these ids (unknown ids simply match nothing)
        """
        query = select(Note).where(Note.owner_id == owner_id)

        if category and category.strip():
            query = query.where(func.lower(Note.category) == category.strip().lower())
        if favorites_only:
            query = query.where(Note.is_favorite.is_(True))
        if search and search.strip():
            term = search.strip()
            query = query.where(
                or_(
                    Note.title.icontains(term, autoescape=True),
                    Note.content.icontains(term, autoescape=True),
                )
            )
        if ids is not None:
            query = query.where(Note.id.in_(list(ids)))

        query = query.order_by(desc(Note.created_at), desc(Note.id))

        try:
            result = await db.execute(query)
            return list(result.unique().scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def delete(self, db: AsyncSession, note: Note) -> None:
        await db.delete(note)
        await self.flush(db, note)

    async def flush(self, db: AsyncSession, note: Note) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error writing note %s: %s", note.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )


note_store = NoteStore()
