"""
NoteKeeper Backend: Note Service (Note Lifecycle Orchestrator)
===============================================================

What:  The only component that talks to both the Note Store and the Object
       Storage Gateway inside one operation.
How:   Validates input, runs image uploads/deletes through the gateway and
       persists the outcome through NoteStore.
Who:   Called by the notes routes with the authenticated User.

Create / update flow:
    ┌───────────┐    ┌──────────────────┐    ┌──────────────┐    ┌─────────┐
    │ Validate  │───▶│ Upload images    │───▶│ Attach the   │───▶│ Persist │
    │ fields    │    │ concurrently     │    │ successes in │    │ (flush) │
    └───────────┘    │ (gather, bounded │    │ input order  │    └─────────┘
                     │  by a timeout)   │    └──────────────┘
                     └──────────────────┘

Consistency rules:
    - Uploads are best effort: a failed or timed-out upload is logged and
      skipped; the note is still written with the images that did upload
    - A stored attachment always has both url and storage handle
    - Deletes go to the object store first and the database second; a failed
      remote delete is logged and never blocks the database change, so the
      worst case is an orphaned object, never a dangling attachment
    - No transaction spans the object store and the database
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.config import settings
from notekeeper.exceptions import NotFoundError, ValidationError
from notekeeper.models.note import Note, NoteImage
from notekeeper.models.types import utcnow
from notekeeper.models.user import User
from notekeeper.schemas.note import (
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteStats,
    NoteUpdate,
)
from notekeeper.services.file_service import ImageUpload
from notekeeper.services.note_store import NoteStore, note_store
from notekeeper.services.storage_base import ObjectStorageGateway, StorageFailure, UploadSuccess

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)


def _required(value: Optional[str], field: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise ValidationError(message=f"{field.capitalize()} is required.", field=field)
    return trimmed


class NoteService:
    """
    Business logic for the note lifecycle.

    Args:
        storage: Gateway that hosts image bytes
        store:   Owner-scoped note persistence
        folder:  Storage folder for uploaded images

    The service keeps no per-request state; the database session and the
    caller's User are passed into every method.
    """

    def __init__(
        self,
        storage: ObjectStorageGateway,
        store: Optional[NoteStore] = None,
        folder: Optional[str] = None,
    ):
        self.storage = storage
        self.store = store or note_store
        self.folder = folder or settings.storage_folder

    # ── Internal helpers ──────────────────────────────────────────────────

    async def _upload_all(self, images: Sequence[ImageUpload]) -> List[NoteImage]:
        """
        Upload every image concurrently and keep the successes.

        gather() returns results in input order, so the attachment order
        follows the request order whatever order the uploads finish in.
        """
        if not images:
            return []

        results = await asyncio.gather(
            *(self.storage.upload(image.content, self.folder, image.content_type) for image in images)
        )

        attachments: List[NoteImage] = []
        for image, result in zip(images, results):
            if isinstance(result, UploadSuccess):
                attachments.append(NoteImage(url=result.url, storage_handle=result.handle))
            else:
                logger.warning(
                    "Skipping image %s: upload failed (%s)", image.filename, result.reason,
                )
        if len(attachments) < len(images):
            logger.warning("%d of %d image uploads failed", len(images) - len(attachments), len(images))
        return attachments

    async def _delete_remote(self, note: Note, image: NoteImage) -> None:
        result = await self.storage.delete(image.storage_handle)
        if isinstance(result, StorageFailure):
            logger.warning(
                "Could not delete image %s of note %s from storage (handle=%s): %s",
                image.id, note.id, image.storage_handle, result.reason,
            )

    # ── Operations ────────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        owner: User,
        data: NoteCreate,
        images: Sequence[ImageUpload] = (),
    ) -> NoteResponse:
        """
        Create a note owned by `owner`.

        Raises:
            ValidationError: blank title or category (checked before any upload)
            DatabaseError:   the note could not be persisted

        Returns:
            The stored note with its owner fields and the images that uploaded.
        """
        title = _required(data.title, "title")
        category = _required(data.category, "category")

        attachments = await self._upload_all(images)

        now = utcnow()
        note = Note(
            owner=owner,
            title=title,
            category=category,
            content=(data.content or "").strip(),
            template=(data.template or "").strip() or None,
            is_favorite=False,
            last_viewed=now,
            created_at=now,
            updated_at=now,
            images=attachments,
        )
        await self.store.add(db, note)
        logger.info("Note %s created with %d image(s)", note.id, len(attachments))
        return NoteResponse.model_validate(note)

    async def get(self, db: AsyncSession, owner: User, note_id: uuid.UUID) -> NoteResponse:
        """Fetch one note and record the view in last_viewed."""
        note = await self.store.get_owned(db, note_id, owner.id)
        note.last_viewed = utcnow()
        await self.store.flush(db, note)
        return NoteResponse.model_validate(note)

    async def list_notes(
        self,
        db: AsyncSession,
        owner: User,
        category: Optional[str] = None,
        favorites_only: bool = False,
        search: Optional[str] = None,
    ) -> NoteListResponse:
        """All of the owner's notes, newest first, optionally filtered."""
        notes = await self.store.list_owned(
            db,
            owner.id,
            category=category,
            favorites_only=favorites_only,
            search=search,
        )
        return NoteListResponse(
            notes=[NoteResponse.model_validate(note) for note in notes],
            total_count=len(notes),
        )

    async def update(
        self,
        db: AsyncSession,
        owner: User,
        note_id: uuid.UUID,
        data: NoteUpdate,
        images: Sequence[ImageUpload] = (),
    ) -> NoteResponse:
        """
        Partial update plus appended images.

        Omitted or blank title/category keep their value; content is trimmed and replaced
        whenever it is provided, including with "". updated_at is refreshed
        even when nothing else changes.
        """
        note = await self.store.get_owned(db, note_id, owner.id)

        if data.title is not None and data.title.strip():
            note.title = data.title.strip()
        if data.category is not None and data.category.strip():
            note.category = data.category.strip()
        if data.content is not None:
            note.content = data.content.strip()

        attachments = await self._upload_all(images)
        note.images.extend(attachments)

        note.updated_at = utcnow()
        await self.store.flush(db, note)
        logger.info("Note %s updated (%d image(s) appended)", note.id, len(attachments))
        return NoteResponse.model_validate(note)

    async def toggle_favorite(self, db: AsyncSession, owner: User, note_id: uuid.UUID) -> NoteResponse:
        note = await self.store.get_owned(db, note_id, owner.id)
        note.is_favorite = not note.is_favorite
        note.updated_at = utcnow()
        await self.store.flush(db, note)
        return NoteResponse.model_validate(note)

    async def delete(self, db: AsyncSession, owner: User, note_id: uuid.UUID) -> None:
        """
        Remove every image from storage (best effort), then delete the note.

        The row is deleted even when some or all remote deletes fail.
        """
        note = await self.store.get_owned(db, note_id, owner.id)
        for image in list(note.images):
            await self._delete_remote(note, image)
        await self.store.delete(db, note)
        logger.info("Note %s deleted", note_id)

    async def delete_image(
        self,
        db: AsyncSession,
        owner: User,
        note_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> NoteResponse:
        """
        Detach one image, deleting it from storage first (best effort).

        Raises:
            NotFoundError: note not owned/absent, or image not part of the note
        """
        note = await self.store.get_owned(db, note_id, owner.id)
        image = next((img for img in note.images if img.id == image_id), None)
        if image is None:
            raise NotFoundError(resource="image", resource_id=str(image_id))

        await self._delete_remote(note, image)
        note.images.remove(image)
        note.updated_at = utcnow()
        await self.store.flush(db, note)
        logger.info("Image %s removed from note %s", image_id, note.id)
        return NoteResponse.model_validate(note)

    async def stats(self, db: AsyncSession, owner: User) -> NoteStats:
        """Analytics panel numbers; categories are compared case-insensitively."""
        notes = await self.store.list_owned(db, owner.id)
        recent_cutoff = utcnow() - RECENT_WINDOW

        breakdown = {}
        for note in notes:
            key = note.category.strip().lower()
            breakdown[key] = breakdown.get(key, 0) + 1

        return NoteStats(
            total_notes=len(notes),
            favorite_notes=sum(1 for note in notes if note.is_favorite),
            notes_with_images=sum(1 for note in notes if note.images),
            total_images=sum(len(note.images) for note in notes),
            categories_count=len(breakdown),
            recent_notes=sum(1 for note in notes if note.created_at >= recent_cutoff),
            category_breakdown=breakdown,
        )
