"""
NoteKeeper Backend: Note Request/Response Schemas
==================================================

What:  Pydantic models defining the notes API contract.
How:   Request models use extra="forbid" so unknown fields are rejected at
       the boundary; response models read straight from ORM objects
       (from_attributes).
Who:   Routes validate payloads with them; NoteService returns them.

Business rules (non-blank title/category after trimming, partial-update
semantics) are enforced by NoteService, not here, so the same rules apply
to every caller of the service.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """
    What:  Scalar fields of a new note (images travel as multipart parts).
    Who:   POST /api/notes, from either form fields or a JSON body.
    """
    title: str = Field(max_length=255, description="Note title (required, trimmed)")
    category: str = Field(max_length=100, description="Free-form category (required, trimmed)")
    content: str = Field(default="", description="Body text, may be empty")
    template: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Id of the template this note was started from",
    )

    model_config = {"extra": "forbid"}


class NoteUpdate(BaseModel):
    """
    What:  Partial update of a note's scalar fields.

    Omitted (None) fields are left unchanged. Blank title/category are
    ignored the same way; content is the only field that can be cleared
    by sending an empty string.
    """
    title: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    content: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ImageResponse(BaseModel):
    """An attachment as exposed to clients; the storage handle stays server-side."""
    id: uuid.UUID = Field(description="Attachment id, used by DELETE .../images/{image_id}")
    url: str = Field(description="Durable image URL")

    model_config = {"from_attributes": True}


class OwnerSummary(BaseModel):
    """Owner identity fields resolved onto every returned note."""
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str

    model_config = {"from_attributes": True}


class NoteResponse(BaseModel):
    """
    What:  Full representation of a note.
    Who:   Returned by every single-note endpoint and inside list responses.

    `images` keeps the stored order; images[0] is the cover image.
    """
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    title: str
    category: str
    content: str
    images: List[ImageResponse] = Field(default_factory=list)
    is_favorite: bool
    template: Optional[str] = None
    owner: OwnerSummary
    last_viewed: datetime = Field(description="Last single-note read (UTC)")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    """Notes owned by the caller, newest first. No pagination."""
    notes: List[NoteResponse] = Field(description="Notes ordered by created_at descending")
    total_count: int = Field(description="Number of notes returned")


class NoteStats(BaseModel):
    """
    What:  Analytics panel numbers for the caller's notes.

    categories_count and category_breakdown compare categories
    case-insensitively ("Work" and "work" are one category).
    """
    total_notes: int
    favorite_notes: int
    notes_with_images: int
    total_images: int
    categories_count: int
    recent_notes: int = Field(description="Notes created in the last 7 days")
    category_breakdown: Dict[str, int] = Field(default_factory=dict)


class DeleteResponse(BaseModel):
    """Confirmation body for delete endpoints."""
    message: str
    id: uuid.UUID
