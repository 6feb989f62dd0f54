"""
NoteKeeper Backend: Notes Route Handlers
=========================================

What:  The /api/notes endpoints.
How:   Resolves the caller through get_current_user, parses the request into
       validated pydantic models plus ImageUpload parts, and delegates to
       NoteService / ExportService.
Who:   The web client.

Request bodies for create/update:
    multipart/form-data  text fields + repeatable `images` file parts
    application/json     text fields only

    Both are read by hand instead of through Form(...) parameters: FastAPI
    turns an empty form string into "missing", which would make
    `content=""` (clearing a note's body) impossible to express.

Endpoints:
    GET    /api/notes                          list (category, favorites, q)
    POST   /api/notes                          create
    GET    /api/notes/stats                    analytics
    GET    /api/notes/export                   download json|txt
    GET    /api/notes/{id}                     get (records last_viewed)
    PUT    /api/notes/{id}                     update, appending images
    PATCH  /api/notes/{id}/favorite            toggle favorite
    DELETE /api/notes/{id}                     delete note and its images
    DELETE /api/notes/{id}/images/{image_id}   delete one image
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from notekeeper.database import get_db_session
from notekeeper.dependencies import (
    get_current_user,
    get_export_service,
    get_file_service,
    get_note_service,
)
from notekeeper.exceptions import ValidationError
from notekeeper.models.user import User
from notekeeper.schemas.common import ErrorResponse
from notekeeper.schemas.note import (
    DeleteResponse,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteStats,
    NoteUpdate,
)
from notekeeper.services.export_service import ExportService
from notekeeper.services.file_service import FileService, ImageUpload
from notekeeper.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

ModelT = TypeVar("ModelT", bound=BaseModel)

IMAGE_FIELD = "images"

NOTE_BODY_DOC = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "category": {"type": "string"},
                        "content": {"type": "string"},
                        "template": {"type": "string"},
                        "images": {"type": "array", "items": {"type": "string", "format": "binary"}},
                    },
                }
            },
            "application/json": {"schema": {"type": "object"}},
        }
    }
}


# ══════════════════════════════════════════════════════════════════════════
# Request parsing
# ══════════════════════════════════════════════════════════════════════════


def _validate_fields(model: Type[ModelT], fields: Dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(
            message=f"Invalid value for '{field}': {first.get('msg')}" if field else first.get("msg"),
            field=field,
            context={"errors": e.errors(include_url=False, include_context=False)},
        )


async def _read_images(parts: List[UploadFile], files: FileService) -> List[ImageUpload]:
    files.validate_count(len(parts))
    images = []
    for part in parts:
        try:
            content = await part.read()
        finally:
            await part.close()
        images.append(files.validate_image(part.filename, part.content_type, content, part.size))
    return images


async def _read_note_request(
    request: Request,
    model: Type[ModelT],
    files: FileService,
) -> Tuple[ModelT, List[ImageUpload]]:
    """
    Parse a create/update request into (validated fields, validated images).

    Raises:
        ValidationError: malformed body, unknown fields, bad image parts
    """
    content_type = request.headers.get("content-type", "").lower()
    fields: Dict[str, Any] = {}
    parts: List[UploadFile] = []

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                # A browser sends an empty, unnamed part for an untouched file input
                if key == IMAGE_FIELD and not value.filename and not value.size:
                    continue
                if key != IMAGE_FIELD:
                    raise ValidationError(message=f"Unexpected file field '{key}'.", field=key)
                parts.append(value)
            elif key in fields:
                raise ValidationError(message=f"Field '{key}' was sent more than once.", field=key)
            else:
                fields[key] = value
    else:
        raw = await request.body()
        if raw.strip():
            try:
                body = json.loads(raw)
            except ValueError:
                raise ValidationError(message="Request body is not valid JSON.")
            if not isinstance(body, dict):
                raise ValidationError(message="Request body must be a JSON object.")
            fields = body

    data = _validate_fields(model, fields)
    images = await _read_images(parts, files)
    return data, images


def _parse_ids(raw: Optional[str]) -> Optional[List[uuid.UUID]]:
    if raw is None or not raw.strip():
        return None
    ids = []
    for value in raw.split(","):
        value = value.strip()
        if not value:
            continue
        try:
            ids.append(uuid.UUID(value))
        except ValueError:
            raise ValidationError(message=f"'{value}' is not a valid note id.", field="ids")
    return ids


# ══════════════════════════════════════════════════════════════════════════
# Collection endpoints
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=NoteListResponse,
    summary="List the caller's notes, newest first",
)
async def list_notes(
    response: Response,
    category: Optional[str] = Query(default=None, description="Case-insensitive category match"),
    favorites: bool = Query(default=False, description="Only favorite notes"),
    q: Optional[str] = Query(default=None, max_length=200, description="Search title and content"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    result = await notes.list_notes(
        db, user, category=category, favorites_only=favorites, search=q,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post(
    "",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing title/category or invalid image", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
    },
    summary="Create a note",
    description=(
        "Accepts multipart/form-data (with optional repeatable `images` parts) or JSON. "
        "Images that fail to upload are skipped; the note is created with the rest."
    ),
    openapi_extra=NOTE_BODY_DOC,
)
async def create_note(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
    files: FileService = Depends(get_file_service),
) -> NoteResponse:
    data, images = await _read_note_request(request, NoteCreate, files)
    return await notes.create(db, user, data, images)


@router.get("/stats", response_model=NoteStats, summary="Analytics for the caller's notes")
async def note_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteStats:
    return await notes.stats(db, user)


@router.get(
    "/export",
    response_class=Response,
    responses={
        200: {
            "description": "Export file",
            "content": {"application/json": {}, "text/plain": {}},
        },
        400: {"description": "Unknown format or malformed id", "model": ErrorResponse},
    },
    summary="Download notes as JSON or text",
)
async def export_notes(
    format: str = Query(default="json", description="json or txt"),
    ids: Optional[str] = Query(default=None, description="Comma-separated note ids"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    exporter: ExportService = Depends(get_export_service),
) -> Response:
    export = await exporter.export(db, user, export_format=format, ids=_parse_ids(ids))
    return Response(
        content=export.body,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# ══════════════════════════════════════════════════════════════════════════
# Single-note endpoints
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Get a note",
    description="Also records the view time in last_viewed.",
)
async def get_note(
    note_id: uuid.UUID,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    result = await notes.get(db, user, note_id)
    response.headers["Cache-Control"] = "private, no-cache"
    return result


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Invalid field or image", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Update a note",
    description=(
        "Omitted or blank title/category keep their value; content may be cleared with an "
        "empty string. New images are appended after the existing ones."
    ),
    openapi_extra=NOTE_BODY_DOC,
)
async def update_note(
    note_id: uuid.UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
    files: FileService = Depends(get_file_service),
) -> NoteResponse:
    data, images = await _read_note_request(request, NoteUpdate, files)
    return await notes.update(db, user, note_id, data, images)


@router.patch(
    "/{note_id}/favorite",
    response_model=NoteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Toggle the favorite flag",
)
async def toggle_favorite(
    note_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    return await notes.toggle_favorite(db, user, note_id)


@router.delete(
    "/{note_id}",
    response_model=DeleteResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Delete a note and its images",
)
async def delete_note(
    note_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> DeleteResponse:
    await notes.delete(db, user, note_id)
    return DeleteResponse(message="Note deleted successfully", id=note_id)


@router.delete(
    "/{note_id}/images/{image_id}",
    response_model=NoteResponse,
    responses={404: {"description": "Note or image not found", "model": ErrorResponse}},
    summary="Remove one image from a note",
)
async def delete_note_image(
    note_id: uuid.UUID,
    image_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    notes: NoteService = Depends(get_note_service),
) -> NoteResponse:
    return await notes.delete_image(db, user, note_id, image_id)
