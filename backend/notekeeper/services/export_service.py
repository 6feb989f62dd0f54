"""
NoteKeeper Backend: Export Service
===================================

What:  Renders the caller's notes as a downloadable JSON or plain-text file.
Who:   GET /api/notes/export.

Text layout:
    # My Notes Export

    Exported on: 2024-01-15
    Total Notes: 2

    ==================================================

    ## 1. <title>
    **Category:** <category>
    **Created:** <YYYY-MM-DD>
    **Favorite:** Yes|No

    **Content:**
    <content>

    **Images:** 2 attached
      1. <url>
      2. <url>

    --------------------------------------------------
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.exceptions import ValidationError
from notekeeper.models.types import utcnow
from notekeeper.models.user import User
from notekeeper.schemas.note import NoteResponse
from notekeeper.services.note_store import NoteStore, note_store

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {
    "json": "application/json",
    "txt": "text/plain; charset=utf-8",
}

RULE_WIDTH = 50


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    body: str


class ExportService:
    def __init__(self, store: Optional[NoteStore] = None):
        self.store = store or note_store

    def render_text(self, notes: Sequence[NoteResponse]) -> str:
        lines: List[str] = [
            "# My Notes Export",
            "",
            f"Exported on: {utcnow().date().isoformat()}",
            f"Total Notes: {len(notes)}",
            "",
            "=" * RULE_WIDTH,
            "",
        ]
        for index, note in enumerate(notes, start=1):
            lines.append(f"## {index}. {note.title}")
            lines.append(f"**Category:** {note.category}")
            lines.append(f"**Created:** {note.created_at.date().isoformat()}")
            lines.append(f"**Favorite:** {'Yes' if note.is_favorite else 'No'}")
            lines.append("")
            if note.content:
                lines.append("**Content:**")
                lines.append(note.content)
                lines.append("")
            if note.images:
                lines.append(f"**Images:** {len(note.images)} attached")
                for image_index, image in enumerate(note.images, start=1):
                    lines.append(f"  {image_index}. {image.url}")
                lines.append("")
            lines.append("-" * RULE_WIDTH)
            lines.append("")
        return "\n".join(lines)

    def render_json(self, notes: Sequence[NoteResponse]) -> str:
        payload = {
            "exported_at": utcnow().isoformat(),
            "total_notes": len(notes),
            "notes": [note.model_dump(mode="json") for note in notes],
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    async def export(
        self,
        db: AsyncSession,
        owner: User,
        export_format: str = "json",
        ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> ExportFile:
        """
        Build the export file.

        Args:
            export_format: "json" or "txt"
            ids:           optional subset; ids that are not the caller's are ignored

        Raises:
            ValidationError: unknown format
        """
        export_format = (export_format or "").lower()
        if export_format not in EXPORT_FORMATS:
            raise ValidationError(
                message=f"Unsupported export format '{export_format}'. Use one of: json, txt.",
                field="format",
            )

        rows = await self.store.list_owned(db, owner.id, ids=ids)
        notes = [NoteResponse.model_validate(row) for row in rows]

        if export_format == "txt":
            body = self.render_text(notes)
        else:
            body = self.render_json(notes)

        filename = f"notes-export-{utcnow().date().isoformat()}.{export_format}"
        logger.info("Exported %d note(s) as %s for user %s", len(notes), export_format, owner.id)
        return ExportFile(filename=filename, media_type=EXPORT_FORMATS[export_format], body=body)


export_service = ExportService()
