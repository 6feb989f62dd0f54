"""
NoteKeeper Backend: Template Route Handlers
============================================

GET /api/templates        catalogue, optional ?category= filter
GET /api/templates/{id}   one template with {date} filled in
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from notekeeper.dependencies import get_current_user
from notekeeper.models.user import User
from notekeeper.schemas.common import ErrorResponse
from notekeeper.schemas.template import TemplateListResponse, TemplateResponse
from notekeeper.services.templates import TEMPLATES, get_template, list_templates

router = APIRouter(prefix="/api/templates", tags=["Templates"])


@router.get("", response_model=TemplateListResponse, summary="List note templates")
async def get_templates(
    category: Optional[str] = Query(default=None, description="Case-insensitive category, or 'all'"),
    user: User = Depends(get_current_user),
) -> TemplateListResponse:
    categories = sorted({template.category.lower() for template in TEMPLATES})
    return TemplateListResponse(
        templates=[TemplateResponse.model_validate(t) for t in list_templates(category)],
        categories=categories,
    )


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    responses={404: {"description": "Unknown template", "model": ErrorResponse}},
    summary="Get one template",
)
async def get_template_by_id(
    template_id: str,
    user: User = Depends(get_current_user),
) -> TemplateResponse:
    return TemplateResponse.model_validate(get_template(template_id))
