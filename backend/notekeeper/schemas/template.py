"""
NoteKeeper Backend: Template Response Schemas
"""

from typing import List

from pydantic import BaseModel


class TemplateResponse(BaseModel):
    id: str
    name: str
    icon: str
    category: str
    content: str

    model_config = {"from_attributes": True}


class TemplateListResponse(BaseModel):
    templates: List[TemplateResponse]
    categories: List[str]
