"""Pydantic schemas for posts."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    body: Optional[str] = None


class PostUpdate(BaseModel):
    """Partial update. Only fields present in the request are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    body: Optional[str] = None


class PostRead(BaseModel):
    id: int
    title: str
    body: Optional[str] = None
    owner_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
