"""
Pydantic schemas for rooms.

The table itself is created by migration 2 in `core/migrations.py`; these
models mirror its columns and constraints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class Room(BaseModel):
    id: UUID
    name: str = Field(..., min_length=1)
    description: str | None = None
    created_at: datetime
