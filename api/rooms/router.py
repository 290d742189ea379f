"""
Rooms API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import schemas, service

router = APIRouter()


@router.get("/rooms", response_model=list[schemas.Room])
async def list_rooms() -> list[schemas.Room]:
    """
    Return every room. Storage failures become 503 (see `main.py`).
    """
    return await service.list_rooms()
