"""
Rooms persistence (raw SQL).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from core import db

from .schemas import RoomCreate


async def list_rooms() -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, name, description, created_at
        FROM rooms
        ORDER BY created_at ASC, id ASC
        """
    )


async def insert_rooms(rooms: Sequence[RoomCreate]) -> int:
    """
    Insert rooms in one transaction. Returns how many were written.
    """
    if not rooms:
        return 0
    await db.execute_many(
        """
        INSERT INTO rooms (name, description)
        VALUES ($1, $2)
        """,
        [(room.name.strip(), room.description) for room in rooms],
    )
    return len(rooms)
