"""
Rooms service: maps repository rows to typed `Room` objects.
"""

from __future__ import annotations

from . import repository, schemas


def _to_room(row: dict) -> schemas.Room:
    return schemas.Room(
        id=row["id"],
        name=str(row["name"]),
        description=row.get("description"),
        created_at=row["created_at"],
    )


async def list_rooms() -> list[schemas.Room]:
    rows = await repository.list_rooms()
    return [_to_room(row) for row in rows]
