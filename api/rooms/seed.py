"""
Development seed data for the `rooms` table.

Not idempotent: every run inserts a fresh batch.

Usage:
    python -m rooms.seed                      # 10 rooms
    python -m rooms.seed --count 50 --random-seed 7
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from collections.abc import Sequence

from core import db
from core.log import configure_logging
from core.settings import ConfigurationInvalid, get_settings

from . import repository
from .schemas import RoomCreate

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 10

_ADJECTIVES = [
    "Blue", "Quiet", "North", "Sunny", "Cedar", "Granite", "Harbor",
    "Maple", "Orchid", "Summit", "Willow", "Amber", "Copper", "Lantern",
]

_NOUNS = [
    "Lounge", "Studio", "Hall", "Library", "Workshop", "Atrium",
    "Boardroom", "Lab", "Gallery", "Den", "Terrace", "Commons",
]

_DESCRIPTIONS = [
    "Seats eight with a wall-mounted display.",
    "Whiteboards on two walls, good for planning sessions.",
    "Small room for one-on-ones.",
    "Natural light, no video equipment.",
    "Projector and conference phone available.",
    "Standing desks and a long shared table.",
]


def generate_rooms(count: int, rng: random.Random | None = None) -> list[RoomCreate]:
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    rng = rng or random.Random()

    rooms: list[RoomCreate] = []
    for i in range(count):
        name = f"{rng.choice(_ADJECTIVES)} {rng.choice(_NOUNS)} {i + 1}"
        # Roughly a third of the rooms have no description.
        description = None if rng.random() < 1 / 3 else rng.choice(_DESCRIPTIONS)
        rooms.append(RoomCreate(name=name, description=description))
    return rooms


async def seed_rooms(count: int = DEFAULT_COUNT, rng: random.Random | None = None) -> int:
    rooms = generate_rooms(count, rng)
    inserted = await repository.insert_rooms(rooms)
    logger.info("seed_done inserted=%s", inserted)
    return inserted


async def _run(count: int, random_seed: int | None) -> int:
    settings = get_settings()
    await db.init_pool(
        settings.database_url,
        min_size=1,
        max_size=1,
        command_timeout=settings.db_command_timeout,
    )
    try:
        rng = random.Random(random_seed) if random_seed is not None else None
        return await seed_rooms(count, rng)
    finally:
        await db.close_pool()


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rooms-seed", description="Insert sample rooms for local development.")
    parser.add_argument("--count", type=_positive_int, default=DEFAULT_COUNT, help="How many rooms to insert.")
    parser.add_argument("--random-seed", type=int, default=None, help="Seed for reproducible sample data.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = get_settings()
    except ConfigurationInvalid as exc:
        configure_logging()
        logger.error("config_invalid error=%s", exc)
        return 1
    configure_logging(settings.log_level)

    try:
        asyncio.run(_run(args.count, args.random_seed))
    except db.StorageUnavailable as exc:
        logger.error("seed_failed error=%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
