"""
Versioned schema migrations (raw SQL).

Each migration runs in its own transaction together with the row that
records it in `schema_migrations`, so a failed migration leaves the database
at the last successfully applied version.

Usage:
    python -m core.migrations            # apply pending migrations
    python -m core.migrations --dry-run  # list pending migrations only
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass

import asyncpg

from core import db
from core.log import configure_logging
from core.settings import ConfigurationInvalid, get_settings

logger = logging.getLogger(__name__)

# Arbitrary key shared by every runner; serializes concurrent invocations.
ADVISORY_LOCK_KEY = 727_001


class MigrationError(RuntimeError):
    def __init__(self, message: str, *, version: int | None = None, name: str | None = None) -> None:
        super().__init__(message)
        self.version = version
        self.name = name


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    sql: str


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        name="create_extensions",
        sql="""
        CREATE EXTENSION IF NOT EXISTS vector;
        """,
    ),
    Migration(
        version=2,
        name="create_rooms",
        sql="""
        CREATE TABLE IF NOT EXISTS rooms (
          id          uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          name        text NOT NULL CHECK (length(btrim(name)) > 0),
          description text,
          created_at  timestamptz NOT NULL DEFAULT now()
        );

        CREATE INDEX IF NOT EXISTS rooms_created_at_idx ON rooms (created_at);
        """,
    ),
)

_BOOKKEEPING_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    integer PRIMARY KEY,
  name       text NOT NULL,
  applied_at timestamptz NOT NULL DEFAULT now()
)
"""


def validate_migrations(migrations: Sequence[Migration]) -> None:
    previous = 0
    for migration in migrations:
        if migration.version <= previous:
            raise MigrationError(
                f"Migration versions must be unique and increasing: {migration.version} after {previous}.",
                version=migration.version,
                name=migration.name,
            )
        previous = migration.version


async def applied_versions(conn: asyncpg.Connection, *, create_table: bool = True) -> set[int]:
    """
    Versions recorded in `schema_migrations`.

    With `create_table=False` nothing is written: a missing bookkeeping
    table means no migration has been applied yet.
    """
    try:
        if create_table:
            await conn.execute(_BOOKKEEPING_SQL)
        else:
            exists = await conn.fetchval("SELECT to_regclass('schema_migrations') IS NOT NULL")
            if not exists:
                return set()
        rows = await conn.fetch("SELECT version FROM schema_migrations")
    except asyncpg.PostgresError as exc:
        raise MigrationError(f"Could not read migration history: {exc}") from exc
    return {int(row["version"]) for row in rows}


async def pending_migrations(
    conn: asyncpg.Connection,
    migrations: Sequence[Migration] = MIGRATIONS,
    *,
    create_table: bool = False,
) -> list[Migration]:
    validate_migrations(migrations)
    done = await applied_versions(conn, create_table=create_table)
    return [m for m in migrations if m.version not in done]


async def _apply_one(conn: asyncpg.Connection, migration: Migration) -> None:
    try:
        async with conn.transaction():
            await conn.execute(migration.sql)
            await conn.execute(
                "INSERT INTO schema_migrations (version, name) VALUES ($1, $2)",
                migration.version,
                migration.name,
            )
    except asyncpg.PostgresError as exc:
        raise MigrationError(
            f"Migration {migration.version} ({migration.name}) failed: {exc}",
            version=migration.version,
            name=migration.name,
        ) from exc


async def _advisory(conn: asyncpg.Connection, function: str) -> None:
    try:
        await conn.execute(f"SELECT {function}($1)", ADVISORY_LOCK_KEY)
    except asyncpg.PostgresError as exc:
        raise MigrationError(f"Could not run {function}: {exc}") from exc


async def apply_migrations(
    conn: asyncpg.Connection,
    migrations: Sequence[Migration] = MIGRATIONS,
) -> list[int]:
    """
    Apply every migration not yet recorded and return the applied versions.

    Re-running against a migrated database applies nothing and returns [].
    """
    validate_migrations(migrations)
    await _advisory(conn, "pg_advisory_lock")
    try:
        pending = await pending_migrations(conn, migrations, create_table=True)
        applied: list[int] = []
        for migration in pending:
            logger.info("migration_apply version=%s name=%s", migration.version, migration.name)
            await _apply_one(conn, migration)
            applied.append(migration.version)
        if not applied:
            logger.info("migration_noop reason=up_to_date")
        return applied
    finally:
        await _advisory(conn, "pg_advisory_unlock")


async def _run(*, dry_run: bool) -> list[int]:
    settings = get_settings()
    try:
        conn = await asyncpg.connect(dsn=settings.database_url, timeout=settings.db_command_timeout)
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError) as exc:
        raise db.StorageUnavailable(f"Could not connect to database: {exc}") from exc
    try:
        if dry_run:
            pending = await pending_migrations(conn)
            for migration in pending:
                print(f"pending {migration.version:04d} {migration.name}")
            return [m.version for m in pending]
        return await apply_migrations(conn)
    finally:
        await conn.close()


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rooms-migrate", description="Apply pending database migrations.")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations without applying them.")
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
        versions = asyncio.run(_run(dry_run=args.dry_run))
    except (MigrationError, db.StorageUnavailable) as exc:
        logger.error("migration_failed error=%s", exc)
        return 1

    if not args.dry_run:
        logger.info("migration_done applied=%s", versions)
    return 0


if __name__ == "__main__":
    sys.exit(main())
