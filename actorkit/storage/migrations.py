"""
Versioned schema migrations.

Each namespace (the scheduler, the actor's own tables, ...) carries an
ordered list of migrations. Applied versions are recorded in the
_actorkit_migrations table, so a migration runs at most once per store.

Table: _actorkit_migrations
    namespace  TEXT
    version    INT
    name       TEXT
    applied_at INT
    PK (namespace, version)

Optional migrations (required=False) never abort startup: a failure is
logged, nothing is recorded, and the runner moves on. The next start
retries it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from actorkit.core.errors import MigrationError
from actorkit.storage.base import SqlStorage

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "_actorkit_migrations"


@dataclass(frozen=True)
class Migration:
    """One schema step. Statements run in order."""

    version: int
    name: str
    statements: tuple[str, ...] = field(default_factory=tuple)
    required: bool = True
    # Driver error fragments meaning the change is already in place,
    # e.g. "duplicate column name" for an ALTER TABLE ADD COLUMN
    applied_if_error: tuple[str, ...] = field(default_factory=tuple)


class MigrationRunner:
    """
    Applies pending migrations for one namespace.

    Usage:
        runner = MigrationRunner(storage, "alarms", [
            Migration(1, "create table", ("CREATE TABLE ...",)),
            Migration(2, "add column", ("ALTER TABLE ...",), required=False),
        ])
        applied = await runner.run()   # [1, 2] on a fresh store, [] after
    """

    def __init__(self, storage: SqlStorage, namespace: str, migrations: list[Migration]) -> None:
        versions = [m.version for m in migrations]
        if len(set(versions)) != len(versions):
            raise ValueError(f"Duplicate migration versions in {namespace!r}: {versions}")
        self._storage = storage
        self._namespace = namespace
        self._migrations = sorted(migrations, key=lambda m: m.version)

    async def applied_versions(self) -> set[int]:
        await self._ensure_table()
        rows = await self._storage.execute(
            f"SELECT version FROM {MIGRATIONS_TABLE} WHERE namespace = ?",
            (self._namespace,),
        )
        return {int(r["version"]) for r in rows}

    async def run(self) -> list[int]:
        """Apply every pending migration. Returns the versions applied this call."""
        done = await self.applied_versions()
        applied: list[int] = []

        for migration in self._migrations:
            if migration.version in done:
                continue
            try:
                for statement in migration.statements:
                    await self._storage.execute(statement)
            except Exception as e:
                if any(marker in str(e) for marker in migration.applied_if_error):
                    logger.info(
                        f"Migration {self._namespace}/{migration.version} already in place: {e}"
                    )
                    await self._record(migration)
                    applied.append(migration.version)
                    continue
                if migration.required:
                    raise MigrationError(
                        f"Migration {self._namespace}/{migration.version} "
                        f"({migration.name}) failed: {e}",
                        namespace=self._namespace,
                        version=migration.version,
                    ) from e
                logger.error(
                    f"Optional migration {self._namespace}/{migration.version} "
                    f"({migration.name}) failed, continuing: {e}"
                )
                continue

            await self._record(migration)
            applied.append(migration.version)
            logger.debug(f"Applied migration {self._namespace}/{migration.version}: {migration.name}")

        return applied

    async def forget(self) -> int:
        """Drop this namespace's ledger rows, so every migration runs again."""
        await self._ensure_table()
        return await self._storage.execute_rowcount(
            f"DELETE FROM {MIGRATIONS_TABLE} WHERE namespace = ?", (self._namespace,)
        )

    async def _record(self, migration: Migration) -> None:
        await self._storage.execute(
            f"INSERT INTO {MIGRATIONS_TABLE} (namespace, version, name, applied_at) "
            "VALUES (?, ?, ?, ?)",
            (self._namespace, migration.version, migration.name, int(time.time())),
        )

    async def _ensure_table(self) -> None:
        await self._storage.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
                namespace  TEXT NOT NULL,
                version    INTEGER NOT NULL,
                name       TEXT NOT NULL,
                applied_at INTEGER NOT NULL,
                PRIMARY KEY (namespace, version)
            )
            """
        )
