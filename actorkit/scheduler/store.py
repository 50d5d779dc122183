"""
ScheduleStore — persistence for an actor's pending schedules.

Table: _actor_alarms (name configurable)
    id             TEXT  PK
    callback       TEXT
    payload        TEXT  (JSON)
    type           TEXT  scheduled | delayed | cron
    time           INT   unix seconds of the next fire
    delayInSeconds INT   delayed only
    cron           TEXT  cron only
    created_at     INT
    identifier     TEXT  owning actor name (added by migration 2)

Rows come back ordered by time, then insertion order.
"""

from __future__ import annotations

import logging

from actorkit.core.errors import ScheduleError
from actorkit.scheduler.schedule import Schedule, ScheduleType, TimeRange
from actorkit.storage.base import SqlStorage
from actorkit.storage.migrations import Migration, MigrationRunner

logger = logging.getLogger(__name__)

MIGRATION_NAMESPACE = "alarms"


def _quote(value: str) -> str:
    return value.replace("'", "''")


def schedule_migrations(table: str, default_identifier: str) -> list[Migration]:
    # v1 matches the layout of stores created before the identifier column
    # existed, so CREATE IF NOT EXISTS is a no-op on those and v2 upgrades them.
    return [
        Migration(
            version=1,
            name="create schedules table",
            statements=(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id             TEXT PRIMARY KEY NOT NULL,
                    callback       TEXT,
                    payload        TEXT,
                    type           TEXT NOT NULL CHECK(type IN ('scheduled', 'delayed', 'cron')),
                    time           INTEGER,
                    delayInSeconds INTEGER,
                    cron           TEXT,
                    created_at     INTEGER DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
                )
                """,
            ),
        ),
        Migration(
            version=2,
            name="add identifier column",
            statements=(
                f"ALTER TABLE {table} ADD COLUMN identifier TEXT DEFAULT '{_quote(default_identifier)}'",
            ),
            required=False,
            applied_if_error=("duplicate column name",),
        ),
        Migration(
            version=3,
            name="index schedules by time",
            statements=(f"CREATE INDEX IF NOT EXISTS idx_{table}_time ON {table}(time)",),
            required=False,
        ),
    ]


class ScheduleStore:
    """
    Pending-schedule table on top of an SqlStorage.

    Usage:
        store = ScheduleStore(storage)
        await store.ensure_schema()

        await store.upsert(schedule)
        due = await store.query_due(now=time.time())
        nxt = await store.query_next_deadline()
    """

    def __init__(
        self,
        storage: SqlStorage,
        table: str = "_actor_alarms",
        default_identifier: str = "default",
    ) -> None:
        self._storage = storage
        self._table = table
        self._default_identifier = default_identifier

    @property
    def table(self) -> str:
        return self._table

    def _runner(self) -> MigrationRunner:
        return MigrationRunner(
            self._storage,
            f"{MIGRATION_NAMESPACE}:{self._table}",
            schedule_migrations(self._table, self._default_identifier),
        )

    async def ensure_schema(self) -> list[int]:
        """Create or upgrade the table. Returns migration versions applied now."""
        applied = await self._runner().run()
        if applied:
            logger.debug(f"ScheduleStore {self._table}: applied migrations {applied}")
        return applied

    async def drop(self) -> None:
        """Remove the table and its migration history."""
        await self._storage.execute(f"DROP TABLE IF EXISTS {self._table}")
        await self._runner().forget()
        logger.debug(f"ScheduleStore {self._table}: dropped")

    # ── Writes ───────────────────────────────────────────────────────────────

    async def upsert(self, schedule: Schedule) -> None:
        """Insert, or replace the row with the same id in place (created_at kept)."""
        row = schedule.to_row()
        await self._storage.execute(
            f"""
            INSERT INTO {self._table}
                (id, callback, payload, type, time, delayInSeconds, cron, created_at, identifier)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                callback=excluded.callback, payload=excluded.payload,
                type=excluded.type, time=excluded.time,
                delayInSeconds=excluded.delayInSeconds, cron=excluded.cron,
                identifier=excluded.identifier
            """,
            (
                row["id"], row["callback"], row["payload"], row["type"], row["time"],
                row["delayInSeconds"], row["cron"], row["created_at"], row["identifier"],
            ),
        )

    async def update_time(self, schedule_id: str, time: int) -> None:
        await self._storage.execute(
            f"UPDATE {self._table} SET time = ? WHERE id = ?", (time, schedule_id)
        )

    async def delete_by_id(self, schedule_id: str) -> bool:
        count = await self._storage.execute_rowcount(
            f"DELETE FROM {self._table} WHERE id = ?", (schedule_id,)
        )
        return count > 0

    async def delete_all(self) -> int:
        return await self._storage.execute_rowcount(f"DELETE FROM {self._table}")

    # ── Reads ────────────────────────────────────────────────────────────────

    async def query_due(self, now: float) -> list[Schedule]:
        """Every row with time <= now."""
        rows = await self._storage.execute(
            f"SELECT * FROM {self._table} WHERE time <= ? ORDER BY time ASC, rowid ASC",
            (int(now),),
        )
        return [self._to_schedule(r) for r in rows]

    async def query_next_deadline(self) -> int | None:
        """Smallest time among all rows, or None when the table is empty."""
        rows = await self._storage.execute(f"SELECT MIN(time) AS next FROM {self._table}")
        if not rows or rows[0]["next"] is None:
            return None
        return int(rows[0]["next"])

    async def query_by_id(self, schedule_id: str) -> Schedule | None:
        rows = await self._storage.execute(
            f"SELECT * FROM {self._table} WHERE id = ?", (schedule_id,)
        )
        return self._to_schedule(rows[0]) if rows else None

    async def query_by_criteria(
        self,
        id: str | None = None,
        type: ScheduleType | str | None = None,
        time_range: TimeRange | None = None,
    ) -> list[Schedule]:
        query = f"SELECT * FROM {self._table} WHERE 1=1"
        params: list = []

        if id:
            query += " AND id = ?"
            params.append(id)

        if type:
            try:
                kind = ScheduleType(type)
            except ValueError:
                raise ScheduleError(f"Unknown schedule type: {type!r}") from None
            query += " AND type = ?"
            params.append(kind.value)

        if time_range is not None:
            start, end = time_range.bounds()
            query += " AND time >= ? AND time <= ?"
            params.extend([start, end])

        query += " ORDER BY time ASC, rowid ASC"
        rows = await self._storage.execute(query, params)
        return [self._to_schedule(r) for r in rows]

    async def count(self) -> int:
        rows = await self._storage.execute(f"SELECT COUNT(*) AS n FROM {self._table}")
        return int(rows[0]["n"])

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _to_schedule(self, row: dict) -> Schedule:
        return Schedule.from_row(row, default_identifier=self._default_identifier)
