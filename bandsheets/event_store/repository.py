from dataclasses import astuple

import aiosqlite
import structlog

from bandsheets.event_store.models import Event

logger = structlog.get_logger()

EVENT_COLUMNS = (
    "event_id, aggregate_type, aggregate_id, event_type, "
    "event_data, metadata, version, created_at"
)


class EventRepository:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def append(self, event: Event) -> None:
        # Column order matches the Event field order
        await self._db.execute(
            f"INSERT INTO events ({EVENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            astuple(event),
        )
        logger.debug(
            "event_appended",
            aggregate=f"{event.aggregate_type}:{event.aggregate_id}",
            event_type=event.event_type,
            version=event.version,
        )

    async def get_by_aggregate(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        cursor = await self._db.execute(
            f"""
            SELECT {EVENT_COLUMNS} FROM events
            WHERE aggregate_type = ? AND aggregate_id = ?
            ORDER BY version
            """,
            (aggregate_type, aggregate_id),
        )
        return [Event(**dict(row)) for row in await cursor.fetchall()]

    async def get_latest_version(self, aggregate_type: str, aggregate_id: str) -> int:
        """Highest version recorded for the aggregate, 0 when it has no history.

        History survives deletion, so a re-imported sheet continues its
        version sequence rather than starting over.
        """
        cursor = await self._db.execute(
            "SELECT MAX(version) FROM events WHERE aggregate_type = ? AND aggregate_id = ?",
            (aggregate_type, aggregate_id),
        )
        row = await cursor.fetchone()
        return row[0] or 0
