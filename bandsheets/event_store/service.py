import json
from datetime import UTC, datetime
from uuid import uuid4

import aiosqlite
import structlog

from bandsheets.database import get_write_lock
from bandsheets.event_store.models import Event
from bandsheets.event_store.projections import ProjectionEngine
from bandsheets.event_store.repository import EventRepository

logger = structlog.get_logger()


class EventStoreService:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._repository = EventRepository(db)
        self._projection_engine = ProjectionEngine(db)

    async def append_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        event_data: dict,
        metadata: dict | None = None,
    ) -> Event:
        async with get_write_lock():
            version = await self._repository.get_latest_version(aggregate_type, aggregate_id) + 1

            event = Event(
                event_id=str(uuid4()),
                aggregate_type=aggregate_type,
                aggregate_id=aggregate_id,
                event_type=event_type,
                event_data=json.dumps(event_data),
                metadata=json.dumps(metadata) if metadata else None,
                version=version,
                created_at=datetime.now(UTC).isoformat(),
            )

            # Event row and projection land together or not at all
            try:
                await self._repository.append(event)
                await self._projection_engine.project(event)
                await self._db.commit()
            except Exception:
                await self._db.rollback()
                raise

        logger.info(
            "event_stored_and_projected",
            event_id=event.event_id,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            version=version,
        )

        return event

    async def get_events(self, aggregate_type: str, aggregate_id: str) -> list[Event]:
        return await self._repository.get_by_aggregate(aggregate_type, aggregate_id)
