import asyncio

import aiosqlite
import pytest

from bandsheets.event_store.models import AggregateType, EventType
from bandsheets.event_store.service import EventStoreService


def _created(store: EventStoreService, sheet_id: str):
    return store.append_event(
        aggregate_type=AggregateType.sheet,
        aggregate_id=sheet_id,
        event_type=EventType.sheet_created,
        event_data={"title": sheet_id.title(), "owner_id": "user-alice"},
    )


async def _scalar(db, query: str, *params):
    cursor = await db.execute(query, params)
    row = await cursor.fetchone()
    await cursor.close()
    return row[0]


class TestAppendEvent:
    @pytest.mark.asyncio
    async def test_versions_are_per_aggregate_type(self, db):
        store = EventStoreService(db)

        sheet_event = await _created(store, "gig")
        setlist_event = await store.append_event(
            aggregate_type=AggregateType.setlist,
            aggregate_id="gig",
            event_type=EventType.setlist_created,
            event_data={"name": "Gig", "owner_id": "user-alice", "sheets": []},
        )

        assert sheet_event.version == setlist_event.version == 1

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back_only_itself(self, db):
        store = EventStoreService(db)
        await _created(store, "taken")

        outcomes = await asyncio.gather(
            _created(store, "first"),
            _created(store, "taken"),
            _created(store, "second"),
            return_exceptions=True,
        )

        assert isinstance(outcomes[1], aiosqlite.IntegrityError)
        assert [event.aggregate_id for event in outcomes[::2]] == ["first", "second"]
        orphaned = await _scalar(
            db,
            """
            SELECT COUNT(*) FROM sheets_projection p
            WHERE NOT EXISTS (SELECT 1 FROM events e WHERE e.aggregate_id = p.id)
            """,
        )
        assert orphaned == 0
        assert await _scalar(db, "SELECT COUNT(*) FROM sheets_projection") == 3
        assert await _scalar(db, "SELECT COUNT(*) FROM events WHERE aggregate_id = ?", "taken") == 1
