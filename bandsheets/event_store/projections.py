import json

import aiosqlite
import structlog

from bandsheets.event_store.models import Event, EventType

logger = structlog.get_logger()

SHEET_UPDATABLE_COLUMNS = ("title", "artist", "bpm")
SETLIST_UPDATABLE_COLUMNS = ("name", "description")


class ProjectionEngine:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def project(self, event: Event) -> None:
        handler = self._get_handler(event.event_type)
        if handler is not None:
            data = json.loads(event.event_data)
            await handler(event, data)
            logger.debug(
                "projection_applied",
                event_type=event.event_type,
                aggregate_id=event.aggregate_id,
            )

    def _get_handler(self, event_type: str):
        handlers = {
            EventType.sheet_created: self._handle_sheet_created,
            EventType.sheet_updated: self._handle_sheet_updated,
            EventType.sheet_shared: self._handle_sheet_shared,
            EventType.sheet_deleted: self._handle_sheet_deleted,
            EventType.setlist_created: self._handle_setlist_created,
            EventType.setlist_updated: self._handle_setlist_updated,
            EventType.setlist_deleted: self._handle_setlist_deleted,
        }
        return handlers.get(event_type)

    async def _handle_sheet_created(self, event: Event, data: dict) -> None:
        await self._db.execute(
            """
            INSERT INTO sheets_projection (
                id, title, artist, bpm, document, owner_id, shared_with,
                is_public, date_imported, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.aggregate_id,
                data["title"],
                data.get("artist"),
                data.get("bpm"),
                json.dumps(data.get("document", {})),
                data["owner_id"],
                json.dumps(data.get("shared_with", [])),
                1 if data.get("is_public") else 0,
                data.get("date_imported"),
                event.created_at,
                event.created_at,
            ),
        )

    async def _handle_sheet_updated(self, event: Event, data: dict) -> None:
        set_clauses: list[str] = []
        params: list = []

        for column in SHEET_UPDATABLE_COLUMNS:
            if column in data:
                set_clauses.append(f"{column} = ?")
                params.append(data[column])
        if "document" in data:
            set_clauses.append("document = ?")
            params.append(json.dumps(data["document"]))

        set_clauses.append("updated_at = ?")
        params.append(event.created_at)
        params.append(event.aggregate_id)

        await self._db.execute(
            f"""
            UPDATE sheets_projection
            SET {', '.join(set_clauses)}
            WHERE id = ?
            """,
            params,
        )

    async def _handle_sheet_shared(self, event: Event, data: dict) -> None:
        await self._db.execute(
            """
            UPDATE sheets_projection
            SET shared_with = ?, updated_at = ?
            WHERE id = ?
            """,
            (json.dumps(data["shared_with"]), event.created_at, event.aggregate_id),
        )

    async def _handle_sheet_deleted(self, event: Event, data: dict) -> None:
        # Hard delete so the identifier can be imported again later
        await self._db.execute(
            "DELETE FROM sheets_projection WHERE id = ?",
            (event.aggregate_id,),
        )

    async def _handle_setlist_created(self, event: Event, data: dict) -> None:
        await self._db.execute(
            """
            INSERT INTO setlists_projection (
                id, name, description, sheets, owner_id, shared_with, is_public,
                original_setlist_id, original_creator, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.aggregate_id,
                data["name"],
                data.get("description"),
                json.dumps(data.get("sheets", [])),
                data["owner_id"],
                json.dumps(data.get("shared_with", [])),
                1 if data.get("is_public", True) else 0,
                data.get("original_setlist_id"),
                data.get("original_creator"),
                event.created_at,
                event.created_at,
            ),
        )

    async def _handle_setlist_updated(self, event: Event, data: dict) -> None:
        set_clauses: list[str] = []
        params: list = []

        for column in SETLIST_UPDATABLE_COLUMNS:
            if column in data:
                set_clauses.append(f"{column} = ?")
                params.append(data[column])
        if "sheets" in data:
            set_clauses.append("sheets = ?")
            params.append(json.dumps(data["sheets"]))
        if "is_public" in data:
            set_clauses.append("is_public = ?")
            params.append(1 if data["is_public"] else 0)

        set_clauses.append("updated_at = ?")
        params.append(event.created_at)
        params.append(event.aggregate_id)

        await self._db.execute(
            f"""
            UPDATE setlists_projection
            SET {', '.join(set_clauses)}
            WHERE id = ?
            """,
            params,
        )

    async def _handle_setlist_deleted(self, event: Event, data: dict) -> None:
        await self._db.execute(
            "DELETE FROM setlists_projection WHERE id = ?",
            (event.aggregate_id,),
        )
