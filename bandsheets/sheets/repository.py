import json

import aiosqlite


class SheetRepository:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_by_id(self, sheet_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT * FROM sheets_projection WHERE id = ?",
            (sheet_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._decode(row)

    async def list_visible(self, user_id: str) -> list[dict]:
        """Sheets the user owns, has been shared, or that are public."""
        cursor = await self._db.execute(
            """
            SELECT * FROM sheets_projection
            WHERE owner_id = ?
               OR is_public = 1
               OR EXISTS (
                   SELECT 1 FROM json_each(sheets_projection.shared_with)
                   WHERE json_extract(json_each.value, '$.user') = ?
               )
            ORDER BY updated_at DESC
            """,
            (user_id, user_id),
        )
        rows = await cursor.fetchall()
        return [self._decode(row) for row in rows]

    async def list_owned(self, owner_id: str) -> list[dict]:
        cursor = await self._db.execute(
            "SELECT * FROM sheets_projection WHERE owner_id = ? ORDER BY created_at",
            (owner_id,),
        )
        rows = await cursor.fetchall()
        return [self._decode(row) for row in rows]

    @staticmethod
    def _decode(row: aiosqlite.Row) -> dict:
        sheet = dict(row)
        sheet["document"] = json.loads(sheet["document"])
        sheet["shared_with"] = json.loads(sheet["shared_with"])
        sheet["is_public"] = bool(sheet["is_public"])
        return sheet
