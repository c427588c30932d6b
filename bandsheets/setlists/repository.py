import json

import aiosqlite


class SetlistRepository:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_by_id(self, setlist_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT * FROM setlists_projection WHERE id = ?",
            (setlist_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._decode(row)

    async def list_visible(self, user_id: str | None) -> list[dict]:
        if user_id is None:
            cursor = await self._db.execute(
                "SELECT * FROM setlists_projection WHERE is_public = 1 ORDER BY updated_at DESC"
            )
        else:
            cursor = await self._db.execute(
                """
                SELECT * FROM setlists_projection
                WHERE owner_id = ?
                   OR is_public = 1
                   OR EXISTS (
                       SELECT 1 FROM json_each(setlists_projection.shared_with)
                       WHERE json_extract(json_each.value, '$.user') = ?
                   )
                ORDER BY updated_at DESC
                """,
                (user_id, user_id),
            )
        rows = await cursor.fetchall()
        return [self._decode(row) for row in rows]

    @staticmethod
    def _decode(row: aiosqlite.Row) -> dict:
        setlist = dict(row)
        setlist["sheets"] = json.loads(setlist["sheets"])
        setlist["shared_with"] = json.loads(setlist["shared_with"])
        setlist["is_public"] = bool(setlist["is_public"])
        return setlist
