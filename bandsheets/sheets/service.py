from datetime import UTC, datetime
from uuid import uuid4

import structlog

from bandsheets.event_store.models import AggregateType, EventType
from bandsheets.event_store.schemas import EventResponse
from bandsheets.event_store.service import EventStoreService
from bandsheets.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from bandsheets.sheets.models import SERVER_MANAGED_FIELDS, SharePermission
from bandsheets.sheets.repository import SheetRepository
from bandsheets.sheets.schemas import (
    ShareEntry,
    ShareRequest,
    SheetCreate,
    SheetResponse,
    SheetSummary,
    SheetUpdate,
)
from bandsheets.users.repository import UserRepository
from bandsheets.users.schemas import Principal

logger = structlog.get_logger()


def build_document(record: dict) -> dict:
    """Strip server-owned keys and check the fields every stored sheet needs."""
    document = {key: value for key, value in record.items() if key not in SERVER_MANAGED_FIELDS}

    sheet_id = document.get("id")
    if not isinstance(sheet_id, str) or not sheet_id:
        raise ValidationError("Sheet validation failed: id is required")

    title = document.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Sheet validation failed: title is required")

    bpm = document.get("bpm")
    if bpm is not None and not isinstance(bpm, int | float):
        try:
            document["bpm"] = float(bpm)
        except (TypeError, ValueError):
            raise ValidationError(f"Sheet validation failed: bpm '{bpm}' is not a number") from None
    return document


def _columns(document: dict) -> dict:
    return {
        "title": document["title"],
        "artist": document.get("artist"),
        "bpm": document.get("bpm"),
        "document": document,
    }


class SheetService:
    def __init__(
        self,
        event_store: EventStoreService,
        repo: SheetRepository,
        users: UserRepository,
        default_public: bool = True,
    ) -> None:
        self._event_store = event_store
        self._repo = repo
        self._users = users
        self._default_public = default_public

    # Store primitives used by the import processor

    async def find_by_identifier(self, sheet_id: str) -> dict | None:
        return await self._repo.get_by_id(sheet_id)

    async def insert(
        self,
        record: dict,
        owner_id: str,
        *,
        is_public: bool,
        date_imported: str | None = None,
    ) -> dict:
        """Persist a new sheet owned by `owner_id` with an empty share list."""
        document = build_document(record)
        sheet_id = document["id"]

        event_data = {
            **_columns(document),
            "owner_id": owner_id,
            "shared_with": [],
            "is_public": is_public,
            "date_imported": date_imported,
        }
        await self._event_store.append_event(
            aggregate_type=AggregateType.sheet,
            aggregate_id=sheet_id,
            event_type=EventType.sheet_created,
            event_data=event_data,
        )

        row = await self._repo.get_by_id(sheet_id)
        if row is None:
            raise ValidationError(f"Failed to store sheet '{sheet_id}'")
        logger.info("sheet_created", sheet_id=sheet_id, owner_id=owner_id)
        return row

    async def update_in_place(self, sheet_id: str, record: dict) -> dict:
        """Replace a sheet's content; owner, share list and visibility are kept."""
        document = build_document({**record, "id": sheet_id})

        await self._event_store.append_event(
            aggregate_type=AggregateType.sheet,
            aggregate_id=sheet_id,
            event_type=EventType.sheet_updated,
            event_data=_columns(document),
        )

        row = await self._repo.get_by_id(sheet_id)
        if row is None:
            raise NotFoundError("Sheet", sheet_id)
        logger.info("sheet_replaced", sheet_id=sheet_id)
        return row

    # API operations

    async def create(self, data: SheetCreate, principal: Principal) -> SheetResponse:
        record = data.model_dump(exclude_none=True)
        record["id"] = data.id or uuid4().hex

        if await self._repo.get_by_id(record["id"]) is not None:
            raise ConflictError(f"A sheet with ID '{record['id']}' already exists")

        now = datetime.now(UTC).isoformat()
        record.setdefault("dateCreated", now)
        record.setdefault("dateModified", now)

        row = await self.insert(record, principal.id, is_public=self._default_public)
        return self._to_response(row)

    async def list_for(self, principal: Principal) -> list[SheetSummary]:
        rows = await self._repo.list_visible(principal.id)
        return [
            SheetSummary(
                id=row["id"],
                title=row["title"],
                artist=row["artist"],
                bpm=row["bpm"],
                owner_id=row["owner_id"],
                is_public=row["is_public"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def get(self, sheet_id: str, principal: Principal) -> SheetResponse:
        row = await self._get_visible(sheet_id, principal)
        return self._to_response(row)

    async def update(self, sheet_id: str, data: SheetUpdate, principal: Principal) -> SheetResponse:
        row = await self._get_existing(sheet_id)
        if not self._can_edit(row, principal):
            raise ForbiddenError("Not authorized to update this sheet")

        changes = {**data.model_dump(exclude_unset=True), **(data.model_extra or {})}
        changes.pop("id", None)
        if not changes:
            raise ValidationError("No fields to update")

        document = {**row["document"], **changes}
        document["dateModified"] = datetime.now(UTC).isoformat()
        document = build_document({**document, "id": sheet_id})

        await self._event_store.append_event(
            aggregate_type=AggregateType.sheet,
            aggregate_id=sheet_id,
            event_type=EventType.sheet_updated,
            event_data=_columns(document),
        )

        updated = await self._get_existing(sheet_id)
        logger.info("sheet_updated", sheet_id=sheet_id, fields=sorted(changes))
        return self._to_response(updated)

    async def delete(self, sheet_id: str, principal: Principal) -> None:
        row = await self._get_existing(sheet_id)
        if row["owner_id"] != principal.id:
            raise ForbiddenError("Not authorized to delete this sheet")

        await self._event_store.append_event(
            aggregate_type=AggregateType.sheet,
            aggregate_id=sheet_id,
            event_type=EventType.sheet_deleted,
            event_data={"deleted": True},
        )
        logger.info("sheet_deleted", sheet_id=sheet_id)

    async def share(self, sheet_id: str, data: ShareRequest, principal: Principal) -> SheetResponse:
        row = await self._get_existing(sheet_id)
        if row["owner_id"] != principal.id:
            raise ForbiddenError("Not authorized to share this sheet")

        target = await self._users.get_by_username(data.username)
        if target is None:
            raise NotFoundError("User", data.username)

        shared_with = [entry for entry in row["shared_with"] if entry["user"] != target["id"]]
        shared_with.append({"user": target["id"], "permission": data.permission.value})

        await self._event_store.append_event(
            aggregate_type=AggregateType.sheet,
            aggregate_id=sheet_id,
            event_type=EventType.sheet_shared,
            event_data={"shared_with": shared_with},
        )

        logger.info(
            "sheet_shared",
            sheet_id=sheet_id,
            shared_with=target["id"],
            permission=data.permission.value,
        )
        updated = await self._get_existing(sheet_id)
        return self._to_response(updated)

    async def history(self, sheet_id: str, principal: Principal) -> list[EventResponse]:
        await self._get_visible(sheet_id, principal)
        events = await self._event_store.get_events(AggregateType.sheet, sheet_id)
        return [EventResponse.from_event(event) for event in events]

    async def list_owned(self, owner_id: str) -> list[dict]:
        return await self._repo.list_owned(owner_id)

    async def _get_existing(self, sheet_id: str) -> dict:
        row = await self._repo.get_by_id(sheet_id)
        if row is None:
            raise NotFoundError("Sheet", sheet_id)
        return row

    async def _get_visible(self, sheet_id: str, principal: Principal) -> dict:
        row = await self._get_existing(sheet_id)
        shared = any(entry["user"] == principal.id for entry in row["shared_with"])
        if row["owner_id"] != principal.id and not shared and not row["is_public"]:
            raise ForbiddenError("Not authorized to access this sheet")
        return row

    @staticmethod
    def _can_edit(row: dict, principal: Principal) -> bool:
        if row["owner_id"] == principal.id:
            return True
        return any(
            entry["user"] == principal.id and entry["permission"] == SharePermission.edit
            for entry in row["shared_with"]
        )

    @staticmethod
    def _to_response(row: dict) -> SheetResponse:
        return SheetResponse(
            id=row["id"],
            title=row["title"],
            artist=row["artist"],
            bpm=row["bpm"],
            owner_id=row["owner_id"],
            is_public=row["is_public"],
            shared_with=[ShareEntry(**entry) for entry in row["shared_with"]],
            date_imported=row["date_imported"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            content=row["document"],
        )
