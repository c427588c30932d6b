import secrets
import time

import structlog

from bandsheets.event_store.models import AggregateType, EventType
from bandsheets.event_store.service import EventStoreService
from bandsheets.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from bandsheets.setlists.repository import SetlistRepository
from bandsheets.setlists.schemas import (
    AddSheetRequest,
    ReorderRequest,
    SetlistCreate,
    SetlistResponse,
    SetlistUpdate,
    SheetReference,
)
from bandsheets.sheets.models import SharePermission
from bandsheets.sheets.schemas import ShareEntry
from bandsheets.sheets.service import SheetService
from bandsheets.users.schemas import Principal

logger = structlog.get_logger()


class SetlistService:
    def __init__(
        self,
        event_store: EventStoreService,
        repo: SetlistRepository,
        sheets: SheetService,
        default_public: bool = True,
    ) -> None:
        self._event_store = event_store
        self._repo = repo
        self._sheets = sheets
        self._default_public = default_public

    async def list_for(self, principal: Principal | None) -> list[SetlistResponse]:
        rows = await self._repo.list_visible(principal.id if principal else None)
        return [self._to_response(row) for row in rows]

    async def get(self, setlist_id: str, principal: Principal | None) -> SetlistResponse:
        row = await self._get_visible(setlist_id, principal)
        return self._to_response(row)

    async def create(self, data: SetlistCreate, principal: Principal) -> SetlistResponse:
        setlist_id = data.id or await self._new_setlist_id()
        if await self._repo.get_by_id(setlist_id) is not None:
            raise ConflictError("A setlist with this ID already exists")

        event_data = {
            "name": data.name,
            "description": data.description,
            "sheets": [ref.model_dump() for ref in data.sheets],
            "owner_id": principal.id,
            "shared_with": [],
            "is_public": self._default_public,
        }
        await self._event_store.append_event(
            aggregate_type=AggregateType.setlist,
            aggregate_id=setlist_id,
            event_type=EventType.setlist_created,
            event_data=event_data,
        )

        logger.info("setlist_created", setlist_id=setlist_id, owner_id=principal.id)
        return self._to_response(await self._get_existing(setlist_id))

    async def update(
        self, setlist_id: str, data: SetlistUpdate, principal: Principal
    ) -> SetlistResponse:
        row = await self._get_editable(setlist_id, principal)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        if "sheets" in changes:
            changes["sheets"] = [ref.model_dump() for ref in data.sheets or []]

        await self._apply_update(row["id"], changes)
        logger.info("setlist_updated", setlist_id=setlist_id, fields=sorted(changes))
        return self._to_response(await self._get_existing(setlist_id))

    async def delete(self, setlist_id: str, principal: Principal) -> None:
        row = await self._get_existing(setlist_id)
        if row["owner_id"] != principal.id:
            raise ForbiddenError("You do not have permission to delete this setlist")

        await self._event_store.append_event(
            aggregate_type=AggregateType.setlist,
            aggregate_id=setlist_id,
            event_type=EventType.setlist_deleted,
            event_data={"deleted": True},
        )
        logger.info("setlist_deleted", setlist_id=setlist_id)

    async def add_sheet(
        self, setlist_id: str, data: AddSheetRequest, principal: Principal
    ) -> SetlistResponse:
        row = await self._get_editable(setlist_id, principal)

        if any(ref["id"] == data.sheet_id for ref in row["sheets"]):
            raise ConflictError("Sheet already exists in this setlist")

        sheet = await self._sheets.find_by_identifier(data.sheet_id)
        if sheet is None:
            raise NotFoundError("Sheet", data.sheet_id)

        # Title/artist/bpm are a snapshot taken when the sheet is added
        reference = SheetReference(
            id=sheet["id"], title=sheet["title"], artist=sheet["artist"], bpm=sheet["bpm"]
        )
        await self._apply_update(setlist_id, {"sheets": [*row["sheets"], reference.model_dump()]})

        logger.info("setlist_sheet_added", setlist_id=setlist_id, sheet_id=data.sheet_id)
        return self._to_response(await self._get_existing(setlist_id))

    async def remove_sheet(
        self, setlist_id: str, sheet_id: str, principal: Principal
    ) -> SetlistResponse:
        row = await self._get_editable(setlist_id, principal)

        remaining = [ref for ref in row["sheets"] if ref["id"] != sheet_id]
        await self._apply_update(setlist_id, {"sheets": remaining})

        logger.info("setlist_sheet_removed", setlist_id=setlist_id, sheet_id=sheet_id)
        return self._to_response(await self._get_existing(setlist_id))

    async def reorder(
        self, setlist_id: str, data: ReorderRequest, principal: Principal
    ) -> SetlistResponse:
        row = await self._get_editable(setlist_id, principal)

        sheets = list(row["sheets"])
        if data.old_index >= len(sheets) or data.new_index >= len(sheets):
            raise ValidationError(
                f"Index out of range for a setlist with {len(sheets)} sheets"
            )
        moved = sheets.pop(data.old_index)
        sheets.insert(data.new_index, moved)
        await self._apply_update(setlist_id, {"sheets": sheets})

        logger.info(
            "setlist_reordered",
            setlist_id=setlist_id,
            old_index=data.old_index,
            new_index=data.new_index,
        )
        return self._to_response(await self._get_existing(setlist_id))

    async def favorite(self, setlist_id: str, principal: Principal) -> SetlistResponse:
        """Save a copy of a visible setlist into the caller's collection."""
        original = await self._get_visible(setlist_id, principal)
        copy_id = await self._new_setlist_id()

        event_data = {
            "name": f"{original['name']} (Copy)",
            "description": original["description"],
            "sheets": original["sheets"],
            "owner_id": principal.id,
            "shared_with": [],
            "is_public": True,
            "original_setlist_id": original["id"],
            "original_creator": original["owner_id"],
        }
        await self._event_store.append_event(
            aggregate_type=AggregateType.setlist,
            aggregate_id=copy_id,
            event_type=EventType.setlist_created,
            event_data=event_data,
        )

        logger.info("setlist_favorited", setlist_id=copy_id, original_setlist_id=setlist_id)
        return self._to_response(await self._get_existing(copy_id))

    async def _apply_update(self, setlist_id: str, changes: dict) -> None:
        await self._event_store.append_event(
            aggregate_type=AggregateType.setlist,
            aggregate_id=setlist_id,
            event_type=EventType.setlist_updated,
            event_data=changes,
        )

    async def _new_setlist_id(self) -> str:
        setlist_id = f"setlist_{int(time.time() * 1000)}"
        while await self._repo.get_by_id(setlist_id) is not None:
            setlist_id = f"setlist_{int(time.time() * 1000)}_{secrets.randbelow(1000)}"
        return setlist_id

    async def _get_existing(self, setlist_id: str) -> dict:
        row = await self._repo.get_by_id(setlist_id)
        if row is None:
            raise NotFoundError("Setlist", setlist_id)
        return row

    async def _get_visible(self, setlist_id: str, principal: Principal | None) -> dict:
        row = await self._get_existing(setlist_id)
        if row["is_public"]:
            return row
        if principal is not None and (
            row["owner_id"] == principal.id
            or any(entry["user"] == principal.id for entry in row["shared_with"])
        ):
            return row
        raise ForbiddenError("You do not have permission to view this setlist")

    async def _get_editable(self, setlist_id: str, principal: Principal) -> dict:
        row = await self._get_existing(setlist_id)
        can_edit = row["owner_id"] == principal.id or any(
            entry["user"] == principal.id and entry["permission"] == SharePermission.edit
            for entry in row["shared_with"]
        )
        if not can_edit:
            raise ForbiddenError("You do not have permission to update this setlist")
        return row

    @staticmethod
    def _to_response(row: dict) -> SetlistResponse:
        return SetlistResponse(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            sheets=[SheetReference(**ref) for ref in row["sheets"]],
            owner_id=row["owner_id"],
            is_public=row["is_public"],
            shared_with=[ShareEntry(**entry) for entry in row["shared_with"]],
            original_setlist_id=row["original_setlist_id"],
            original_creator=row["original_creator"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
