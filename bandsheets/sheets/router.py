from fastapi import APIRouter

from bandsheets.dependencies import CurrentUser, SheetServiceDep
from bandsheets.event_store.schemas import EventResponse
from bandsheets.sheets.schemas import (
    ShareRequest,
    SheetCreate,
    SheetResponse,
    SheetSummary,
    SheetUpdate,
)

router = APIRouter()


@router.get("/", response_model=list[SheetSummary])
async def list_sheets(
    service: SheetServiceDep,
    user: CurrentUser,
) -> list[SheetSummary]:
    return await service.list_for(user)


@router.post("/", status_code=201, response_model=SheetResponse)
async def create_sheet(
    data: SheetCreate,
    service: SheetServiceDep,
    user: CurrentUser,
) -> SheetResponse:
    return await service.create(data, user)


@router.get("/{sheet_id}", response_model=SheetResponse)
async def get_sheet(
    sheet_id: str,
    service: SheetServiceDep,
    user: CurrentUser,
) -> SheetResponse:
    return await service.get(sheet_id, user)


@router.put("/{sheet_id}", response_model=SheetResponse)
async def update_sheet(
    sheet_id: str,
    data: SheetUpdate,
    service: SheetServiceDep,
    user: CurrentUser,
) -> SheetResponse:
    return await service.update(sheet_id, data, user)


@router.delete("/{sheet_id}", status_code=204)
async def delete_sheet(
    sheet_id: str,
    service: SheetServiceDep,
    user: CurrentUser,
) -> None:
    await service.delete(sheet_id, user)


@router.post("/{sheet_id}/share", response_model=SheetResponse)
async def share_sheet(
    sheet_id: str,
    data: ShareRequest,
    service: SheetServiceDep,
    user: CurrentUser,
) -> SheetResponse:
    return await service.share(sheet_id, data, user)


@router.get("/{sheet_id}/history", response_model=list[EventResponse])
async def get_sheet_history(
    sheet_id: str,
    service: SheetServiceDep,
    user: CurrentUser,
) -> list[EventResponse]:
    return await service.history(sheet_id, user)
