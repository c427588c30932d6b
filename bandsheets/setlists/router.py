from fastapi import APIRouter

from bandsheets.dependencies import CurrentUser, OptionalUser, SetlistServiceDep
from bandsheets.setlists.schemas import (
    AddSheetRequest,
    ReorderRequest,
    SetlistCreate,
    SetlistResponse,
    SetlistUpdate,
)

router = APIRouter()


@router.get("/", response_model=list[SetlistResponse])
async def list_setlists(
    service: SetlistServiceDep,
    user: OptionalUser,
) -> list[SetlistResponse]:
    return await service.list_for(user)


@router.post("/", status_code=201, response_model=SetlistResponse)
async def create_setlist(
    data: SetlistCreate,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.create(data, user)


@router.get("/{setlist_id}", response_model=SetlistResponse)
async def get_setlist(
    setlist_id: str,
    service: SetlistServiceDep,
    user: OptionalUser,
) -> SetlistResponse:
    return await service.get(setlist_id, user)


@router.put("/{setlist_id}", response_model=SetlistResponse)
async def update_setlist(
    setlist_id: str,
    data: SetlistUpdate,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.update(setlist_id, data, user)


@router.delete("/{setlist_id}", status_code=204)
async def delete_setlist(
    setlist_id: str,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> None:
    await service.delete(setlist_id, user)


@router.post("/{setlist_id}/sheets", response_model=SetlistResponse)
async def add_sheet_to_setlist(
    setlist_id: str,
    data: AddSheetRequest,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.add_sheet(setlist_id, data, user)


@router.delete("/{setlist_id}/sheets/{sheet_id}", response_model=SetlistResponse)
async def remove_sheet_from_setlist(
    setlist_id: str,
    sheet_id: str,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.remove_sheet(setlist_id, sheet_id, user)


@router.put("/{setlist_id}/reorder", response_model=SetlistResponse)
async def reorder_setlist_sheets(
    setlist_id: str,
    data: ReorderRequest,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.reorder(setlist_id, data, user)


@router.post("/{setlist_id}/favorite", status_code=201, response_model=SetlistResponse)
async def favorite_setlist(
    setlist_id: str,
    service: SetlistServiceDep,
    user: CurrentUser,
) -> SetlistResponse:
    return await service.favorite(setlist_id, user)
