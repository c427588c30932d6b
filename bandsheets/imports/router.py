from fastapi import APIRouter, Query, UploadFile

from bandsheets.dependencies import CurrentUser, ImportExportServiceDep
from bandsheets.imports.models import ImportPolicy
from bandsheets.imports.schemas import (
    DuplicateCheckRequest,
    DuplicateReport,
    ExportResponse,
    ImportRequest,
    ImportResponse,
)

router = APIRouter()


@router.get("/export", response_model=ExportResponse)
async def export_sheets(
    service: ImportExportServiceDep,
    user: CurrentUser,
) -> ExportResponse:
    return await service.export(user)


@router.post("/import", response_model=ImportResponse, response_model_exclude_none=True)
async def import_sheets(
    data: ImportRequest,
    service: ImportExportServiceDep,
    user: CurrentUser,
) -> ImportResponse:
    return await service.import_records(data, user)


@router.post("/import/file", response_model=ImportResponse, response_model_exclude_none=True)
async def import_sheets_file(
    file: UploadFile,
    service: ImportExportServiceDep,
    user: CurrentUser,
    policy: ImportPolicy | None = Query(default=None),
) -> ImportResponse:
    content = await file.read()
    return await service.import_file(content, file.filename or "upload.json", policy, user)


@router.post("/check-duplicates", response_model=DuplicateReport)
async def check_duplicates(
    data: DuplicateCheckRequest,
    service: ImportExportServiceDep,
    user: CurrentUser,
) -> DuplicateReport:
    return await service.check_duplicates(data)
