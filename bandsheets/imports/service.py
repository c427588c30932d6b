from datetime import UTC, datetime

import structlog

from bandsheets.exceptions import NotFoundError
from bandsheets.imports.models import ImportPolicy
from bandsheets.imports.parser import parse_import_file
from bandsheets.imports.processor import ImportProcessor
from bandsheets.imports.schemas import (
    DuplicateCheckRequest,
    DuplicateReport,
    ExportBundle,
    ExportResponse,
    ImportOptions,
    ImportRequest,
    ImportResponse,
    ImportResult,
)
from bandsheets.sheets.service import SheetService
from bandsheets.users.schemas import Principal

logger = structlog.get_logger()


def summarize(result: ImportResult) -> str:
    return f"Import complete. {result.imported} sheets imported, {result.skipped} skipped."


class ImportExportService:
    def __init__(self, sheets: SheetService, processor: ImportProcessor) -> None:
        self._sheets = sheets
        self._processor = processor

    async def export(self, principal: Principal) -> ExportResponse:
        rows = await self._sheets.list_owned(principal.id)
        if not rows:
            raise NotFoundError("Sheet", principal.username, message="No sheets found for export")

        bundle = ExportBundle(
            export_date=datetime.now(UTC).isoformat(),
            exported_by=principal.username,
            sheets_count=len(rows),
            sheets=[{**row["document"], "id": row["id"]} for row in rows],
        )
        logger.info("sheets_exported", user_id=principal.id, count=bundle.sheets_count)
        return ExportResponse(data=bundle)

    async def import_records(self, request: ImportRequest, principal: Principal) -> ImportResponse:
        result = await self._processor.process(request.sheets, request.options, principal)
        return ImportResponse(success=True, message=summarize(result), results=result)

    async def import_file(
        self,
        content: bytes,
        filename: str,
        policy: ImportPolicy | None,
        principal: Principal,
    ) -> ImportResponse:
        records = parse_import_file(content, filename)
        options = ImportOptions.from_policy(policy) if policy is not None else None
        result = await self._processor.process(records, options, principal)
        return ImportResponse(success=True, message=summarize(result), results=result)

    async def check_duplicates(self, request: DuplicateCheckRequest) -> DuplicateReport:
        return await self._processor.find_duplicates(request.sheets)
