from collections import Counter
from collections.abc import Callable
from enum import StrEnum
from typing import Any

import structlog

from bandsheets.client.api import BandSheetsClient
from bandsheets.exceptions import ImportInputError, TransportError, ValidationError
from bandsheets.imports.models import ImportPolicy
from bandsheets.imports.parser import parse_import_file
from bandsheets.imports.schemas import DuplicateReport, ImportOptions, ImportResponse, ImportResult
from bandsheets.sheets.schemas import SheetSummary

logger = structlog.get_logger()

NotifyCallback = Callable[[str, str], None]
RefreshCallback = Callable[[list[SheetSummary]], None]


class CoordinatorState(StrEnum):
    idle = "idle"
    file_selected = "file_selected"
    detecting_duplicates = "detecting_duplicates"
    awaiting_policy_choice = "awaiting_policy_choice"
    importing = "importing"
    completed = "completed"
    errored = "errored"


class ImportCoordinator:
    """Drives one file import from selection to the refreshed sheet list.

    Detection sends the batch with no policy, which the server treats as
    skip: new sheets are stored right away and colliding ones come back as
    skipped. When collisions exist the caller picks a policy and the whole
    original batch is sent again with it.
    """

    def __init__(
        self,
        client: BandSheetsClient,
        notify: NotifyCallback | None = None,
        on_sheets_refreshed: RefreshCallback | None = None,
    ) -> None:
        self._client = client
        self._notify = notify or (lambda message, severity: None)
        self._on_sheets_refreshed = on_sheets_refreshed or (lambda sheets: None)

        self.state = CoordinatorState.idle
        self.filename: str | None = None
        self.records: list[Any] | None = None
        self.duplicates: DuplicateReport | None = None
        self.last_result: ImportResult | None = None

        self._imported_during_detection: Counter[str] = Counter()
        self._failed_step: str | None = None
        self._policy = ImportPolicy.skip

    async def select_file(self, content: bytes, filename: str) -> DuplicateReport | None:
        try:
            records = parse_import_file(content, filename)
        except ImportInputError as exc:
            logger.warning("import_file_unreadable", filename=filename, error=exc.message)
            self._notify(exc.message, "error")
            if self.records is None:
                self.state = CoordinatorState.idle
            return None

        self._clear_selection()
        self.filename = filename
        self.records = records
        self.state = CoordinatorState.file_selected
        logger.info("import_file_selected", filename=filename, records=len(records))
        return await self.detect()

    async def detect(self) -> DuplicateReport | None:
        if self.records is None:
            raise ValidationError("No import file selected")

        self.state = CoordinatorState.detecting_duplicates
        try:
            response = await self._client.import_sheets(self.records)
        except TransportError as exc:
            return self._fail("detect", exc.message)
        if not response.success or response.results is None:
            return self._fail("detect", response.error or "Import failed")

        results = response.results
        # Records stored by earlier passes of this selection come back as skipped.
        # Counted per id, so a repeated id within the batch still collides.
        collided = Counter(results.skipped_ids) - self._imported_during_detection
        identifiers = [
            sheet_id for sheet_id in dict.fromkeys(results.skipped_ids) if collided[sheet_id]
        ]
        self._imported_during_detection.update(results.imported_ids)
        report = DuplicateReport(identifiers=identifiers)
        self.duplicates = report

        if report.has_duplicates:
            self.state = CoordinatorState.awaiting_policy_choice
            logger.info("import_duplicates_found", filename=self.filename, count=len(identifiers))
            self._notify(
                f"{len(identifiers)} sheet(s) already exist. Choose how to handle duplicates.",
                "warning",
            )
            return report

        await self._complete(response)
        return report

    async def confirm(self, policy: ImportPolicy = ImportPolicy.skip) -> ImportResult | None:
        pending = self.state == CoordinatorState.awaiting_policy_choice or (
            self.state == CoordinatorState.errored and self._failed_step == "import"
        )
        if self.records is None or not pending:
            raise ValidationError("No duplicate resolution is pending")

        self._policy = policy
        self.state = CoordinatorState.importing
        try:
            response = await self._client.import_sheets(
                self.records, ImportOptions.from_policy(policy)
            )
        except TransportError as exc:
            return self._fail("import", exc.message)
        if not response.success or response.results is None:
            return self._fail("import", response.error or "Import failed")

        return await self._complete(response)

    async def retry(self) -> DuplicateReport | ImportResult | None:
        if self.state != CoordinatorState.errored or self._failed_step is None:
            raise ValidationError("Nothing to retry")
        if self._failed_step == "detect":
            return await self.detect()
        return await self.confirm(self._policy)

    def cancel(self) -> None:
        self._clear_selection()
        self.state = CoordinatorState.idle

    async def _complete(self, response: ImportResponse) -> ImportResult:
        result = response.results
        self.last_result = result
        logger.info(
            "import_finished",
            filename=self.filename,
            imported=result.imported,
            skipped=result.skipped,
            failed=len(result.errors),
        )
        self._notify(response.message or "Import complete.", "success")
        self._clear_selection()
        self.state = CoordinatorState.completed
        await self._refresh_sheets()
        return result

    async def _refresh_sheets(self) -> None:
        try:
            sheets = await self._client.list_sheets()
            self._on_sheets_refreshed(sheets)
        except Exception as exc:
            # The import already finished; a stale list is not an import failure
            logger.warning("sheet_refresh_failed", error=str(exc))

    def _fail(self, step: str, message: str) -> None:
        self._failed_step = step
        self.state = CoordinatorState.errored
        logger.warning("import_step_failed", step=step, filename=self.filename, error=message)
        self._notify(message, "error")
        return None

    def _clear_selection(self) -> None:
        self.filename = None
        self.records = None
        self.duplicates = None
        self._failed_step = None
        self._imported_during_detection = Counter()
