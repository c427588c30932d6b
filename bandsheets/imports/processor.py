import secrets
import time
from datetime import UTC, datetime
from typing import Any

import pydantic
import structlog

from bandsheets.exceptions import ImportInputError, ValidationError
from bandsheets.imports.models import NO_SHEETS_MESSAGE, ImportPolicy
from bandsheets.imports.schemas import (
    DuplicateReport,
    ImportOptions,
    ImportRecord,
    ImportRecordError,
    ImportResult,
)
from bandsheets.sheets.service import SheetService
from bandsheets.users.schemas import Principal

logger = structlog.get_logger()


def generate_sheet_id() -> str:
    """Mint an identifier for a renamed import: epoch millis plus a random suffix."""
    return f"{int(time.time() * 1000)}_{secrets.randbelow(1_000_000)}"


def _validate_record(raw: Any) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("Import record must be a JSON object")
    try:
        record = ImportRecord.model_validate(
            {key: raw[key] for key in ("id", "title") if key in raw}
        )
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "record"
        raise ValidationError(f"Invalid import record: {field} {first['msg'].lower()}") from None
    return {**raw, "id": record.id}


def _describe(raw: Any, key: str) -> str:
    value = raw.get(key) if isinstance(raw, dict) else None
    if value is None or value == "":
        return "unknown"
    return str(value)


def _check_batch(records: Any) -> list:
    if not isinstance(records, list) or not records:
        raise ImportInputError(NO_SHEETS_MESSAGE)
    return records


class ImportProcessor:
    def __init__(self, sheets: SheetService, default_public: bool = False) -> None:
        self._sheets = sheets
        self._default_public = default_public

    async def process(
        self,
        records: Any,
        options: ImportOptions | None,
        principal: Principal,
    ) -> ImportResult:
        """Apply the duplicate policy to each record in order.

        Records are independent: a failure is reported against that record and
        the batch continues. Only an absent or empty batch fails as a whole.
        """
        batch = _check_batch(records)
        policy = options.policy() if options is not None else ImportPolicy.skip

        imported_ids: list[str] = []
        skipped_ids: list[str] = []
        errors: list[ImportRecordError] = []

        for index, raw in enumerate(batch):
            try:
                outcome, sheet_id = await self._process_record(raw, policy, principal)
            except Exception as exc:
                errors.append(
                    ImportRecordError(
                        identifier=_describe(raw, "id"),
                        title=_describe(raw, "title"),
                        error=str(exc) or type(exc).__name__,
                    )
                )
                logger.warning(
                    "import_record_failed",
                    index=index,
                    identifier=_describe(raw, "id"),
                    error=str(exc),
                )
                continue

            if outcome == "skipped":
                skipped_ids.append(sheet_id)
            else:
                imported_ids.append(sheet_id)

        result = ImportResult(
            total=len(batch),
            imported=len(imported_ids),
            skipped=len(skipped_ids),
            errors=errors,
            imported_ids=imported_ids,
            skipped_ids=skipped_ids,
        )
        logger.info(
            "import_completed",
            user_id=principal.id,
            policy=policy.value,
            total=result.total,
            imported=result.imported,
            skipped=result.skipped,
            failed=len(errors),
        )
        return result

    async def find_duplicates(self, records: Any) -> DuplicateReport:
        """Identifiers in the batch that already exist, without touching the store."""
        identifiers: list[str] = []
        for raw in _check_batch(records):
            try:
                sheet_id = _validate_record(raw)["id"]
            except ValidationError:
                continue
            if sheet_id in identifiers:
                continue
            if await self._sheets.find_by_identifier(sheet_id) is not None:
                identifiers.append(sheet_id)
        return DuplicateReport(identifiers=identifiers)

    async def _process_record(
        self, raw: Any, policy: ImportPolicy, principal: Principal
    ) -> tuple[str, str]:
        record = _validate_record(raw)
        existing = await self._sheets.find_by_identifier(record["id"])

        if existing is None:
            stored = await self._insert(record, principal)
            return "imported", stored["id"]

        if policy == ImportPolicy.skip:
            logger.debug("import_duplicate_skipped", sheet_id=record["id"])
            return "skipped", record["id"]

        if policy == ImportPolicy.rename:
            new_id = generate_sheet_id()
            logger.debug("import_duplicate_renamed", sheet_id=record["id"], new_id=new_id)
            stored = await self._insert({**record, "id": new_id}, principal)
            return "imported", stored["id"]

        # overwrite: owner, share list and visibility stay as they are
        stored = await self._sheets.update_in_place(existing["id"], record)
        logger.debug("import_duplicate_overwritten", sheet_id=stored["id"])
        return "imported", stored["id"]

    async def _insert(self, record: dict, principal: Principal) -> dict:
        return await self._sheets.insert(
            record,
            principal.id,
            is_public=self._default_public,
            date_imported=datetime.now(UTC).isoformat(),
        )
