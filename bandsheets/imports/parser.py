import json
from typing import Any

import structlog

from bandsheets.exceptions import ImportInputError
from bandsheets.imports.models import UNKNOWN_FORMAT_MESSAGE

logger = structlog.get_logger()


def parse_import_file(content: bytes, filename: str) -> list[Any]:
    """Read the sheet batch out of an uploaded JSON file.

    Accepted layouts are a single sheet object, a bundle ``{"sheets": [...]}``
    and the export envelope ``{"success": ..., "data": {"sheets": [...]}}``.
    The batch itself is returned unchecked; an empty list is rejected by the
    import processor, not here.
    """
    text = _decode_content(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("import_file_unreadable", filename=filename, error=str(exc))
        raise ImportInputError(f"Invalid import file. {filename} is not valid JSON.") from None

    if isinstance(data, list):
        records = data
    elif isinstance(data, dict) and isinstance(data.get("sheets"), list):
        records = data["sheets"]
    elif (
        isinstance(data, dict)
        and isinstance(data.get("data"), dict)
        and isinstance(data["data"].get("sheets"), list)
    ):
        records = data["data"]["sheets"]
    elif isinstance(data, dict) and "id" in data and "title" in data:
        records = [data]
    else:
        raise ImportInputError(UNKNOWN_FORMAT_MESSAGE)

    logger.info("import_file_parsed", filename=filename, records=len(records))
    return records


def _decode_content(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")
