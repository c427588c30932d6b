from dataclasses import dataclass
from enum import StrEnum


class AggregateType(StrEnum):
    sheet = "sheet"
    setlist = "setlist"


class EventType(StrEnum):
    sheet_created = "sheet_created"
    sheet_updated = "sheet_updated"
    sheet_shared = "sheet_shared"
    sheet_deleted = "sheet_deleted"
    setlist_created = "setlist_created"
    setlist_updated = "setlist_updated"
    setlist_deleted = "setlist_deleted"


@dataclass(frozen=True)
class Event:
    event_id: str
    aggregate_type: str
    aggregate_id: str
    event_type: str
    event_data: str
    metadata: str | None
    version: int
    created_at: str
