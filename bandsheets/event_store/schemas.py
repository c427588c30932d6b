import json

from pydantic import BaseModel

from bandsheets.event_store.models import Event


class EventResponse(BaseModel):
    event_id: str
    event_type: str
    version: int
    data: dict
    created_at: str

    @classmethod
    def from_event(cls, event: Event) -> "EventResponse":
        return cls(
            event_id=event.event_id,
            event_type=event.event_type,
            version=event.version,
            data=json.loads(event.event_data),
            created_at=event.created_at,
        )
