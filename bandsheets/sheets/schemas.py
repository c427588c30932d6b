from pydantic import BaseModel, ConfigDict, Field

from bandsheets.sheets.models import SharePermission


class ShareEntry(BaseModel):
    user: str
    permission: SharePermission = SharePermission.read


class SheetCreate(BaseModel):
    # Sections, parts and the rest of the song structure pass through untyped
    model_config = ConfigDict(extra="allow")

    id: str | None = Field(default=None, min_length=1)
    title: str = Field(min_length=1)
    artist: str | None = None
    bpm: float | None = None


class SheetUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str | None = Field(default=None, min_length=1)
    artist: str | None = None
    bpm: float | None = None


class ShareRequest(BaseModel):
    username: str = Field(min_length=1)
    permission: SharePermission = SharePermission.read


class SheetSummary(BaseModel):
    id: str
    title: str
    artist: str | None
    bpm: float | None
    owner_id: str
    is_public: bool
    updated_at: str


class SheetResponse(BaseModel):
    id: str
    title: str
    artist: str | None
    bpm: float | None
    owner_id: str
    is_public: bool
    shared_with: list[ShareEntry]
    date_imported: str | None
    created_at: str
    updated_at: str
    content: dict
