from pydantic import AliasChoices, BaseModel, Field

from bandsheets.sheets.schemas import ShareEntry


class SheetReference(BaseModel):
    id: str = Field(min_length=1)
    title: str | None = None
    artist: str | None = None
    bpm: float | None = None


class SetlistCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None
    sheets: list[SheetReference] = Field(default_factory=list)


class SetlistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    sheets: list[SheetReference] | None = None
    is_public: bool | None = Field(
        default=None, validation_alias=AliasChoices("is_public", "isPublic")
    )


class AddSheetRequest(BaseModel):
    sheet_id: str = Field(min_length=1, validation_alias=AliasChoices("sheet_id", "sheetId"))


class ReorderRequest(BaseModel):
    old_index: int = Field(ge=0, validation_alias=AliasChoices("old_index", "oldIndex"))
    new_index: int = Field(ge=0, validation_alias=AliasChoices("new_index", "newIndex"))


class SetlistResponse(BaseModel):
    id: str
    name: str
    description: str | None
    sheets: list[SheetReference]
    owner_id: str
    is_public: bool
    shared_with: list[ShareEntry]
    original_setlist_id: str | None
    original_creator: str | None
    created_at: str
    updated_at: str
