from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator

from bandsheets.imports.models import ImportPolicy


class ImportRecord(BaseModel):
    """Identifying fields of an imported sheet; the rest of the payload stays opaque."""

    id: str = Field(min_length=1)
    title: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_numeric_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ImportOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    generate_new_ids: bool = Field(default=False, alias="generateNewIds")
    skip_duplicates: bool = Field(default=False, alias="skipDuplicates")
    overwrite_duplicates: bool = Field(default=False, alias="overwriteDuplicates")

    def policy(self) -> ImportPolicy:
        # rename wins over skip, skip wins over overwrite; no flags means skip
        if self.generate_new_ids:
            return ImportPolicy.rename
        if self.skip_duplicates:
            return ImportPolicy.skip
        if self.overwrite_duplicates:
            return ImportPolicy.overwrite
        return ImportPolicy.skip

    @classmethod
    def from_policy(cls, policy: ImportPolicy) -> "ImportOptions":
        return cls(
            generate_new_ids=policy == ImportPolicy.rename,
            skip_duplicates=policy == ImportPolicy.skip,
            overwrite_duplicates=policy == ImportPolicy.overwrite,
        )


class ImportRequest(BaseModel):
    # Left untyped so a missing or malformed batch is reported as an import error
    sheets: Any = Field(default=None, validation_alias=AliasChoices("sheets", "records"))
    options: ImportOptions | None = Field(
        default=None, validation_alias=AliasChoices("importOptions", "options", "policy")
    )

    @field_validator("options", mode="before")
    @classmethod
    def accept_policy_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ImportOptions.from_policy(ImportPolicy(value))
        return value


class DuplicateCheckRequest(BaseModel):
    sheets: Any = Field(default=None, validation_alias=AliasChoices("sheets", "records"))


class ImportRecordError(BaseModel):
    identifier: str
    title: str
    error: str


class ImportResult(BaseModel):
    total: int
    imported: int = 0
    skipped: int = 0
    errors: list[ImportRecordError] = Field(default_factory=list)
    imported_ids: list[str] = Field(default_factory=list)
    skipped_ids: list[str] = Field(default_factory=list)


class ImportResponse(BaseModel):
    success: bool
    message: str | None = None
    results: ImportResult | None = None
    error: str | None = None


class DuplicateReport(BaseModel):
    identifiers: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def has_duplicates(self) -> bool:
        return bool(self.identifiers)


class ExportBundle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    export_date: str = Field(alias="exportDate")
    exported_by: str = Field(alias="exportedBy")
    sheets_count: int = Field(alias="sheetsCount")
    sheets: list[dict]


class ExportResponse(BaseModel):
    success: bool = True
    data: ExportBundle
