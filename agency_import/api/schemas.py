"""Request / response schemas for the bulk import endpoints.

Wire names are camelCase (rowNumber, withWarnings, agencyName, agencyId).
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from agency_import.models.raw_row import RawRow


class RowIn(BaseModel):
    """A decoded row as sent by the client. Column values are extra keys."""

    model_config = ConfigDict(extra="allow")

    row_number: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("rowNumber", "_rowNumber", "row_number"),
    )

    def to_raw_row(self, position: int) -> RawRow:
        """position is the 0-based index in the request; used when no row number was sent."""
        fields = dict(self.model_extra or {})
        row_number = self.row_number if self.row_number is not None else position + 2
        return RawRow(row_number=row_number, fields=fields)


class CommitRowIn(RowIn):
    name: str

    def to_raw_row(self, position: int) -> RawRow:
        raw = super().to_raw_row(position)
        return RawRow(row_number=raw.row_number, fields={**raw.fields, "name": self.name})


class PreviewRequest(BaseModel):
    rows: list[RowIn]

    def raw_rows(self) -> list[RawRow]:
        return [r.to_raw_row(i) for i, r in enumerate(self.rows)]


class CommitRequest(BaseModel):
    rows: list[CommitRowIn]

    def raw_rows(self) -> list[RawRow]:
        return [r.to_raw_row(i) for i, r in enumerate(self.rows)]


class DecodeIssueResponse(BaseModel):
    message: str
    type: Literal["file", "header", "row"]
    row: int | None = None


class DecodeResponse(BaseModel):
    success: bool
    data: list[dict[str, Any]]
    errors: list[DecodeIssueResponse]
    warnings: list[DecodeIssueResponse]


class RowValidationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_number: int = Field(alias="rowNumber")
    valid: bool
    errors: list[str]
    warnings: list[str]
    data: dict[str, Any]


class ValidationSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    valid: int
    invalid: int
    with_warnings: int = Field(alias="withWarnings")


class PreviewResponse(BaseModel):
    rows: list[RowValidationResponse]
    summary: ValidationSummaryResponse


class ImportRowOutcomeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_number: int = Field(alias="rowNumber")
    agency_name: str = Field(alias="agencyName")
    status: Literal["created", "skipped", "failed"]
    agency_id: str | None = Field(default=None, alias="agencyId")
    reason: str | None = None


class ImportSummaryResponse(BaseModel):
    total: int
    created: int
    skipped: int
    failed: int


class BulkImportResponseModel(BaseModel):
    results: list[ImportRowOutcomeResponse]
    summary: ImportSummaryResponse
