"""Edit report models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EditStatus = Literal["replaced", "removed", "rejected", "unmapped"]
EditReason = Literal[
    "protected_barcode",
    "protected_qrcode",
    "role_unmapped",
    "unknown_role",
    "duplicate_target",
    "field_out_of_range",
    "analysis_mismatch",
]

PROTECTED_REASONS: frozenset[str] = frozenset({"protected_barcode", "protected_qrcode"})


class EditEntry(BaseModel):
    """Outcome of one requested edit (or of one layer it was propagated to)."""

    model_config = ConfigDict(extra="forbid")

    status: EditStatus
    role: str | None = None
    field_index: int | None = None
    start_line: int | None = None
    end_line: int | None = None
    original_value: str | None = None
    new_value: str | None = None
    reason: EditReason | None = None
    encoding_upgraded: bool = False


class EditSummary(BaseModel):
    """Aggregate counts for an edit run."""

    model_config = ConfigDict(extra="forbid")

    requested_count: int
    replaced_count: int
    removed_count: int
    rejected_count: int
    unmapped_count: int
    encoding_declaration_inserted: bool = False


class EditReport(BaseModel):
    """Per-edit entries plus summary.

    Rules:
    - rejected/unmapped entries never change the output
    - a report without replaced/removed entries means the input was returned as-is
    """

    model_config = ConfigDict(extra="forbid")

    entries: list[EditEntry] = Field(default_factory=list)
    summary: EditSummary

    @property
    def errors(self) -> list[EditEntry]:
        return [entry for entry in self.entries if entry.status in {"rejected", "unmapped"}]

    @property
    def has_protected_rejection(self) -> bool:
        return any(entry.reason in PROTECTED_REASONS for entry in self.entries)


class EditOutput(BaseModel):
    """Rewritten label text with its report."""

    model_config = ConfigDict(extra="forbid")

    zpl: str
    report: EditReport

    @property
    def changed(self) -> bool:
        return self.report.summary.replaced_count + self.report.summary.removed_count > 0
