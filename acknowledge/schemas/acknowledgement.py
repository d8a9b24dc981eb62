from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Document lifecycle
# ---------------------------------------------------------------------------


class DocumentChange(BaseModel):
    document_id: str = Field(min_length=1, max_length=255)
    change_type: str = "edit"
    lastmod: int = Field(default=0, ge=0)
    old_content: str = ""
    new_content: str = ""


# ---------------------------------------------------------------------------
# Assignment patterns
# ---------------------------------------------------------------------------


class PatternWarning(BaseModel):
    pattern: str
    message: str


class PatternUpdateResult(BaseModel):
    patterns: int = 0
    documents: int = 0
    warnings: list[PatternWarning] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Status rows
# ---------------------------------------------------------------------------


class AcknowledgementRow(BaseModel):
    """One (document, user) pair with the user's latest acknowledgement."""

    model_config = ConfigDict(from_attributes=True)

    document_id: str
    lastmod: int | None = None
    user: str | None = None
    ack: int | None = None

    @property
    def is_current(self) -> bool:
        return self.ack is not None and self.lastmod is not None and self.ack >= self.lastmod

    @property
    def is_outdated(self) -> bool:
        return self.ack is not None and not self.is_current

    @property
    def is_due(self) -> bool:
        return not self.is_current


class AssignmentStatusRead(AcknowledgementRow):
    page_assignees: str = ""
    pattern_assignees: str = ""


class PatternStatusReport(BaseModel):
    rows: list[AcknowledgementRow] = Field(default_factory=list)
    truncated: bool = False


class UserAcknowledgementSummary(BaseModel):
    user: str
    current: int
    total: int


# ---------------------------------------------------------------------------
# In-document acknowledgement box
# ---------------------------------------------------------------------------


class AcknowledgementState(BaseModel):
    document_id: str
    user: str
    assigned: bool
    acknowledged_at: int | None = None
    latest: int | None = None

    @property
    def is_current(self) -> bool:
        return self.acknowledged_at is not None
