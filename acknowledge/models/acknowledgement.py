import enum

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from acknowledge.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AcknowledgementStatus(enum.Enum):
    all = "all"
    current = "current"
    due = "due"
    outdated = "outdated"


class ChangeType(enum.Enum):
    create = "create"
    edit = "edit"
    minor_edit = "minor_edit"
    delete = "delete"


# ---------------------------------------------------------------------------
# Document revision index
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    # epoch seconds of the last substantive modification
    lastmod: Mapped[int] = mapped_column(Integer, nullable=False)


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


class Assignment(Base):
    __tablename__ = "assignments"

    document_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("documents.id", ondelete="CASCADE"),
        primary_key=True,
    )
    page_assignees: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pattern_assignees: Mapped[str] = mapped_column(Text, nullable=False, default="")

    @property
    def assignees(self) -> str:
        return f"{self.page_assignees or ''},{self.pattern_assignees or ''}"


class AssignmentPattern(Base):
    __tablename__ = "assignment_patterns"

    pattern: Mapped[str] = mapped_column(String(255), primary_key=True)
    assignees: Mapped[str] = mapped_column(Text, nullable=False)


# ---------------------------------------------------------------------------
# Acknowledgement log (append-only)
# ---------------------------------------------------------------------------


class Acknowledgement(Base):
    __tablename__ = "acknowledgements"
    __table_args__ = (
        Index("ix_acknowledgements_document_user", "document_id", "user"),
        Index("ix_acknowledgements_ack", "ack"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # no FK: history survives document removal
    document_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user: Mapped[str] = mapped_column(String(255), nullable=False)
    ack: Mapped[int] = mapped_column(Integer, nullable=False)
