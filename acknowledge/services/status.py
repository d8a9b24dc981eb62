"""Acknowledgement status reporting.

All queries share the same shape: assignments joined with the document
revision index and the latest acknowledgement per document and user.
Whether a user is covered by an assignee expression is decided in Python by
the membership resolver, never inside the database.
"""

import logging
from collections.abc import Iterable

from fastapi import HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from acknowledge.config import settings
from acknowledge.models.acknowledgement import (
    Acknowledgement,
    AcknowledgementStatus,
    Assignment,
    Document,
)
from acknowledge.schemas.acknowledgement import (
    AcknowledgementRow,
    AssignmentStatusRead,
    PatternStatusReport,
    UserAcknowledgementSummary,
)
from acknowledge.services.assignment import Assignments
from acknowledge.services.assignment_pattern import AssignmentPatterns
from acknowledge.services.common import coerce_status, requires_storage
from acknowledge.services.membership import (
    MembershipChecker,
    MembershipResolver,
    UserDirectory,
    default_resolver,
    normalize_user,
    user_column,
)
from acknowledge.services.pattern import PatternError

logger = logging.getLogger(__name__)


def status_matches(row: AcknowledgementRow, status: AcknowledgementStatus) -> bool:
    if status == AcknowledgementStatus.current:
        return row.is_current
    if status == AcknowledgementStatus.due:
        return row.is_due
    if status == AcknowledgementStatus.outdated:
        return row.is_outdated
    return True


def _user_rows(
    db: Session,
    user: str,
    groups: Iterable[str],
    resolver: MembershipChecker | None,
) -> list[AssignmentStatusRead]:
    """One row per document assigned to the user with the latest acknowledgement."""
    resolver = resolver or default_resolver
    groups = list(groups or ())
    ack = func.max(Acknowledgement.ack).label("ack")
    stmt = (
        select(
            Assignment.document_id,
            Assignment.page_assignees,
            Assignment.pattern_assignees,
            Document.lastmod,
            ack,
        )
        .join(Document, Document.id == Assignment.document_id)
        .outerjoin(
            Acknowledgement,
            and_(
                Acknowledgement.document_id == Assignment.document_id,
                user_column(Acknowledgement.user, resolver)
                == normalize_user(user, resolver),
            ),
        )
        .group_by(
            Assignment.document_id,
            Assignment.page_assignees,
            Assignment.pattern_assignees,
            Document.lastmod,
        )
        .order_by(Assignment.document_id)
    )
    rows = []
    for row in db.execute(stmt).all():
        expression = f"{row.page_assignees},{row.pattern_assignees}"
        if not resolver.is_member(expression, user, groups):
            continue
        rows.append(
            AssignmentStatusRead(
                document_id=row.document_id,
                page_assignees=row.page_assignees,
                pattern_assignees=row.pattern_assignees,
                lastmod=row.lastmod,
                user=user,
                ack=row.ack,
            )
        )
    return rows


class StatusQueries:
    @staticmethod
    @requires_storage(list)
    def pending_for_user(
        db: Session,
        user: str,
        groups: Iterable[str],
        resolver: MembershipChecker | None = None,
    ) -> list[AssignmentStatusRead]:
        """Documents the user still has to acknowledge."""
        return [row for row in _user_rows(db, user, groups, resolver) if row.is_due]

    @staticmethod
    @requires_storage(list)
    def history_for_user(
        db: Session,
        user: str,
        groups: Iterable[str],
        status: AcknowledgementStatus | str | None = None,
        resolver: MembershipChecker | None = None,
    ) -> list[AssignmentStatusRead]:
        """Every document assigned to the user, filtered by acknowledgement status."""
        status = coerce_status(status)
        return [
            row
            for row in _user_rows(db, user, groups, resolver)
            if status_matches(row, status)
        ]

    @staticmethod
    @requires_storage(list)
    def listing_for_user(
        db: Session,
        user: str,
        groups: Iterable[str],
        include_done: bool = False,
        resolver: MembershipChecker | None = None,
    ) -> list[AssignmentStatusRead]:
        if include_done:
            return StatusQueries.history_for_user(db, user, groups, resolver=resolver)
        return StatusQueries.pending_for_user(db, user, groups, resolver)

    @staticmethod
    @requires_storage(list)
    def status_for_document(
        db: Session,
        document_id: str,
        directory: UserDirectory,
        user: str | None = None,
        status: AcknowledgementStatus | str | None = None,
        limit: int | None = None,
        resolver: MembershipResolver | None = None,
    ) -> list[AcknowledgementRow]:
        """Latest acknowledgement of every assignee of a document.

        Assignees that never acknowledged get a row without ``ack``. Those rows
        only exist after filling them in, so status filtering happens last.
        Case-insensitive resolvers report folded user names.
        """
        status = coerce_status(status)
        lastmod = db.scalar(select(Document.lastmod).where(Document.id == document_id))
        if lastmod is None:
            return []

        users = Assignments.resolve_assignee_names(db, document_id, directory, resolver)
        if user:
            user = normalize_user(user, resolver)
            users = [name for name in users if name == user]
        if not users:
            return []

        stored_user = user_column(Acknowledgement.user, resolver)
        acked = db.execute(
            select(stored_user.label("user"), func.max(Acknowledgement.ack).label("ack"))
            .where(Acknowledgement.document_id == document_id)
            .where(stored_user.in_(users))
            .group_by(stored_user)
        ).all()
        combined = {
            row.user: AcknowledgementRow(
                document_id=document_id, lastmod=lastmod, user=row.user, ack=row.ack
            )
            for row in acked
        }
        if status != AcknowledgementStatus.current:
            for name in users:
                if name not in combined:
                    combined[name] = AcknowledgementRow(
                        document_id=document_id, lastmod=lastmod, user=name
                    )

        rows = [
            combined[name]
            for name in sorted(combined)
            if status_matches(combined[name], status)
        ]
        if limit:
            rows = rows[:limit]
        return rows

    @staticmethod
    @requires_storage(PatternStatusReport)
    def status_for_pattern(
        db: Session,
        pattern: str,
        directory: UserDirectory,
        user: str | None = None,
        status: AcknowledgementStatus | str | None = None,
        max_results: int | None = None,
        resolver: MembershipResolver | None = None,
    ) -> PatternStatusReport:
        """Per-assignee status of all documents matching a pattern, capped."""
        max_results = max_results or settings.ack_report_max_results
        try:
            document_ids = AssignmentPatterns.matching_documents(db, pattern)
        except PatternError as e:
            raise HTTPException(status_code=400, detail=str(e))

        report = PatternStatusReport()
        for document_id in document_ids:
            # one row past the cap tells a full report from a truncated one
            report.rows.extend(
                StatusQueries.status_for_document(
                    db,
                    document_id,
                    directory,
                    user,
                    status,
                    max_results + 1 - len(report.rows),
                    resolver,
                )
            )
            if len(report.rows) > max_results:
                report.rows = report.rows[:max_results]
                report.truncated = True
                logger.info(
                    "Status report for %r truncated at %d rows", pattern, max_results
                )
                break
        return report

    @staticmethod
    @requires_storage(list)
    def recent_acknowledgements(
        db: Session, limit: int | None = None
    ) -> list[AcknowledgementRow]:
        """Latest acknowledgement per document and user, newest first."""
        ack = func.max(Acknowledgement.ack).label("ack")
        stmt = (
            select(
                Acknowledgement.document_id,
                Acknowledgement.user,
                Document.lastmod,
                ack,
            )
            .join(Document, Document.id == Acknowledgement.document_id)
            .group_by(Acknowledgement.user, Acknowledgement.document_id, Document.lastmod)
            .order_by(ack.desc(), Acknowledgement.document_id, Acknowledgement.user)
            .limit(limit or settings.ack_recent_limit)
        )
        return [
            AcknowledgementRow(
                document_id=row.document_id,
                lastmod=row.lastmod,
                user=row.user,
                ack=row.ack,
            )
            for row in db.execute(stmt).all()
        ]

    @staticmethod
    def summarize(
        user: str, rows: Iterable[AcknowledgementRow]
    ) -> UserAcknowledgementSummary:
        rows = list(rows)
        return UserAcknowledgementSummary(
            user=user,
            current=sum(1 for row in rows if row.is_current),
            total=len(rows),
        )


status_queries = StatusQueries()
