import logging
from collections.abc import Iterable, Mapping

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from acknowledge.models.acknowledgement import Assignment, AssignmentPattern, Document
from acknowledge.services.common import normalize_assignees, requires_storage
from acknowledge.services.membership import (
    MembershipChecker,
    MembershipResolver,
    UserDirectory,
    default_resolver,
)
from acknowledge.services.pattern import PatternError, matches

logger = logging.getLogger(__name__)


def _upsert(db: Session, document_id: str) -> Assignment:
    if not db.get(Document, document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    assignment = db.get(Assignment, document_id)
    if assignment is None:
        assignment = Assignment(
            document_id=document_id, page_assignees="", pattern_assignees=""
        )
        db.add(assignment)
    return assignment


def collect_pattern_assignees(document_id: str, rules: Mapping[str, str]) -> str:
    """Union of the assignees of all rules matching the document.

    Rules whose regex does not compile never match.
    """
    assignees = []
    for pattern, expression in rules.items():
        try:
            if matches(pattern, document_id):
                assignees.append(expression)
        except PatternError as e:
            logger.warning("Skipping assignment pattern: %s", e)
    return normalize_assignees(",".join(assignees))


class Assignments:
    @staticmethod
    @requires_storage()
    def get(db: Session, document_id: str) -> Assignment | None:
        return db.get(Assignment, document_id)

    @staticmethod
    @requires_storage()
    def set_page_assignees(db: Session, document_id: str, assignees: str) -> Assignment:
        assignment = _upsert(db, document_id)
        assignment.page_assignees = normalize_assignees(assignees)
        db.flush()
        logger.info(
            "Set page assignees for %s: %s", document_id, assignment.page_assignees
        )
        return assignment

    @staticmethod
    @requires_storage()
    def clear_page_assignees(db: Session, document_id: str) -> None:
        # the row stays so pattern assignees survive
        db.execute(
            update(Assignment)
            .where(Assignment.document_id == document_id)
            .values(page_assignees="")
        )
        db.flush()
        logger.debug("Cleared page assignees for %s", document_id)

    @staticmethod
    @requires_storage()
    def set_pattern_assignees(
        db: Session,
        document_id: str,
        rules: Mapping[str, str] | None = None,
    ) -> Assignment:
        if rules is None:
            rules = {
                row.pattern: row.assignees
                for row in db.scalars(select(AssignmentPattern)).all()
            }
        assignment = _upsert(db, document_id)
        assignment.pattern_assignees = collect_pattern_assignees(document_id, rules)
        db.flush()
        logger.info(
            "Set pattern assignees for %s: %s",
            document_id,
            assignment.pattern_assignees,
        )
        return assignment

    @staticmethod
    @requires_storage(False)
    def is_assigned(
        db: Session,
        document_id: str,
        user: str,
        groups: Iterable[str],
        resolver: MembershipChecker | None = None,
    ) -> bool:
        assignment = db.get(Assignment, document_id)
        if not assignment:
            return False
        return (resolver or default_resolver).is_member(
            assignment.assignees, user, groups
        )

    @staticmethod
    @requires_storage(list)
    def resolve_assignee_names(
        db: Session,
        document_id: str,
        directory: UserDirectory,
        resolver: MembershipResolver | None = None,
    ) -> list[str]:
        """User names assigned to a document, groups expanded.

        This can be slow on huge user bases.
        """
        assignment = db.get(Assignment, document_id)
        if not assignment:
            return []
        return (resolver or default_resolver).resolve_names(
            assignment.assignees, directory
        )


assignments = Assignments()
