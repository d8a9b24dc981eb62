import logging
from collections.abc import Mapping

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from acknowledge.models.acknowledgement import Assignment, AssignmentPattern, Document
from acknowledge.schemas.acknowledgement import PatternUpdateResult, PatternWarning
from acknowledge.services.common import normalize_assignees, requires_storage
from acknowledge.services.pattern import matches, validate_pattern

logger = logging.getLogger(__name__)


def _clean_rules(patterns: Mapping[str, str]) -> dict[str, str]:
    rules: dict[str, str] = {}
    for pattern, assignees in patterns.items():
        pattern = (pattern or "").strip()
        assignees = (assignees or "").strip()
        if not pattern or not assignees:
            continue
        rules[pattern] = assignees
    return rules


class AssignmentPatterns:
    @staticmethod
    @requires_storage(list)
    def matching_documents(db: Session, pattern: str) -> list[str]:
        """All known documents selected by ``pattern``."""
        document_ids = db.scalars(select(Document.id).order_by(Document.id)).all()
        return [document_id for document_id in document_ids if matches(pattern, document_id)]

    @staticmethod
    @requires_storage(PatternUpdateResult)
    def replace_all(db: Session, patterns: Mapping[str, str]) -> PatternUpdateResult:
        """Replace every pattern rule and reapply the rules to all known documents.

        Runs as one transaction. Patterns may overlap, so the assignees of all
        matching rules are gathered per document before anything is written.
        A regex rule that does not compile is stored but matches nothing; it
        is reported in the result warnings.
        """
        rules = _clean_rules(patterns)
        result = PatternUpdateResult(patterns=len(rules))
        try:
            db.execute(update(Assignment).values(pattern_assignees=""))
            db.execute(delete(AssignmentPattern))
            db.flush()
            if rules:
                db.execute(
                    insert(AssignmentPattern),
                    [
                        {"pattern": pattern, "assignees": assignees}
                        for pattern, assignees in rules.items()
                    ],
                )

            document_ids = db.scalars(select(Document.id)).all()
            affected: dict[str, list[str]] = {}
            for pattern, assignees in rules.items():
                problem = validate_pattern(pattern)
                if problem:
                    result.warnings.append(PatternWarning(pattern=pattern, message=problem))
                    continue
                for document_id in document_ids:
                    if matches(pattern, document_id):
                        affected.setdefault(document_id, []).append(assignees)

            for document_id, collected in affected.items():
                assignment = db.get(Assignment, document_id)
                if assignment is None:
                    assignment = Assignment(document_id=document_id, page_assignees="")
                    db.add(assignment)
                assignment.pattern_assignees = normalize_assignees(",".join(collected))
            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to save assignment patterns, rolled back")
            raise

        result.documents = len(affected)
        for warning in result.warnings:
            logger.warning(
                "Assignment pattern %r matches nothing: %s",
                warning.pattern,
                warning.message,
            )
        logger.info(
            "Saved %d assignment patterns affecting %d documents",
            result.patterns,
            result.documents,
        )
        return result

    @staticmethod
    @requires_storage(dict)
    def list(db: Session) -> dict[str, str]:
        rows = db.scalars(
            select(AssignmentPattern).order_by(AssignmentPattern.pattern)
        ).all()
        return {row.pattern: row.assignees for row in rows}


assignment_patterns = AssignmentPatterns()
