import logging
from collections.abc import Iterable

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from acknowledge.models.acknowledgement import Assignment, ChangeType, Document
from acknowledge.schemas.acknowledgement import DocumentChange
from acknowledge.services.assignment import Assignments
from acknowledge.services.common import requires_storage

logger = logging.getLogger(__name__)

_VALID_CHANGE_TYPES = {e.value for e in ChangeType}


def content_changed(old_content: str | None, new_content: str | None) -> bool:
    """Line breaks alone do not make a change."""
    old = (old_content or "").replace("\n", "").replace("\r", "")
    new = (new_content or "").replace("\n", "").replace("\r", "")
    return old != new


class Documents:
    @staticmethod
    @requires_storage()
    def get(db: Session, document_id: str) -> Document | None:
        return db.get(Document, document_id)

    @staticmethod
    @requires_storage(False)
    def exists(db: Session, document_id: str) -> bool:
        return db.get(Document, document_id) is not None

    @staticmethod
    @requires_storage()
    def lastmod(db: Session, document_id: str) -> int | None:
        return db.scalar(select(Document.lastmod).where(Document.id == document_id))

    @staticmethod
    @requires_storage()
    def store_lastmod(db: Session, document_id: str, lastmod: int) -> Document:
        document = db.get(Document, document_id)
        if document is None:
            document = Document(id=document_id, lastmod=lastmod)
            db.add(document)
        else:
            document.lastmod = lastmod
        db.flush()
        logger.info("Stored last modification %d for document %s", lastmod, document_id)
        return document

    @staticmethod
    @requires_storage()
    def on_document_saved(
        db: Session,
        document_id: str,
        lastmod: int,
        is_substantive: bool,
        is_new: bool = False,
    ) -> None:
        if is_substantive:
            Documents.store_lastmod(db, document_id, lastmod)
        else:
            logger.debug("Keeping last modification of %s, change is not substantive", document_id)

        # the declaration may have been removed, markup extraction re-adds it
        Assignments.clear_page_assignees(db, document_id)

        if is_new and db.get(Document, document_id) is not None:
            Assignments.set_pattern_assignees(db, document_id)

    @staticmethod
    @requires_storage()
    def on_document_deleted(db: Session, document_id: str) -> None:
        db.execute(delete(Assignment).where(Assignment.document_id == document_id))
        db.execute(delete(Document).where(Document.id == document_id))
        db.flush()
        logger.info("Removed document %s", document_id)

    @staticmethod
    @requires_storage()
    def handle_change(db: Session, change: DocumentChange) -> None:
        if change.change_type not in _VALID_CHANGE_TYPES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid change_type. Allowed: {sorted(_VALID_CHANGE_TYPES)}",
            )
        change_type = ChangeType(change.change_type)
        if change_type == ChangeType.delete:
            Documents.on_document_deleted(db, change.document_id)
            return

        is_substantive = change_type != ChangeType.minor_edit and content_changed(
            change.old_content, change.new_content
        )
        Documents.on_document_saved(
            db,
            change.document_id,
            change.lastmod,
            is_substantive,
            is_new=change_type == ChangeType.create,
        )

    @staticmethod
    @requires_storage(int)
    def backfill(db: Session, documents: Iterable[tuple[str, int]]) -> int:
        """Add documents the index does not know yet. Known documents are left alone."""
        known = set(db.scalars(select(Document.id)).all())
        added = 0
        try:
            for document_id, lastmod in documents:
                document_id = document_id.strip()
                if not document_id or not lastmod or document_id in known:
                    continue
                db.add(Document(id=document_id, lastmod=int(lastmod)))
                known.add(document_id)
                added += 1
            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("Backfilled %d documents into the index", added)
        return added


documents = Documents()
