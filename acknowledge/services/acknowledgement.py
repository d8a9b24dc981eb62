import logging
import time
from collections.abc import Iterable

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from acknowledge.models.acknowledgement import Acknowledgement, Document
from acknowledge.schemas.acknowledgement import AcknowledgementState
from acknowledge.services.assignment import Assignments
from acknowledge.services.common import requires_storage
from acknowledge.services.membership import (
    MembershipChecker,
    normalize_user,
    user_column,
)

logger = logging.getLogger(__name__)


class Acknowledgements:
    @staticmethod
    @requires_storage()
    def record(
        db: Session,
        document_id: str,
        user: str,
        timestamp: int | None = None,
    ) -> Acknowledgement:
        # never deduplicated, every acknowledgement is history
        ack = Acknowledgement(
            document_id=document_id,
            user=user,
            ack=int(time.time()) if timestamp is None else int(timestamp),
        )
        db.add(ack)
        db.flush()
        logger.info("Recorded acknowledgement of %s by %s at %d", document_id, user, ack.ack)
        return ack

    @staticmethod
    @requires_storage()
    def latest(
        db: Session,
        document_id: str,
        user: str,
        resolver: MembershipChecker | None = None,
    ) -> int | None:
        return db.scalar(
            select(func.max(Acknowledgement.ack))
            .where(Acknowledgement.document_id == document_id)
            .where(
                user_column(Acknowledgement.user, resolver)
                == normalize_user(user, resolver)
            )
        )

    @staticmethod
    @requires_storage()
    def current(
        db: Session,
        document_id: str,
        user: str,
        resolver: MembershipChecker | None = None,
    ) -> int | None:
        """Timestamp of an acknowledgement covering the latest revision, if any."""
        return db.scalar(
            select(func.max(Acknowledgement.ack))
            .join(Document, Document.id == Acknowledgement.document_id)
            .where(Acknowledgement.document_id == document_id)
            .where(
                user_column(Acknowledgement.user, resolver)
                == normalize_user(user, resolver)
            )
            .where(Acknowledgement.ack >= Document.lastmod)
        )

    @staticmethod
    @requires_storage(False)
    def is_current(
        db: Session,
        document_id: str,
        user: str,
        resolver: MembershipChecker | None = None,
    ) -> bool:
        return Acknowledgements.current(db, document_id, user, resolver) is not None

    @staticmethod
    @requires_storage()
    def acknowledge(
        db: Session,
        document_id: str,
        user: str,
        groups: Iterable[str],
        resolver: MembershipChecker | None = None,
        now: int | None = None,
    ) -> int:
        if not db.get(Document, document_id):
            raise HTTPException(status_code=404, detail="Document not found")
        if not Assignments.is_assigned(db, document_id, user, groups, resolver):
            raise HTTPException(
                status_code=403,
                detail="User is not assigned to this document",
            )
        return Acknowledgements.record(db, document_id, user, now).ack

    @staticmethod
    @requires_storage()
    def state(
        db: Session,
        document_id: str,
        user: str,
        groups: Iterable[str],
        resolver: MembershipChecker | None = None,
    ) -> AcknowledgementState:
        assigned = Assignments.is_assigned(db, document_id, user, groups, resolver)
        if not assigned:
            return AcknowledgementState(document_id=document_id, user=user, assigned=False)
        return AcknowledgementState(
            document_id=document_id,
            user=user,
            assigned=True,
            acknowledged_at=Acknowledgements.current(db, document_id, user, resolver),
            latest=Acknowledgements.latest(db, document_id, user, resolver),
        )


acknowledgements = Acknowledgements()
