"""Inline acknowledgement markup.

``~~ACK:alice, @staff~~`` declares the manual assignees of a document.
``~~ACKNOWLEDGE~~`` / ``~~ACKNOWLEDGE all~~`` requests the listing of the
reader's pending (or all) acknowledgements.
"""

import logging
import re
from dataclasses import dataclass

from sqlalchemy.orm import Session

from acknowledge.models.acknowledgement import Assignment
from acknowledge.services.assignment import Assignments

logger = logging.getLogger(__name__)

_ASSIGN_RE = re.compile(r"~~ACK:(.*?)~~")
_LISTING_RE = re.compile(r"~~ACKNOWLEDGE(.*?)~~")


@dataclass(frozen=True)
class ListingDirective:
    include_done: bool = False


def extract_assignees(text: str) -> str | None:
    """Assignee expression of the first declaration, None without one."""
    match = _ASSIGN_RE.search(text or "")
    if not match:
        return None
    return match.group(1)


def extract_listing(text: str) -> ListingDirective | None:
    match = _LISTING_RE.search(text or "")
    if not match:
        return None
    return ListingDirective(include_done=match.group(1).strip().lower() == "all")


def apply_markup(db: Session, document_id: str, text: str) -> Assignment | None:
    """Metadata step of rendering: store a declared assignee expression."""
    assignees = extract_assignees(text)
    if assignees is None:
        return None
    logger.debug("Found assignment declaration in %s", document_id)
    return Assignments.set_page_assignees(db, document_id, assignees)
