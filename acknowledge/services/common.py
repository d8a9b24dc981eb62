import functools
import logging

from fastapi import HTTPException

from acknowledge.models.acknowledgement import AcknowledgementStatus

logger = logging.getLogger(__name__)

_VALID_STATUSES = {e.value for e in AcknowledgementStatus}


def split_assignees(expression: str | None) -> list[str]:
    """Trimmed, non-empty, de-duplicated entries in first-seen order."""
    seen: dict[str, None] = {}
    for item in (expression or "").split(","):
        item = item.strip()
        if item:
            seen.setdefault(item, None)
    return list(seen)


def normalize_assignees(expression: str | None) -> str:
    return ",".join(split_assignees(expression))


def coerce_status(status) -> AcknowledgementStatus:
    if status is None or status == "":
        return AcknowledgementStatus.all
    if isinstance(status, AcknowledgementStatus):
        return status
    if status not in _VALID_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Allowed: {sorted(_VALID_STATUSES)}",
        )
    return AcknowledgementStatus(status)


def requires_storage(default=None):
    """Return ``default()`` instead of running the wrapped call when ``db`` is None.

    Storage failures are reported once by ``acknowledge.db.open_session``.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(db, *args, **kwargs):
            if db is None:
                logger.debug("Storage unavailable, skipping %s", func.__qualname__)
                return default() if callable(default) else default
            return func(db, *args, **kwargs)

        return wrapper

    return decorator
