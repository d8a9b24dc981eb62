"""Default document identifier helpers.

Hosts with their own canonical identifier rules can canonicalize before
calling into the services; pattern matching only needs ``clean_id`` and
``get_ns`` to agree with the identifiers stored in ``documents``.
"""

import re

_SPECIALS = re.compile(r"[^\w.:\-]|\*", re.UNICODE)
_SEPCHARS = re.compile(r"_+")
_COLONS = re.compile(r":+")
_LEADING_DEBRIS = re.compile(r":[:._\-]+")
_TRAILING_DEBRIS = re.compile(r"[:._\-]+:")


def clean_id(raw_id: str | None) -> str:
    document_id = (raw_id or "").strip().lower()
    document_id = document_id.replace("/", ":").replace(";", ":")
    document_id = _SPECIALS.sub("_", document_id)
    document_id = _SEPCHARS.sub("_", document_id)
    document_id = _COLONS.sub(":", document_id)
    document_id = document_id.strip(":._-")
    document_id = _LEADING_DEBRIS.sub(":", document_id)
    document_id = _TRAILING_DEBRIS.sub(":", document_id)
    return document_id


def get_ns(document_id: str) -> str:
    if ":" not in document_id:
        return ""
    return document_id.rsplit(":", 1)[0]


def ns_path(namespace: str) -> str:
    if not namespace:
        return "::"
    return f":{namespace}:"
