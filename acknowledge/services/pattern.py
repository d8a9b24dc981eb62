"""Assignment pattern matching.

Pattern syntax:

- ``**`` matches every document
- ``/regex/flags`` is searched in the identifier prefixed with ``:``
- ``ns:**`` matches documents in ``ns`` and all of its sub namespaces
- ``ns:*`` matches documents directly inside ``ns``
- anything else is an exact identifier match
"""

import re

from acknowledge.services.pagename import clean_id, get_ns, ns_path

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    # str patterns always match unicode
    "u": re.UNICODE,
}


class PatternError(ValueError):
    def __init__(self, pattern: str, message: str):
        super().__init__(f"Invalid pattern {pattern!r}: {message}")
        self.pattern = pattern
        self.message = message


def is_regex(pattern: str) -> bool:
    return pattern.startswith("/")


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile ``/body/modifiers`` or an unterminated ``/body``."""
    body = pattern[1:]
    flags = 0
    end = body.rfind("/")
    if end != -1:
        modifiers = body[end + 1 :]
        unknown = "".join(c for c in modifiers if c not in _REGEX_FLAGS)
        if unknown:
            raise PatternError(pattern, f"unknown modifier {unknown!r}")
        for modifier in modifiers:
            flags |= _REGEX_FLAGS[modifier]
        body = body[:end]
    try:
        return re.compile(body, flags)
    except re.error as e:
        raise PatternError(pattern, str(e)) from e


def validate_pattern(pattern: str) -> str | None:
    """Error message for a malformed pattern, None when it is usable."""
    if not is_regex(pattern):
        return None
    try:
        compile_pattern(pattern)
    except PatternError as e:
        return e.message
    return None


def matches(pattern: str, document_id: str) -> bool:
    """Does ``pattern`` select the canonical ``document_id``?

    Raises PatternError for a regex pattern that does not compile.
    """
    if pattern.strip(":") == "**":
        return True

    if is_regex(pattern):
        return compile_pattern(pattern).search(f":{document_id}") is not None

    document_ns = ns_path(get_ns(document_id))
    pattern_ns = ns_path(clean_id(pattern))
    if pattern.endswith("**"):
        # the namespace itself, or anything below it
        return document_ns.startswith(pattern_ns) or f":{document_id}:" == pattern_ns
    if pattern.endswith("*"):
        return document_ns == pattern_ns
    return clean_id(pattern) == document_id
