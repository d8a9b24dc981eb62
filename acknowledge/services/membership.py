"""Assignee expression membership and group expansion.

An assignee expression is a comma separated list of user names and group
references (``@group``). ``@ALL`` includes every user. The identity system of
the host usually provides both capabilities; the defaults here cover hosts
that can hand over plain user/group mappings.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

from sqlalchemy import func

from acknowledge.config import settings
from acknowledge.services.common import split_assignees

logger = logging.getLogger(__name__)

ALL_GROUP = "ALL"


class UserDirectory(Protocol):
    def users_in_group(self, group: str) -> set[str]: ...


class MembershipChecker(Protocol):
    def is_member(self, expression: str, user: str, groups: Iterable[str]) -> bool: ...


class StaticUserDirectory:
    """In-memory directory built from a ``user -> groups`` mapping."""

    def __init__(self, users: Mapping[str, Iterable[str]]):
        self._users = {user: set(groups) for user, groups in users.items()}

    def groups_of(self, user: str) -> set[str]:
        return set(self._users.get(user, ()))

    def users_in_group(self, group: str) -> set[str]:
        if group == ALL_GROUP:
            return set(self._users)
        return {user for user, groups in self._users.items() if group in groups}


class MembershipResolver:
    def __init__(self, case_sensitive: bool | None = None, sigil: str | None = None):
        self.case_sensitive = (
            settings.ack_case_sensitive if case_sensitive is None else case_sensitive
        )
        self.sigil = sigil or settings.ack_group_sigil

    def normalize(self, name: str) -> str:
        name = name.strip()
        return name if self.case_sensitive else name.lower()

    def is_member(self, expression: str, user: str, groups: Iterable[str]) -> bool:
        members = split_assignees(expression)
        if not members or not user:
            return False
        user = self.normalize(user)
        groups = {self.normalize(g) for g in groups or ()}
        for member in members:
            if member == f"{self.sigil}{ALL_GROUP}":
                return True
            if member.startswith(self.sigil):
                if self.normalize(member[len(self.sigil) :]) in groups:
                    return True
            elif self.normalize(member) == user:
                return True
        return False

    def resolve_names(self, expression: str, directory: UserDirectory) -> list[str]:
        """Expand an expression into user names. Slow on large directories.

        Names are normalized, so case-insensitive resolvers return folded names.
        """
        users: dict[str, None] = {}
        for member in split_assignees(expression):
            if member.startswith(self.sigil):
                group = member[len(self.sigil) :]
                found = directory.users_in_group(group)
                logger.debug("Group %s resolved to %d users", group, len(found))
                for name in sorted(found):
                    users.setdefault(self.normalize(name), None)
            else:
                users.setdefault(self.normalize(member), None)
        return list(users)


default_resolver = MembershipResolver()


def _folds_case(resolver) -> bool:
    resolver = resolver or default_resolver
    return isinstance(resolver, MembershipResolver) and not resolver.case_sensitive


def normalize_user(name: str, resolver=None) -> str:
    """``name`` as the resolver compares it."""
    return name.strip().lower() if _folds_case(resolver) else name


def user_column(column, resolver=None):
    """SQL expression of a stored user name comparable with ``normalize_user``."""
    return func.lower(column) if _folds_case(resolver) else column
