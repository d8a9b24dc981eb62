from unittest.mock import patch

import pytest
from sqlalchemy import select

from acknowledge.models.acknowledgement import Assignment, AssignmentPattern, Document
from acknowledge.services.assignment_pattern import AssignmentPatterns


@pytest.fixture()
def documents(db_session):
    db_session.add_all(
        [
            Document(id="ns:page", lastmod=1000),
            Document(id="ns:sub:page", lastmod=1000),
            Document(id="nsx:page", lastmod=1000),
            Document(id="other:page", lastmod=1000),
            Document(id="start", lastmod=1000),
        ]
    )
    db_session.commit()
    return db_session


def _pattern_state(db_session) -> dict[str, str]:
    db_session.expire_all()
    rows = db_session.scalars(select(Assignment).order_by(Assignment.document_id)).all()
    return {row.document_id: row.pattern_assignees for row in rows}


class TestList:
    def test_empty(self, db_session) -> None:
        assert AssignmentPatterns.list(db_session) == {}

    def test_lists_rules(self, db_session) -> None:
        db_session.add(AssignmentPattern(pattern="ns:**", assignees="@staff"))
        db_session.commit()
        assert AssignmentPatterns.list(db_session) == {"ns:**": "@staff"}


class TestMatchingDocuments:
    def test_recursive(self, documents) -> None:
        assert AssignmentPatterns.matching_documents(documents, "ns:**") == [
            "ns:page",
            "ns:sub:page",
        ]

    def test_single_namespace(self, documents) -> None:
        assert AssignmentPatterns.matching_documents(documents, "ns:*") == ["ns:page"]

    def test_all(self, documents) -> None:
        assert len(AssignmentPatterns.matching_documents(documents, "**")) == 5


class TestReplaceAll:
    def test_stores_rules_and_applies_them(self, documents) -> None:
        result = AssignmentPatterns.replace_all(
            documents, {"ns:**": "alice", "start": "@staff"}
        )
        assert result.patterns == 2
        assert result.documents == 3
        assert result.warnings == []
        assert AssignmentPatterns.list(documents) == {"ns:**": "alice", "start": "@staff"}
        assert _pattern_state(documents) == {
            "ns:page": "alice",
            "ns:sub:page": "alice",
            "start": "@staff",
        }

    def test_overlapping_rules_are_unioned(self, documents) -> None:
        AssignmentPatterns.replace_all(
            documents, {"ns:**": "alice", "ns:page": "bob, alice"}
        )
        state = _pattern_state(documents)
        assert state["ns:page"] == "alice,bob"
        assert state["ns:sub:page"] == "alice"

    def test_idempotent(self, documents) -> None:
        rules = {"ns:**": "alice", "ns:page": "bob", "**": "@all_staff"}
        AssignmentPatterns.replace_all(documents, rules)
        first = _pattern_state(documents)
        AssignmentPatterns.replace_all(documents, rules)
        assert _pattern_state(documents) == first
        assert first["ns:page"] == "alice,bob,@all_staff"

    def test_removed_rules_clear_derived_assignees(self, documents) -> None:
        AssignmentPatterns.replace_all(documents, {"ns:**": "alice"})
        AssignmentPatterns.replace_all(documents, {"other:*": "bob"})
        assert AssignmentPatterns.list(documents) == {"other:*": "bob"}
        assert _pattern_state(documents) == {
            "ns:page": "",
            "ns:sub:page": "",
            "other:page": "bob",
        }

    def test_page_assignees_are_untouched(self, documents) -> None:
        documents.add(
            Assignment(document_id="ns:page", page_assignees="carol", pattern_assignees="old")
        )
        documents.commit()
        AssignmentPatterns.replace_all(documents, {"ns:*": "alice"})
        assignment = documents.get(Assignment, "ns:page")
        assert assignment.page_assignees == "carol"
        assert assignment.pattern_assignees == "alice"

    def test_skips_empty_entries(self, documents) -> None:
        result = AssignmentPatterns.replace_all(
            documents, {"  ": "alice", "ns:*": "   ", " other:* ": " bob "}
        )
        assert result.patterns == 1
        assert AssignmentPatterns.list(documents) == {"other:*": "bob"}

    def test_empty_rules_clear_everything(self, documents) -> None:
        AssignmentPatterns.replace_all(documents, {"**": "alice"})
        result = AssignmentPatterns.replace_all(documents, {})
        assert result.patterns == 0
        assert AssignmentPatterns.list(documents) == {}
        assert set(_pattern_state(documents).values()) == {""}

    def test_malformed_regex_matches_nothing_and_warns(self, documents, caplog) -> None:
        result = AssignmentPatterns.replace_all(
            documents, {"/[broken/": "carol", "ns:*": "alice"}
        )
        assert [w.pattern for w in result.warnings] == ["/[broken/"]
        assert AssignmentPatterns.list(documents) == {"/[broken/": "carol", "ns:*": "alice"}
        assert _pattern_state(documents) == {"ns:page": "alice"}
        assert "matches nothing" in caplog.text

    def test_regex_rule(self, documents) -> None:
        AssignmentPatterns.replace_all(documents, {"/:page$/": "alice"})
        assert _pattern_state(documents) == {
            "ns:page": "alice",
            "ns:sub:page": "alice",
            "nsx:page": "alice",
            "other:page": "alice",
        }

    def test_regex_rule_with_unicode_modifier(self, documents) -> None:
        result = AssignmentPatterns.replace_all(documents, {"/^:ns:/u": "alice"})
        assert result.warnings == []
        assert result.documents == 2
        assert _pattern_state(documents) == {"ns:page": "alice", "ns:sub:page": "alice"}

    def test_unknown_modifier_warns(self, documents) -> None:
        result = AssignmentPatterns.replace_all(documents, {"/^:ns:/q": "alice"})
        assert [w.pattern for w in result.warnings] == ["/^:ns:/q"]
        assert result.documents == 0

    def test_failure_rolls_back(self, documents) -> None:
        AssignmentPatterns.replace_all(documents, {"ns:**": "alice"})
        before = _pattern_state(documents)

        with patch(
            "acknowledge.services.assignment_pattern.matches",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(RuntimeError):
                AssignmentPatterns.replace_all(documents, {"other:*": "bob"})

        assert AssignmentPatterns.list(documents) == {"ns:**": "alice"}
        assert _pattern_state(documents) == before

    def test_without_storage(self) -> None:
        result = AssignmentPatterns.replace_all(None, {"ns:**": "alice"})
        assert result.patterns == 0
        assert AssignmentPatterns.list(None) == {}
        assert AssignmentPatterns.matching_documents(None, "**") == []
