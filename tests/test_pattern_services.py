import re

import pytest

from acknowledge.services.pagename import clean_id, get_ns
from acknowledge.services.pattern import (
    PatternError,
    compile_pattern,
    matches,
    validate_pattern,
)


class TestCleanId:
    def test_lowercases_and_trims(self) -> None:
        assert clean_id("  Wiki:Start ") == "wiki:start"

    def test_alternative_separators(self) -> None:
        assert clean_id("ns/sub;page") == "ns:sub:page"

    def test_specials_become_underscore(self) -> None:
        assert clean_id("ns:my page!") == "ns:my_page"

    def test_collapses_colons_and_debris(self) -> None:
        assert clean_id("::ns:::_page:") == "ns:page"

    def test_wildcards_are_dropped(self) -> None:
        assert clean_id("ns:**") == "ns"
        assert clean_id("ns:sub:*") == "ns:sub"
        assert clean_id("**") == ""

    def test_get_ns(self) -> None:
        assert get_ns("ns:sub:page") == "ns:sub"
        assert get_ns("ns:page") == "ns"
        assert get_ns("page") == ""


class TestMatchAll:
    @pytest.mark.parametrize("pattern", ["**", ":**", "**:", ":**:"])
    def test_matches_everything(self, pattern) -> None:
        assert matches(pattern, "start")
        assert matches(pattern, "ns:sub:page")


class TestNamespacePatterns:
    def test_recursive_namespace(self) -> None:
        assert matches("ns:**", "ns:page")
        assert matches("ns:**", "ns:sub:page")
        assert matches("ns:**", "ns")

    def test_recursive_namespace_no_partial_segments(self) -> None:
        assert not matches("ns:**", "nsx:page")
        assert not matches("ns:**", "other:page")
        assert not matches("ns:**", "other:ns:page")

    def test_nested_recursive_namespace(self) -> None:
        assert matches("ns:sub:**", "ns:sub:deep:page")
        assert not matches("ns:sub:**", "ns:page")

    def test_single_namespace(self) -> None:
        assert matches("ns:*", "ns:page")
        assert not matches("ns:*", "ns:sub:page")
        assert not matches("ns:*", "other:page")

    def test_root_namespace(self) -> None:
        assert matches("*", "start")
        assert not matches("*", "ns:page")

    def test_pattern_is_canonicalized(self) -> None:
        assert matches("NS:*", "ns:page")
        assert matches("NS/Sub:**", "ns:sub:page")


class TestExactPatterns:
    def test_exact_match(self) -> None:
        assert matches("ns:page", "ns:page")
        assert matches("NS:Page", "ns:page")

    def test_exact_no_match(self) -> None:
        assert not matches("ns:page", "ns:page2")
        assert not matches("ns:page", "ns:sub:page")


class TestRegexPatterns:
    def test_regex_with_delimiters(self) -> None:
        assert matches("/^:ns:.*$/", "ns:page")
        assert not matches("/^:ns:.*$/", "other:ns:page")

    def test_regex_sees_leading_colon(self) -> None:
        assert matches("/:page$/", "page")
        assert matches("/:page$/", "ns:page")

    def test_regex_flags(self) -> None:
        assert matches("/^:NS:/i", "ns:page")
        assert not matches("/^:NS:/", "ns:page")

    def test_regex_without_closing_delimiter(self) -> None:
        assert matches("/sub:", "ns:sub:page")

    def test_malformed_regex_raises(self) -> None:
        with pytest.raises(PatternError) as exc:
            matches("/[unclosed/", "ns:page")
        assert exc.value.pattern == "/[unclosed/"

    def test_validate_pattern(self) -> None:
        assert validate_pattern("/[unclosed/") is not None
        assert validate_pattern("/^:ns:/") is None
        assert validate_pattern("ns:**") is None

    def test_compile_applies_modifiers(self) -> None:
        compiled = compile_pattern("/^:ns:/im")
        assert compiled.pattern == "^:ns:"
        assert compiled.flags & re.IGNORECASE
        assert compiled.flags & re.MULTILINE

    def test_unicode_modifier_is_accepted(self) -> None:
        assert validate_pattern("/^:wiki:/u") is None
        assert matches("/^:wiki:/u", "wiki:page")
        assert matches("/^:WIKI:/iu", "wiki:page")
        assert not matches("/^:wiki:/u", "other:page")

    def test_unknown_modifier_is_reported(self) -> None:
        assert validate_pattern("/^:wiki:/q") is not None
        with pytest.raises(PatternError) as exc:
            matches("/^:wiki:/uq", "wiki:page")
        assert "q" in exc.value.message

    def test_text_after_closing_delimiter_is_not_part_of_the_body(self) -> None:
        assert validate_pattern("/^:ns/sub:") is not None


class TestDeterminism:
    def test_repeated_calls_agree(self) -> None:
        cases = [
            ("ns:**", "ns:sub:page"),
            ("ns:*", "ns:sub:page"),
            ("/^:ns:/", "ns:page"),
            ("ns:page", "ns:page"),
        ]
        first = [matches(p, d) for p, d in cases]
        for _ in range(3):
            assert [matches(p, d) for p, d in cases] == first
