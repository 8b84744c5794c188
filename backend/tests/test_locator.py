"""Tests for the fuzzy text locator."""

import pytest
from hypothesis import assume, given, strategies as st

from contract_analyzer.highlighting.locator import MatchTier, TextLocator, locate


DOCUMENT = "Die Kündigungsfrist beträgt 4 Wochen."


def test_exact_substring_returns_exact_span():
    match = locate(DOCUMENT, "Kündigungsfrist")

    assert match is not None
    assert (match.start, match.end) == (4, 19)
    assert match.tier == MatchTier.EXACT


def test_no_match_returns_none():
    assert locate("abc", "xyz") is None


@pytest.mark.parametrize("document, needle", [
    ("", "Kündigung"),
    (DOCUMENT, ""),
    (DOCUMENT, "   "),
])
def test_empty_input_returns_none(document, needle):
    assert locate(document, needle) is None


def test_case_insensitive_match_keeps_original_offsets():
    match = locate("Die KÜNDIGUNGSFRIST beträgt 4 Wochen.", "kündigungsfrist")

    assert match.tier == MatchTier.CASE_INSENSITIVE
    assert (match.start, match.end) == (4, 19)


def test_prefix_match_covers_only_the_prefix():
    document = "Der Arbeitnehmer verpflichtet sich zur Verschwiegenheit."
    needle = "Der Arbeitnehmer verpflichtet sich umfassend zu allem"

    match = locate(document, needle)

    assert match.tier == MatchTier.PREFIX
    assert (match.start, match.end) == (0, 20)
    assert document[match.start:match.end] == needle[:20]


def test_keyword_match_covers_only_the_token():
    document = "Die Vergütung wird monatlich gezahlt."

    match = locate(document, "Zahlung der Vergütung erfolgt quartalsweise")

    assert match.tier == MatchTier.KEYWORD
    assert document[match.start:match.end] == "Vergütung"


def test_keyword_tokens_shorter_than_four_characters_are_ignored():
    assert locate("Das ist gut.", "gut war das") is None


def test_keyword_tokens_are_stripped_of_punctuation():
    document = "Siehe Haftung unten."

    match = locate(document, '"Haftung," und so weiter')

    assert document[match.start:match.end] == "Haftung"


def test_offsets_are_code_point_indices():
    document = "Größe: § 5 Übergabe der Räume"

    match = locate(document, "übergabe")

    assert match.start == document.index("Übergabe")
    assert document[match.start:match.end] == "Übergabe"


def test_custom_prefix_length():
    locator = TextLocator(prefix_length=5)
    document = "Haftungsausschluss"

    match = locator.locate(document, "Haftung für alles")

    assert match.tier == MatchTier.PREFIX
    assert (match.start, match.end) == (0, 5)


def test_invalid_configuration_raises():
    with pytest.raises(ValueError):
        TextLocator(prefix_length=0)


@given(st.text(min_size=1, max_size=200), st.data())
def test_substring_of_document_is_always_found_exactly(document, data):
    start = data.draw(st.integers(min_value=0, max_value=len(document) - 1))
    end = data.draw(st.integers(min_value=start + 1, max_value=len(document)))
    needle = document[start:end]
    assume(needle.strip())

    match = locate(document, needle)

    assert match.tier == MatchTier.EXACT
    assert match.start == document.find(needle)
    assert document[match.start:match.end] == needle
