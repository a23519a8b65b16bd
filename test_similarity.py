"""
Similarity primitive tests
"""
import math

import pytest

from curation.selection.similarity import (
    edit_similarity,
    extract_keywords,
    great_circle_distance_miles,
    keyword_overlap,
    tokenize,
)


def test_edit_similarity_bounds():
    assert edit_similarity("", "") == 1.0
    assert edit_similarity("  Quake Hits Chile ", "quake hits chile") == 1.0
    assert edit_similarity("abc", "") == 0.0


def test_edit_similarity_levenshtein():
    # kitten -> sitting needs 3 edits over 7 characters
    assert edit_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_tokenize_drops_stop_words_and_short_words():
    assert tokenize("The quake, and its aftershocks, hit Chile!") == ["quake", "aftershocks", "chile"]


def test_keyword_overlap_jaccard():
    overlap = keyword_overlap("Massive flooding across Jakarta", "Flooding in Jakarta continues")
    # {massive, flooding, across, jakarta} vs {flooding, jakarta, continues}
    assert overlap == pytest.approx(2 / 5)


def test_keyword_overlap_empty_union():
    assert keyword_overlap("the and of", "it is a") == 0.0


def test_extract_keywords_limit_and_order():
    keywords = extract_keywords("storm storm surge floods coastal towns across florida", limit=5)
    assert keywords == ["storm", "surge", "floods", "coastal", "towns"]


def test_great_circle_distance():
    assert great_circle_distance_miles(10.0, 20.0, 10.0, 20.0) == 0.0

    london_paris = great_circle_distance_miles(51.5074, -0.1278, 48.8566, 2.3522)
    assert 200 < london_paris < 220

    antipodal = great_circle_distance_miles(0, 0, 0, 180)
    assert antipodal == pytest.approx(math.pi * 3959, rel=1e-6)
