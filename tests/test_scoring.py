"""Tests for confidence and relevance scoring."""

import pytest

from citeclean.search.scoring import score_confidence, score_relevance

LONG_ABSTRACT = "word " * 40


def test_minimal_record_scores_base():
    assert score_confidence("Title", ["Smith, J."]) == 0.4


def test_missing_title_or_authors_scores_zero():
    assert score_confidence("", ["Smith, J."]) == 0.0
    assert score_confidence("Title", []) == 0.0


def test_complete_record_capped_at_one():
    score = score_confidence(
        "Title",
        ["Smith, J.", "Doe, A."],
        journal="Journal of AI Research",
        year=2023,
        abstract=LONG_ABSTRACT,
        citations=45,
        doi="10.1234/x",
        url="https://example.com",
    )
    assert score == 1.0


def test_short_journal_ignored():
    assert score_confidence("Title", ["Smith, J."], journal="AI") == 0.4


def test_zero_citations_still_counts():
    assert score_confidence("Title", ["Smith, J."], citations=0) == pytest.approx(0.55)


def test_confidence_monotonic_in_fields():
    kwargs = {}
    previous = score_confidence("Title", ["Smith, J."])
    for key, value in [
        ("journal", "Nature Medicine"),
        ("year", 2020),
        ("abstract", "A short abstract here"),
        ("citations", 3),
        ("doi", "10.1/x"),
        ("url", "https://x.org"),
    ]:
        kwargs[key] = value
        current = score_confidence("Title", ["Smith, J."], **kwargs)
        assert current >= previous
        previous = current


def test_relevance_title_only():
    assert score_relevance("x" * 50) == pytest.approx(0.35)
    assert score_relevance("x" * 300) == pytest.approx(0.5)


def test_relevance_grows_with_abstract():
    short = score_relevance("Title", "Brief abstract")
    long = score_relevance("Title", "Brief abstract " * 50)
    assert score_relevance("Title") < short < long <= 1.0


def test_relevance_saturates_at_one():
    assert score_relevance("x" * 200, "y" * 1000) == 1.0
