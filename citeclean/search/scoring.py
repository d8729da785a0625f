"""Completeness and richness scores assigned to records at parse time.

Confidence measures how much bibliographic evidence a record carries;
relevance measures how much text it carries. Both are monotonic: adding a
field (or lengthening the title/abstract) never lowers the score.
"""

from typing import Optional

# ── Confidence Weights ───────────────────────────────────────────────

BASE_CONFIDENCE = 0.40  # title + at least one author
MULTI_AUTHOR_WEIGHT = 0.05
JOURNAL_WEIGHT = 0.20
YEAR_WEIGHT = 0.05
ABSTRACT_WEIGHT = 0.15
LONG_ABSTRACT_WEIGHT = 0.05
LONG_ABSTRACT_LENGTH = 100
CITATIONS_WEIGHT = 0.15
DOI_WEIGHT = 0.10
URL_WEIGHT = 0.05

_MIN_JOURNAL_LENGTH = 4

# ── Relevance Weights ────────────────────────────────────────────────

BASE_RELEVANCE = 0.20
TITLE_WEIGHT = 0.30
TITLE_SATURATION = 100  # chars
ABSTRACT_PRESENCE_WEIGHT = 0.20
ABSTRACT_LENGTH_WEIGHT = 0.30
ABSTRACT_SATURATION = 500  # chars


def score_confidence(
    title: str,
    authors: list[str],
    journal: Optional[str] = None,
    year: Optional[int] = None,
    abstract: Optional[str] = None,
    citations: Optional[int] = None,
    doi: Optional[str] = None,
    url: Optional[str] = None,
) -> float:
    """Evidential completeness of a record (0.0–1.0)."""
    if not title or not authors:
        return 0.0

    score = BASE_CONFIDENCE
    if len(authors) > 1:
        score += MULTI_AUTHOR_WEIGHT
    if journal and len(journal.strip()) >= _MIN_JOURNAL_LENGTH:
        score += JOURNAL_WEIGHT
    if year is not None:
        score += YEAR_WEIGHT
    if abstract:
        score += ABSTRACT_WEIGHT
        if len(abstract) >= LONG_ABSTRACT_LENGTH:
            score += LONG_ABSTRACT_WEIGHT
    if citations is not None:
        score += CITATIONS_WEIGHT
    if doi:
        score += DOI_WEIGHT
    if url:
        score += URL_WEIGHT

    return round(min(score, 1.0), 4)


def score_relevance(title: str, abstract: Optional[str] = None) -> float:
    """Textual richness of a record (0.0–1.0), driven by title and abstract."""
    score = BASE_RELEVANCE
    score += TITLE_WEIGHT * min(len(title or "") / TITLE_SATURATION, 1.0)
    if abstract:
        score += ABSTRACT_PRESENCE_WEIGHT
        score += ABSTRACT_LENGTH_WEIGHT * min(len(abstract) / ABSTRACT_SATURATION, 1.0)
    return round(min(score, 1.0), 4)
