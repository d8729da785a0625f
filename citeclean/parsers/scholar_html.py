"""Scholar result-page parser: HTML markup to ExtractedRecord values.

Every field extractor is tolerant: a missing or malformed field comes back
as ``None`` instead of raising, and a block without a title anchor or any
author is dropped.
"""

import logging
import re
from datetime import date
from typing import Optional
from urllib.parse import parse_qs, unquote, urlsplit

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from citeclean.parsers.models import ScholarPage
from citeclean.search.models import ExtractedRecord
from citeclean.search.normalize import clean_doi_candidate, collapse_whitespace, is_valid_doi
from citeclean.search.scoring import score_confidence, score_relevance

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MIN_ABSTRACT_LENGTH = 20  # chars after whitespace normalization; must be exceeded
_MIN_ABSTRACT_WORDS = 3
_MIN_JOURNAL_LENGTH = 4

_BLOCK_SELECTORS = ("div.gs_r", "div.gs_ri")
_TITLE_SELECTORS = ("h3.gs_rt a", "a.gs_rt", "h3 a")
_FULL_TEXT_SELECTORS = (".gs_ggs a[href]", ".gs_or_ggsm a[href]")

_SEGMENT_RE = re.compile(r"\s+[-–—]\s+")
_TRAILING_YEAR_RE = re.compile(r"^(.*?)[,\s]*(?<!\d)(\d{4})$")
_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")
_TAG_PREFIX_RE = re.compile(r"^(?:\[[^\]]{1,12}\]\s*)+")
_CITATIONS_RE = re.compile(r"(?:cited\s+by|citations?\s*:)\s*(\d[\d,]*)", re.IGNORECASE)
_LINK_DOI_RE = re.compile(r"10\.\d+/[^\s\"'<>&?#]+")
_TEXT_DOI_RE = re.compile(r"10\.\d+/[^\s\"'<>]+")
_TOTAL_RE = re.compile(r"(?:about\s+)?(\d[\d,.]*)\s+results?", re.IGNORECASE)
_ABOUT_TOTAL_RE = re.compile(r"about\s+(\d[\d,.]*)\s+results?", re.IGNORECASE)

_INITIALS_RE = re.compile(r"^[A-Z]\.?(?:\s*[A-Z]\.?)*$")
_SURNAME_RE = re.compile(r"^[^\W\d_]+(?:[-'’\s][^\W\d_]+)*$")
_DOMAIN_RE = re.compile(r"^(?:https?://)?(?:www\.)?[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,}(?:/\S*)?$")
_NOT_A_NAME_RE = re.compile(
    r"^(?:and|et\.?\s*al|et|al|etc|vol|pp|page|pages|doi|isbn|issn|url|http|www)\.?$",
    re.IGNORECASE,
)
_NAME_PUNCT = set(" .,'’-")
_ELLIPSIS = "…"

_NOISE_ABSTRACT_RE = re.compile(
    r"^(?:pdf|html|full text|download|view|access|(?:abstract|summary)\s*:?)$"
    r"|^\d+\s*(?:pages?|pp\.)"
    r"|^see\s+(?:full|complete)\s+",
    re.IGNORECASE,
)
_REDIRECT_PATHS = ("/scholar_url", "/url")
_REDIRECT_PARAMS = ("url", "q")


# ── Public API ───────────────────────────────────────────────────────


def parse_results(html: str) -> list[ExtractedRecord]:
    """Parse every result block in ``html`` into records, in document order.

    Never raises on malformed markup; returns an empty list when nothing
    recognizable is found.
    """
    return parse_search_page(html).results


def parse_search_page(html: str) -> ScholarPage:
    """Parse a full results page: records plus pagination metadata."""
    if not html or not isinstance(html, str):
        return ScholarPage()

    try:
        soup = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        logger.warning("Markup rejected by parser: %s", exc)
        return ScholarPage()

    blocks = find_result_blocks(soup)
    results: list[ExtractedRecord] = []
    for idx, block in enumerate(blocks):
        record = parse_block(block)
        if record is None:
            logger.debug("Skipping result block %d: no title or authors", idx)
            continue
        results.append(record)

    logger.info("Parsed %d records from %d result blocks", len(results), len(blocks))

    return ScholarPage(
        results=results,
        total_results=extract_total_results(soup),
        has_next_page=has_next_page(soup),
    )


# ── Block Discovery ──────────────────────────────────────────────────


def find_result_blocks(soup: BeautifulSoup) -> list[Tag]:
    """Return outermost result containers in document order."""
    for selector in _BLOCK_SELECTORS:
        found = soup.select(selector)
        if not found:
            continue
        ids = {id(b) for b in found}
        return [b for b in found if not any(id(p) in ids for p in b.parents)]
    return []


def parse_block(block: Tag) -> Optional[ExtractedRecord]:
    """Build one record from a result block, or None if it lacks title/authors."""
    anchor, title = extract_title(block)
    if anchor is None or not title:
        return None

    venue_line = _venue_line(block)
    authors = parse_authors(venue_line) if venue_line else []
    if not authors:
        return None

    journal = parse_journal(venue_line)
    year = parse_year(venue_line)
    citations = extract_citations(block)
    doi = extract_block_doi(block)
    url = resolve_url(anchor.get("href"))
    abstract = extract_abstract(block)

    try:
        return ExtractedRecord(
            title=title,
            authors=authors,
            journal=journal,
            year=year,
            doi=doi,
            url=url,
            full_text_url=extract_full_text_url(block),
            abstract=abstract,
            citations=citations,
            confidence=score_confidence(
                title, authors, journal, year, abstract, citations, doi, url
            ),
            relevance_score=score_relevance(title, abstract),
        )
    except ValueError as exc:
        logger.debug("Discarding result block with invalid fields: %s", exc)
        return None


# ── Title ────────────────────────────────────────────────────────────


def extract_title(block: Tag) -> tuple[Optional[Tag], Optional[str]]:
    """Find the title anchor and its cleaned text."""
    for selector in _TITLE_SELECTORS:
        anchor = block.select_one(selector)
        if anchor is None:
            continue
        # get_text() with no separator keeps nested inline text joined as-is
        title = collapse_whitespace(anchor.get_text())
        title = _TAG_PREFIX_RE.sub("", title).strip()
        if title:
            return anchor, title
    return None, None


# ── Author / Venue Line ──────────────────────────────────────────────


def _venue_line(block: Tag) -> Optional[str]:
    el = block.select_one(".gs_a")
    if el is None:
        return None
    text = collapse_whitespace(el.get_text())
    return text or None


def split_venue_line(line: str) -> list[str]:
    """Split ``Authors - Venue, Year - domain`` into its dash segments."""
    return [s.strip() for s in _SEGMENT_RE.split(line) if s.strip()]


def parse_authors(line: str) -> list[str]:
    """Author names from the first segment of the author/venue line."""
    segments = split_venue_line(line)
    if not segments:
        return []
    author_part = segments[0].replace(_ELLIPSIS, "")

    if ";" in author_part:
        tokens = [t.strip() for t in author_part.split(";")]
    else:
        tokens = _join_initials([t.strip() for t in author_part.split(",")])

    return [t for t in tokens if is_author_token(t)]


def _join_initials(parts: list[str]) -> list[str]:
    """Re-join ``Smith`` + ``J.`` pairs that the comma split separated."""
    authors: list[str] = []
    i = 0
    while i < len(parts):
        part = parts[i]
        if i + 1 < len(parts) and _looks_like_surname(part) and _looks_like_initials(parts[i + 1]):
            authors.append(f"{part}, {parts[i + 1]}")
            i += 2
            continue
        if part:
            authors.append(part)
        i += 1
    return authors


def _looks_like_initials(text: str) -> bool:
    return len(text) <= 10 and _INITIALS_RE.match(text) is not None


def _looks_like_surname(text: str) -> bool:
    return (
        len(text) > 1
        and text[0].isupper()
        and _SURNAME_RE.match(text) is not None
        and not _looks_like_initials(text)
    )


def is_author_token(token: str) -> bool:
    """True for plausible name fragments; rejects numbers, dates and domains."""
    token = token.strip()
    if len(token) < 2 or len(token) > 100:
        return False
    if not any(ch.isalpha() for ch in token):
        return False
    if not all(ch.isalpha() or ch in _NAME_PUNCT for ch in token):
        return False  # digits, slashes, symbols: dates, volumes, URLs
    if _DOMAIN_RE.match(token) or _NOT_A_NAME_RE.match(token):
        return False
    return True


def parse_journal(line: Optional[str]) -> Optional[str]:
    """The venue between the author list and the trailing year/domain."""
    if not line:
        return None
    segments = split_venue_line(line)
    if len(segments) < 2:
        return None

    venue = segments[1]
    trailing_year = None
    match = _TRAILING_YEAR_RE.match(venue)
    if match:
        venue, trailing_year = match.group(1), match.group(2)
    venue = venue.strip().rstrip(" ,;" + _ELLIPSIS).strip()

    count = 1 + (1 if venue else 0) + (1 if trailing_year else 0) + len(segments[2:])
    if count < 3 or not venue:
        return None
    if len(venue) < _MIN_JOURNAL_LENGTH or venue.isdigit() or _DOMAIN_RE.match(venue):
        return None
    return venue


def parse_year(line: Optional[str]) -> Optional[int]:
    """First 4-digit run, kept only inside [1900, current year + 1]."""
    if not line:
        return None
    match = _YEAR_RE.search(line)
    if not match:
        return None
    year = int(match.group(0))
    if MIN_YEAR <= year <= date.today().year + 1:
        return year
    return None


# ── Citations / DOI ──────────────────────────────────────────────────


def extract_citations(block: Tag) -> Optional[int]:
    """First ``Cited by N`` / ``Citations: N`` count in the block."""
    match = _CITATIONS_RE.search(block.get_text(" "))
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def extract_doi(text: str, pattern: re.Pattern = _TEXT_DOI_RE) -> Optional[str]:
    """First string in ``text`` that satisfies the DOI grammar."""
    if not text:
        return None
    for match in pattern.finditer(text):
        candidate = clean_doi_candidate(match.group(0))
        if is_valid_doi(candidate):
            return candidate
    return None


def extract_block_doi(block: Tag) -> Optional[str]:
    """DOI from link targets first, then from the block's free text."""
    for link in block.find_all("a", href=True):
        doi = extract_doi(unquote(link["href"]), _LINK_DOI_RE)
        if doi:
            return doi
    return extract_doi(block.get_text(" "))


# ── Abstract ─────────────────────────────────────────────────────────


def extract_abstract(block: Tag) -> Optional[str]:
    """Snippet text from the summary region, or None if it is noise."""
    el = block.select_one(".gs_rs")
    if el is None:
        return None
    for br in el.find_all("br"):
        br.replace_with(" ")
    text = collapse_whitespace(el.get_text())
    return text if is_valid_abstract(text) else None


def is_valid_abstract(text: Optional[str]) -> bool:
    if not text or len(text) <= MIN_ABSTRACT_LENGTH:
        return False
    if len(text.split()) < _MIN_ABSTRACT_WORDS:
        return False
    if not any(ch.isalpha() for ch in text):
        return False
    return _NOISE_ABSTRACT_RE.search(text) is None


# ── URLs ─────────────────────────────────────────────────────────────


def resolve_url(href: Optional[str]) -> Optional[str]:
    """Direct link target, unwrapping ``/scholar_url?url=...`` redirects.

    When the wrapper cannot be decoded to an http(s) target the raw
    wrapper URL is returned unchanged.
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith("javascript:"):
        return None

    try:
        parts = urlsplit(href)
    except ValueError:
        return href
    if not parts.path.endswith(_REDIRECT_PATHS) or not parts.query:
        return href

    params = parse_qs(parts.query)
    for key in _REDIRECT_PARAMS:
        values = params.get(key)
        if values and values[0].startswith(("http://", "https://")):
            return values[0]
    return href


def extract_full_text_url(block: Tag) -> Optional[str]:
    """Side link to a PDF/HTML full text, if the block carries one."""
    for selector in _FULL_TEXT_SELECTORS:
        link = block.select_one(selector)
        if link is not None:
            url = resolve_url(link.get("href"))
            if url:
                return url
    for link in block.find_all("a", href=True):
        label = link.get_text(strip=True).upper()
        if label.startswith(("[PDF]", "[HTML]")):
            return resolve_url(link["href"])
    return None


# ── Page Metadata ────────────────────────────────────────────────────


def extract_total_results(soup: BeautifulSoup) -> int:
    """Result count from the ``About N results`` banner, 0 if absent."""
    banner = soup.select_one("#gs_ab_md")
    if banner is not None:
        match = _TOTAL_RE.search(banner.get_text(" "))
    else:
        match = _ABOUT_TOTAL_RE.search(soup.get_text(" "))
    if not match:
        return 0
    digits = re.sub(r"\D", "", match.group(1))
    return int(digits) if digits else 0


def has_next_page(soup: BeautifulSoup) -> bool:
    if soup.select_one(".gs_ico_nav_next") is not None:
        return True
    return any(a.get_text(strip=True).lower() == "next" for a in soup.find_all("a"))
