"""Text, DOI and URL normalization shared by the parser and the dedup engine."""

import re
from typing import Optional
from urllib.parse import urlsplit

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")

DOI_RE = re.compile(r"10\.\d+/\S+")
_DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
_DOI_TRAILING = ".,;:)]}'\""


# ── Text ─────────────────────────────────────────────────────────────


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace and newlines to single spaces, trim."""
    return _SPACE_RE.sub(" ", text).strip()


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    t = text.lower()
    t = _PUNCT_RE.sub("", t)
    return collapse_whitespace(t)


def normalize_title(title: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    return normalize_text(title)


def normalize_author_name(author: str) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace.

    ``"Smith, J."`` becomes ``"smith j"``.
    """
    t = _PUNCT_RE.sub(" ", author.lower())
    return collapse_whitespace(t)


def author_key(author: str) -> str:
    """Surname plus first initial, so ``Smith, John`` matches ``J. Smith``."""
    if "," in author:
        surname, _, given = author.partition(",")
        surname = normalize_author_name(surname)
        given = normalize_author_name(given)
    else:
        parts = normalize_author_name(author).split(" ")
        surname = parts[-1] if parts else ""
        given = " ".join(parts[:-1])
    initial = given[:1]
    return f"{surname} {initial}".strip()


# ── DOI ──────────────────────────────────────────────────────────────


def clean_doi_candidate(candidate: str) -> str:
    """Trim surrounding whitespace and trailing punctuation off a DOI match."""
    return candidate.strip().rstrip(_DOI_TRAILING)


def is_valid_doi(doi: str) -> bool:
    """True if ``doi`` satisfies the DOI grammar ``10.<digits>/<non-space>``."""
    return bool(doi) and DOI_RE.fullmatch(doi) is not None


def normalize_doi(doi: Optional[str]) -> Optional[str]:
    """Lowercase and strip resolver prefixes; None if the DOI is not valid."""
    if not doi:
        return None
    d = _DOI_PREFIX_RE.sub("", doi.strip()).lower()
    d = clean_doi_candidate(d)
    return d if is_valid_doi(d) else None


# ── URL ──────────────────────────────────────────────────────────────


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Drop scheme, ``www.`` and trailing slash; None without a dotted host."""
    if not url or not url.strip():
        return None
    raw = url.strip()
    if "://" not in raw:
        raw = "//" + raw
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    if "." not in host:
        return None
    if host.startswith("www."):
        host = host[len("www."):]
    path = parts.path.rstrip("/")
    normalized = host + path
    if parts.query:
        normalized += "?" + parts.query
    return normalized.lower()
