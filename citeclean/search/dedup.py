"""Detect, group and merge duplicate records from one or more searches."""

import logging
from collections.abc import Mapping, Sequence
from difflib import SequenceMatcher
from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel

from citeclean.core.options import DuplicateDetectionOptions, coerce_options
from citeclean.search.models import (
    ConflictValue,
    DuplicateConflict,
    DuplicateGroup,
    ExtractedRecord,
    MatchStrategy,
    MergedResult,
    record_id,
)
from citeclean.search.normalize import (
    author_key,
    normalize_author_name,
    normalize_doi,
    normalize_text,
    normalize_title,
    normalize_url,
)

logger = logging.getLogger(__name__)

FUZZY_TITLE_THRESHOLD = 0.9  # title-only fallback, strictly exceeded
URL_MATCH_STRENGTH = 0.95

PRECEDENCE: tuple[MatchStrategy, ...] = ("doi", "title_author", "url", "fuzzy_match")
CONFLICT_FIELDS = (
    "title", "authors", "journal", "year", "doi", "url", "abstract", "citations", "keywords",
)
LIST_FIELDS = ("authors", "keywords")
_MERGED_FIELDS = CONFLICT_FIELDS + ("full_text_url",)

OutputRecord = Union[ExtractedRecord, MergedResult]


# ── Result Models ────────────────────────────────────────────────────


class Match(NamedTuple):
    """Which rule paired two records, and how strongly."""

    strategy: MatchStrategy
    strength: float


class ReviewItem(BaseModel):
    """A multi-member group handed to an external reviewer."""

    group_index: int
    group: DuplicateGroup
    conflicts: list[DuplicateConflict]


class _Cluster(NamedTuple):
    """Open group in the clustering fold: (input position, record) pairs."""

    members: tuple[tuple[int, ExtractedRecord], ...]
    strategy: Optional[MatchStrategy] = None
    strength: float = 0.0

    @property
    def primary(self) -> ExtractedRecord:
        return select_primary(self.members)[1]


# ── Public API ───────────────────────────────────────────────────────


def detect_duplicates(
    records: Sequence[ExtractedRecord],
    options: DuplicateDetectionOptions | Mapping | None = None,
) -> list[DuplicateGroup]:
    """Partition ``records`` into duplicate groups, singletons included.

    Groups are ordered by their first-seen member. Output depends only on
    the input order and the options.
    """
    opts = coerce_options(options)
    clusters = _cluster(list(records), opts)
    groups = [_to_group(c) for c in clusters]

    logger.info(
        "Duplicate detection: %d records → %d groups (%d with duplicates)",
        len(records),
        len(groups),
        sum(1 for g in groups if g.duplicates),
    )
    return groups


def remove_duplicates(
    records: Sequence[ExtractedRecord],
    options: DuplicateDetectionOptions | Mapping | None = None,
) -> list[OutputRecord]:
    """Collapse each duplicate group into one record per the merge policy.

    Under ``manual_review`` the input records come back unchanged.
    """
    opts = coerce_options(options)
    records = list(records)

    if opts.merge_strategy == "manual_review":
        logger.info("Deduplication (manual_review): %d records returned unmerged", len(records))
        return list(records)

    groups = detect_duplicates(records, opts)
    output: list[OutputRecord] = []
    merged = 0
    for group in groups:
        if group.duplicates:
            output.append(merge_group(group, opts))
            merged += 1
        else:
            output.append(records[group.positions[0]])

    logger.info(
        "Deduplication (%s): %d records → %d unique (%d groups merged)",
        opts.merge_strategy,
        len(records),
        len(output),
        merged,
    )
    return output


def review_duplicates(
    records: Sequence[ExtractedRecord],
    options: DuplicateDetectionOptions | Mapping | None = None,
) -> list[ReviewItem]:
    """First phase of manual review: groups with duplicates and their conflicts.

    ``group_index`` refers to the position in ``detect_duplicates`` output,
    which is what ``accept_resolutions`` expects as keys.
    """
    groups = detect_duplicates(records, options)
    return [
        ReviewItem(group_index=idx, group=group, conflicts=detect_conflicts(group))
        for idx, group in enumerate(groups)
        if group.duplicates
    ]


def accept_resolutions(
    groups: Sequence[DuplicateGroup],
    resolutions: Mapping[int, MergedResult],
) -> list[OutputRecord]:
    """Second phase of manual review: assemble final records.

    Externally resolved records are taken as-is, without re-validation.
    Groups without a resolution contribute their members unchanged, in
    first-seen order.
    """
    output: list[OutputRecord] = []
    for idx, group in enumerate(groups):
        if idx in resolutions:
            output.append(resolutions[idx])
        else:
            output.extend(group.members_in_order())
    return output


# ── Matching ─────────────────────────────────────────────────────────


def match_records(
    existing: ExtractedRecord,
    candidate: ExtractedRecord,
    options: DuplicateDetectionOptions,
) -> Optional[Match]:
    """Apply the matching rules in precedence order; first rule that fires wins."""
    # Priority 1: DOI exact match
    doi_a, doi_b = normalize_doi(existing.doi), normalize_doi(candidate.doi)
    if doi_a and doi_b:
        if doi_a == doi_b:
            return Match("doi", 1.0)
        if options.strict_doi_matching:
            return None

    # Priority 2: title + author similarity
    t_sim = title_similarity(normalize_title(existing.title), normalize_title(candidate.title))
    a_sim = author_similarity(existing.authors, candidate.authors)
    if (
        t_sim >= options.title_similarity_threshold
        and a_sim >= options.author_similarity_threshold
    ):
        return Match("title_author", round((t_sim + a_sim) / 2, 4))

    # Priority 3: URL exact match
    url_a, url_b = normalize_url(existing.url), normalize_url(candidate.url)
    if url_a and url_a == url_b:
        return Match("url", URL_MATCH_STRENGTH)

    # Priority 4: title-only fuzzy fallback
    if options.enable_fuzzy_matching and t_sim > FUZZY_TITLE_THRESHOLD:
        return Match("fuzzy_match", round(t_sim, 4))

    return None


def primary_rank(member: tuple[int, ExtractedRecord]) -> tuple[float, int]:
    """Sort key for primary selection: highest confidence, then first seen."""
    position, record = member
    return (-record.confidence, position)


def select_primary(
    members: Sequence[tuple[int, ExtractedRecord]],
) -> tuple[int, ExtractedRecord]:
    return min(members, key=primary_rank)


# ── Clustering ───────────────────────────────────────────────────────


def _cluster(
    records: list[ExtractedRecord],
    options: DuplicateDetectionOptions,
) -> tuple[_Cluster, ...]:
    clusters: tuple[_Cluster, ...] = ()
    for position, record in enumerate(records):
        clusters = _absorb(clusters, position, record, options)
    return clusters


def _absorb(
    clusters: tuple[_Cluster, ...],
    position: int,
    record: ExtractedRecord,
    options: DuplicateDetectionOptions,
) -> tuple[_Cluster, ...]:
    """One fold step: join the first matching cluster or open a new one.

    A DOI shared with any member wins over every other rule, so records
    with the same DOI stay together even after a DOI-less primary takes
    over. The remaining rules compare against each cluster's primary.
    """
    doi = normalize_doi(record.doi)
    if doi:
        for idx, cluster in enumerate(clusters):
            if any(normalize_doi(rec.doi) == doi for _, rec in cluster.members):
                return _replace(clusters, idx, _extend(cluster, position, record, Match("doi", 1.0)))

    for idx, cluster in enumerate(clusters):
        match = match_records(cluster.primary, record, options)
        if match is not None:
            return _replace(clusters, idx, _extend(cluster, position, record, match))
    return clusters + (_Cluster(members=((position, record),)),)


def _replace(
    clusters: tuple[_Cluster, ...],
    idx: int,
    cluster: _Cluster,
) -> tuple[_Cluster, ...]:
    return clusters[:idx] + (cluster,) + clusters[idx + 1:]


def _extend(
    cluster: _Cluster,
    position: int,
    record: ExtractedRecord,
    match: Match,
) -> _Cluster:
    strategy, strength = cluster.strategy, cluster.strength
    if strategy is None or _stronger(match, Match(strategy, strength)):
        strategy, strength = match.strategy, match.strength
    return _Cluster(
        members=cluster.members + ((position, record),),
        strategy=strategy,
        strength=strength,
    )


def _stronger(a: Match, b: Match) -> bool:
    rank_a = (PRECEDENCE.index(a.strategy), -a.strength)
    rank_b = (PRECEDENCE.index(b.strategy), -b.strength)
    return rank_a < rank_b


def _to_group(cluster: _Cluster) -> DuplicateGroup:
    primary_pos, primary = select_primary(cluster.members)
    others = [(pos, rec) for pos, rec in cluster.members if pos != primary_pos]

    if others:
        mean_conf = sum(r.confidence for _, r in cluster.members) / len(cluster.members)
        confidence = round(min(0.7 * cluster.strength + 0.3 * mean_conf, 1.0), 4)
    else:
        confidence = primary.confidence

    return DuplicateGroup(
        primary=primary,
        duplicates=[rec for _, rec in others],
        merge_strategy=cluster.strategy,
        confidence=confidence,
        positions=[primary_pos] + [pos for pos, _ in others],
    )


# ── Conflicts ────────────────────────────────────────────────────────


def detect_conflicts(group: DuplicateGroup) -> list[DuplicateConflict]:
    """Fields on which group members disagree after normalization."""
    sources = list(zip(group.source_ids(), group.members))
    conflicts: list[DuplicateConflict] = []

    for field in CONFLICT_FIELDS:
        distinct: dict[Any, ConflictValue] = {}
        for source, rec in sources:
            value = getattr(rec, field)
            if _is_empty(value):
                continue
            key = _value_key(field, value)
            seen = distinct.get(key)
            if seen is None or rec.confidence > seen.confidence:
                distinct[key] = ConflictValue(value=value, source=source, confidence=rec.confidence)

        if len(distinct) > 1:
            values = list(distinct.values())
            conflicts.append(
                DuplicateConflict(
                    field=field,
                    values=values,
                    suggested_resolution=suggest_resolution(field, values),
                )
            )

    return conflicts


def suggest_resolution(field: str, values: Sequence[ConflictValue]) -> Any:
    """Max for citations, ordered union for lists, else highest confidence."""
    if field == "citations":
        return max(v.value for v in values)
    if field in LIST_FIELDS:
        return _ordered_union(field, [v.value for v in values])
    # max() keeps the earliest source on ties
    return max(values, key=lambda v: v.confidence).value


# ── Merging ──────────────────────────────────────────────────────────


def merge_group(
    group: DuplicateGroup,
    options: DuplicateDetectionOptions | Mapping | None = None,
) -> MergedResult:
    """Merge one group into a single record according to the merge policy.

    Conflicting fields take the suggested resolution; other fields come
    from the primary, with gaps filled from the value the other members
    agree on.
    """
    opts = coerce_options(options)
    conflicts = detect_conflicts(group)
    resolved = {c.field: c.suggested_resolution for c in conflicts}
    members = group.members

    data = {name: getattr(group.primary, name) for name in ExtractedRecord.model_fields}
    for field in _MERGED_FIELDS:
        if field in resolved:
            data[field] = resolved[field]
        elif _is_empty(data[field]):
            data[field] = next(
                (getattr(m, field) for m in members if not _is_empty(getattr(m, field))),
                data[field],
            )

    if opts.merge_strategy == "merge_all":
        for field in LIST_FIELDS:
            data[field] = _ordered_union(field, [getattr(m, field) for m in members])

    if len(group.positions) == len(members):
        merged_from = [record_id(p) for p in sorted(group.positions)]
    else:
        merged_from = group.source_ids()

    return MergedResult(
        **data,
        merged_from=merged_from,
        merge_confidence=group.confidence,
        conflicting_fields=[c.field for c in conflicts],
    )


# ── Helpers ──────────────────────────────────────────────────────────


def title_similarity(t1: str, t2: str) -> float:
    """Fuzzy similarity between two normalized titles (0.0–1.0)."""
    if t1 == t2:
        return 1.0
    if not t1 or not t2:
        return 0.0
    return SequenceMatcher(None, t1, t2).ratio()


def author_similarity(authors1: Sequence[str], authors2: Sequence[str]) -> float:
    """Jaccard similarity of surname+initial author keys (0.0–1.0).

    Two empty lists count as identical; one empty list scores 0.5.
    """
    keys1 = {k for k in (author_key(a) for a in authors1) if k}
    keys2 = {k for k in (author_key(a) for a in authors2) if k}
    if not keys1 or not keys2:
        return 1.0 if not keys1 and not keys2 else 0.5
    return len(keys1 & keys2) / len(keys1 | keys2)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _value_key(field: str, value: Any) -> Any:
    """Normalized comparison key for conflict deduplication."""
    if field == "authors":
        return frozenset(normalize_author_name(a) for a in value)
    if field == "keywords":
        return frozenset(normalize_text(k) for k in value)
    if field == "doi":
        return normalize_doi(value) or normalize_text(value)
    if field == "url":
        return normalize_url(value) or value.strip().lower()
    if isinstance(value, str):
        return normalize_text(value)
    return value


def _ordered_union(field: str, lists: Sequence[Sequence[str]]) -> list[str]:
    """Concatenate lists in order, dropping items already seen."""
    key = author_key if field == "authors" else normalize_text
    seen: set[str] = set()
    union: list[str] = []
    for items in lists:
        for item in items or []:
            if not item or not item.strip():
                continue
            k = key(item) or item
            if k not in seen:
                seen.add(k)
                union.append(item)
    return union
