"""Shared data models for extraction and deduplication."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MatchStrategy = Literal["doi", "title_author", "url", "fuzzy_match"]


class ExtractedRecord(BaseModel):
    """A single bibliographic record recovered from one search result."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    authors: list[str] = Field(default_factory=list)
    journal: Optional[str] = None
    year: Optional[int] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    full_text_url: Optional[str] = None
    abstract: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    citations: Optional[int] = Field(default=None, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class MergedResult(ExtractedRecord):
    """A record produced by merging a duplicate group, with provenance."""

    merged_from: list[str]
    merge_confidence: float = Field(ge=0.0, le=1.0)
    conflicting_fields: list[str] = Field(default_factory=list)


class DuplicateGroup(BaseModel):
    """A cluster of records judged to describe the same work."""

    primary: ExtractedRecord
    duplicates: list[ExtractedRecord] = Field(default_factory=list)
    merge_strategy: Optional[MatchStrategy] = None  # None for singletons
    confidence: float = Field(ge=0.0, le=1.0)
    positions: list[int] = Field(
        default_factory=list,
        description="Input indexes aligned with [primary, *duplicates]",
    )

    @property
    def members(self) -> list[ExtractedRecord]:
        return [self.primary, *self.duplicates]

    def source_ids(self) -> list[str]:
        """Identifiers of the members, aligned with ``members``."""
        if len(self.positions) == len(self.members):
            return [record_id(p) for p in self.positions]
        return [record_id(i) for i in range(len(self.members))]

    def members_in_order(self) -> list[ExtractedRecord]:
        """Members sorted back into first-seen input order."""
        if len(self.positions) != len(self.members):
            return self.members
        paired = sorted(zip(self.positions, self.members), key=lambda p: p[0])
        return [rec for _, rec in paired]


class ConflictValue(BaseModel):
    """One distinct value seen for a conflicting field."""

    value: Any
    source: str
    confidence: float = Field(ge=0.0, le=1.0)


class DuplicateConflict(BaseModel):
    """A field on which members of a duplicate group disagree."""

    field: str
    values: list[ConflictValue]
    suggested_resolution: Any


def record_id(position: int) -> str:
    """Stable identifier for the record at ``position`` in the input."""
    return f"result_{position}"
