"""Shared data models for parsers."""

from pydantic import BaseModel, Field

from citeclean.search.models import ExtractedRecord


class ScholarPage(BaseModel):
    """Result of parsing one search-results page."""

    results: list[ExtractedRecord] = Field(default_factory=list)
    total_results: int = Field(ge=0, default=0)
    has_next_page: bool = False
