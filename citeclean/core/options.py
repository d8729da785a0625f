"""Duplicate-detection options: pydantic model, YAML loader, options hashing."""

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

MergePolicy = Literal["keep_highest_quality", "merge_all", "manual_review"]


class DuplicateDetectionOptions(BaseModel):
    """Immutable configuration for one deduplication run.

    Thresholds outside [0, 1], unknown merge strategies and unknown keys are
    rejected with a ``pydantic.ValidationError`` at construction time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title_similarity_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    author_similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    enable_fuzzy_matching: bool = True
    strict_doi_matching: bool = True
    merge_strategy: MergePolicy = "keep_highest_quality"

    def options_hash(self) -> str:
        """SHA-256 of the options (canonical JSON), for run provenance."""
        blob = json.dumps(self.model_dump(), sort_keys=True, default=str).encode()
        return hashlib.sha256(blob).hexdigest()


def coerce_options(
    options: "DuplicateDetectionOptions | Mapping | None",
) -> DuplicateDetectionOptions:
    """Accept None, a mapping, or an options instance."""
    if options is None:
        return DuplicateDetectionOptions()
    if isinstance(options, DuplicateDetectionOptions):
        return options
    return DuplicateDetectionOptions.model_validate(options)


def load_dedup_options(path: str | Path) -> DuplicateDetectionOptions:
    """Load dedup options from a YAML file and return a validated model."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Options file {path} must contain a mapping, got {type(raw).__name__}")
    return DuplicateDetectionOptions.model_validate(raw)
