"""Parse-then-deduplicate convenience function."""

import logging
from collections.abc import Iterable, Mapping

from citeclean.core.options import DuplicateDetectionOptions, coerce_options
from citeclean.parsers.scholar_html import parse_results
from citeclean.search.dedup import OutputRecord, remove_duplicates
from citeclean.search.models import ExtractedRecord

logger = logging.getLogger(__name__)


def clean_search_results(
    pages: str | Iterable[str],
    options: DuplicateDetectionOptions | Mapping | None = None,
) -> list[OutputRecord]:
    """Parse one or more result pages in order and deduplicate across them."""
    opts = coerce_options(options)
    if isinstance(pages, str):
        pages = [pages]

    records: list[ExtractedRecord] = []
    for page_num, html in enumerate(pages, start=1):
        parsed = parse_results(html)
        logger.info("Page %d: %d records", page_num, len(parsed))
        records.extend(parsed)

    return remove_duplicates(records, opts)
