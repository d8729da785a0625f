#!/usr/bin/env python3
"""Parse saved search-result pages and write deduplicated records as JSON."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from citeclean.core.options import DuplicateDetectionOptions, load_dedup_options
from citeclean.parsers.scholar_html import parse_search_page
from citeclean.search.dedup import detect_duplicates, remove_duplicates, review_duplicates

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pipeline")


# ── Pipeline ─────────────────────────────────────────────────────────


def run_pipeline(
    html_paths: list[str],
    options_path: str | None = None,
    out_path: str | None = None,
) -> dict:
    """Parse every page, deduplicate across pages, and write the output."""
    t_start = time.time()

    # ── Load options ─────────────────────────────────────────
    if options_path:
        logger.info("Loading dedup options: %s", options_path)
        options = load_dedup_options(options_path)
    else:
        options = DuplicateDetectionOptions()
    logger.info("Merge strategy: %s (options %s)", options.merge_strategy, options.options_hash()[:12])

    # ── PARSE ────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STAGE: PARSE")
    records = []
    for path in html_paths:
        page = parse_search_page(Path(path).read_text(encoding="utf-8", errors="replace"))
        logger.info(
            "%s: %d records (about %d results, next page: %s)",
            path,
            len(page.results),
            page.total_results,
            page.has_next_page,
        )
        records.extend(page.results)

    # ── DEDUP ────────────────────────────────────────────────
    logger.info("=" * 60)
    logger.info("STAGE: DEDUP")
    if options.merge_strategy == "manual_review":
        items = review_duplicates(records, options)
        payload = {
            "records": [r.model_dump() for r in records],
            "review": [item.model_dump() for item in items],
        }
        unique_count = len(detect_duplicates(records, options))
    else:
        unique = remove_duplicates(records, options)
        payload = {"records": [r.model_dump() for r in unique]}
        unique_count = len(unique)

    # ── Write ────────────────────────────────────────────────
    text = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    if out_path:
        Path(out_path).write_text(text, encoding="utf-8")
        logger.info("Wrote %s", out_path)
    else:
        print(text)

    elapsed = time.time() - t_start
    stats = {
        "pages": len(html_paths),
        "records": len(records),
        "unique": unique_count,
        "elapsed": round(elapsed, 2),
    }
    logger.info("=" * 60)
    logger.info("PIPELINE COMPLETE in %.1fs", elapsed)
    logger.info("Pipeline stats: %s", json.dumps(stats))
    return stats


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Extract and deduplicate scholarly search results")
    parser.add_argument("html", nargs="+", help="Saved search-result HTML page(s), in search order")
    parser.add_argument("--options", default=None, help="Path to dedup options YAML file")
    parser.add_argument("--out", default=None, help="Write JSON here instead of stdout")
    args = parser.parse_args()

    run_pipeline(args.html, options_path=args.options, out_path=args.out)


if __name__ == "__main__":
    main()
