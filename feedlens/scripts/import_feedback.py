"""
Bulk Feedback Import
====================

CLI script that loads feedback from a JSON file and runs it through the
ingestion pipeline against the configured database.

The file holds either a JSON array of items or an object with a
``feedback`` array, the same shape ``POST /api/ingest`` accepts.

Usage:
    python -m feedlens.scripts.import_feedback feedback.json
    python -m feedlens.scripts.import_feedback feedback.json --dry-run
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from feedlens.core.database import get_engine, init_db
from feedlens.services.classifier import Classifier
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.ingestion_service import IngestionPipeline, split_counts, validate_batch
from feedlens.services.llm_service import LLMService


def load_items(path: Path) -> List[Any]:
    """Read the import file; raises ValueError if the shape is wrong."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("feedback")
    if not isinstance(data, list):
        raise ValueError("expected a JSON array or an object with a 'feedback' array")
    return data


async def run_import(items: List[Any], dry_run: bool = False, pipeline: Optional[IngestionPipeline] = None) -> int:
    """Validate and ingest *items*; returns a process exit code."""
    batch = validate_batch(items)
    for rejected in batch.rejected:
        msgs = "; ".join(f"{'.'.join(e['loc'])}: {e['msg']}" for e in rejected["errors"])
        print(f"  REJECT: item {rejected['index']} - {msgs}", file=sys.stderr)

    if dry_run:
        print(f"Dry run: {len(batch.valid)} valid, {len(batch.rejected)} rejected. Nothing written.")
        return 0 if not batch.rejected else 1

    if pipeline is None:
        init_db()
        pipeline = IngestionPipeline(FeedbackStore(get_engine()), Classifier(LLMService()))

    stored = await pipeline.ingest(batch.valid)
    pos, neu, neg = split_counts(stored)
    print(
        f"\nDone. {len(stored)} item(s) stored "
        f"({pos} positive, {neu} neutral, {neg} negative), {len(batch.rejected)} rejected."
    )
    return 0 if not batch.rejected else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Import feedback from a JSON file")
    parser.add_argument("file", type=Path, help="JSON file with feedback items")
    parser.add_argument("--dry-run", action="store_true", help="Validate only; do not classify or store")
    args = parser.parse_args()

    try:
        items = load_items(args.file)
    except (OSError, ValueError) as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(asyncio.run(run_import(items, dry_run=args.dry_run)))


if __name__ == "__main__":
    main()
