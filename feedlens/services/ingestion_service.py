"""
Ingestion Pipeline
==================

Raw feedback in, classified and persisted feedback out.

Classification calls for a batch run concurrently (bounded by
``ingest_concurrency``); inserts then happen one at a time in input order.
A classification failure only downgrades that item to the fallback
judgment. A storage failure propagates: items before it stay stored.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from feedlens.config import settings
from feedlens.core.async_utils import run_sync
from feedlens.models.feedback import FeedbackInput, FeedbackItem, Sentiment
from feedlens.services.classifier import ClassificationResult, Classifier
from feedlens.services.feedback_store import FeedbackStore

logger = logging.getLogger(__name__)


@dataclass
class BatchValidation:
    """Outcome of validating each element of a submitted batch on its own."""

    valid: List[FeedbackInput] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)


def validate_batch(raw_items: Sequence[Any]) -> BatchValidation:
    """Validate every element independently; invalid ones are reported by index."""
    outcome = BatchValidation()
    for index, raw in enumerate(raw_items):
        try:
            outcome.valid.append(FeedbackInput.model_validate(raw))
        except ValidationError as exc:
            errors = [
                {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", "")}
                for err in exc.errors()
            ]
            outcome.rejected.append({"index": index, "errors": errors})
    return outcome


class IngestionPipeline:
    """
    Classify, assign an id, and persist each input.

    Args:
        store: Target feedback store.
        classifier: Classifier adapter (never raises).
        concurrency: Maximum classification calls in flight.
    """

    def __init__(self, store: FeedbackStore, classifier: Classifier, concurrency: Optional[int] = None):
        self.store = store
        self.classifier = classifier
        self.concurrency = max(1, concurrency or settings.ingest_concurrency)

    async def _classify_all(self, inputs: Sequence[FeedbackInput]) -> List[ClassificationResult]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _one(inp: FeedbackInput) -> ClassificationResult:
            async with semaphore:
                return await self.classifier.classify(inp.content)

        return list(await asyncio.gather(*(_one(inp) for inp in inputs)))

    async def ingest(self, inputs: Sequence[FeedbackInput]) -> List[FeedbackItem]:
        """Returns the stored items in input order."""
        if not inputs:
            return []

        results = await self._classify_all(inputs)

        stored: List[FeedbackItem] = []
        for inp, result in zip(inputs, results):
            item = FeedbackItem(
                id=str(uuid.uuid4()),
                source=inp.source,
                content=inp.content,
                timestamp=inp.timestamp,
                sentiment=result.sentiment,
                score=result.score,
                themes=list(result.themes),
                metadata=dict(inp.metadata),
            )
            await run_sync(self.store.insert, item)
            stored.append(item)

        fallbacks = sum(1 for r in results if r.is_fallback)
        logger.info(
            "ingest_completed",
            extra={"ingest.processed": len(stored), "ingest.fallbacks": fallbacks},
        )
        return stored


def split_counts(items: Sequence[FeedbackItem]) -> Tuple[int, int, int]:
    """(positive, neutral, negative) tallies for a just-ingested batch."""
    pos = sum(1 for i in items if i.sentiment is Sentiment.POSITIVE)
    neg = sum(1 for i in items if i.sentiment is Sentiment.NEGATIVE)
    return pos, len(items) - pos - neg, neg
