"""
Feedback Store
==============

Append-only persistence for classified feedback, backed by the
``feedback_items`` SQL table.

All access goes through one ``FeedbackStore`` per process. Writes and
snapshots are serialized on a re-entrant lock, so every read made inside a
single ``snapshot()`` sees the same set of items: an insert either lands
before the snapshot starts or after it ends.

Aggregates (counts, averages, daily buckets) are computed in SQL rather
than by loading every row.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional

from sqlalchemy import case, func, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from feedlens.core.database import get_engine, get_session_context, sqlite_retry
from feedlens.models.feedback import FeedbackItem, FeedbackRecord, Sentiment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyBucket:
    """Raw per-day aggregate; ``avg_score`` is unrounded."""

    date: str
    total: int
    positive: int
    negative: int
    avg_score: float


def _day_column():
    return func.substr(FeedbackRecord.timestamp, 1, 10)


class StoreView:
    """Read-only queries bound to one session. Obtain via ``FeedbackStore.snapshot()``."""

    def __init__(self, session: Session):
        self._session = session

    def count(self) -> int:
        stmt = select(func.count()).select_from(FeedbackRecord)
        return int(self._session.exec(stmt).one() or 0)

    def recent(self, limit: int) -> List[FeedbackItem]:
        """Most recent items first; ties on timestamp fall back to ingestion order."""
        if limit <= 0:
            return []
        stmt = (
            select(FeedbackRecord)
            .order_by(FeedbackRecord.timestamp.desc(), FeedbackRecord.created_at.desc())
            .limit(limit)
        )
        return [FeedbackItem.from_record(r) for r in self._session.exec(stmt).all()]

    def sentiment_counts(self) -> Dict[Sentiment, int]:
        counts = {s: 0 for s in Sentiment}
        stmt = select(FeedbackRecord.sentiment, func.count()).group_by(FeedbackRecord.sentiment)
        for sentiment, n in self._session.exec(stmt).all():
            try:
                counts[Sentiment(sentiment)] = int(n)
            except ValueError:
                logger.warning("Ignoring unknown sentiment label in store: %r", sentiment)
        return counts

    def average_score(self) -> Optional[float]:
        """Mean score of all items, or None for an empty store."""
        value = self._session.exec(select(func.avg(FeedbackRecord.score))).one()
        return float(value) if value is not None else None

    def source_counts(self) -> List[tuple]:
        """(source, count) pairs ordered by source name."""
        stmt = (
            select(FeedbackRecord.source, func.count())
            .group_by(FeedbackRecord.source)
            .order_by(FeedbackRecord.source)
        )
        return [(source, int(n)) for source, n in self._session.exec(stmt).all()]

    def daily_buckets(self, since_date: str) -> List[DailyBucket]:
        """Per-date aggregates for items whose date is on or after *since_date*.

        Only dates with at least one item appear; ascending by date.
        """
        day = _day_column().label("day")
        stmt = (
            select(
                day,
                func.count(),
                func.sum(case((FeedbackRecord.sentiment == Sentiment.POSITIVE.value, 1), else_=0)),
                func.sum(case((FeedbackRecord.sentiment == Sentiment.NEGATIVE.value, 1), else_=0)),
                func.avg(FeedbackRecord.score),
            )
            .where(_day_column() >= since_date)
            .group_by(day)
            .order_by(day)
        )
        return [
            DailyBucket(
                date=d,
                total=int(total),
                positive=int(pos or 0),
                negative=int(neg or 0),
                avg_score=float(avg or 0.0),
            )
            for d, total, pos, neg, avg in self._session.exec(stmt).all()
        ]


class FeedbackStore:
    """
    Process-wide feedback collection.

    Args:
        engine: SQLAlchemy engine; defaults to the application engine.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()
        self._lock = threading.RLock()

    @contextmanager
    def snapshot(self) -> Generator[StoreView, None, None]:
        """Consistent read view; inserts wait until the block exits."""
        with self._lock:
            with get_session_context(self.engine) as session:
                yield StoreView(session)

    def insert(self, item: FeedbackItem) -> FeedbackItem:
        """Persist one classified item in its own transaction."""

        def _do():
            with get_session_context(self.engine) as session:
                session.add(item.to_record())
                session.commit()

        with self._lock:
            sqlite_retry(_do)
        logger.debug("feedback_stored", extra={"feedback.id": item.id, "feedback.source": item.source})
        return item

    # Convenience single-query wrappers

    def count(self) -> int:
        with self.snapshot() as view:
            return view.count()

    def recent(self, limit: int) -> List[FeedbackItem]:
        with self.snapshot() as view:
            return view.recent(limit)

    def ping(self) -> bool:
        """Round-trip a trivial query; raises on connection failure."""
        with get_session_context(self.engine) as session:
            session.execute(text("SELECT 1")).scalar_one()
        return True
