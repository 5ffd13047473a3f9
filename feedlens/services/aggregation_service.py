"""
Aggregation Service
===================

Derived views over the feedback store: the dashboard snapshot, the
day-bucketed trend series, and per-theme health scores.

Nothing is cached. Every call recomputes from the store, and the whole
dashboard is computed inside a single store snapshot.
"""

import logging
import math
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from feedlens.config import settings
from feedlens.models.analytics import (
    DashboardSnapshot,
    SentimentCounts,
    SourceCount,
    ThemeCount,
    ThemeHealth,
    TrendPoint,
)
from feedlens.models.feedback import FeedbackItem, Sentiment
from feedlens.services.feedback_store import FeedbackStore, StoreView

logger = logging.getLogger(__name__)

HEALTHY_THRESHOLD = 20
NEEDS_ATTENTION_THRESHOLD = -20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (2.25 -> 2.3, -12.5 -> -12) instead of to even."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def top_themes(items: Iterable[FeedbackItem], limit: int) -> List[ThemeCount]:
    """Most frequent themes; ties keep first-seen order."""
    counts: Counter = Counter()
    for item in items:
        counts.update(item.themes)
    # Counter preserves insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return [ThemeCount(theme=t, count=c) for t, c in ranked[:limit]]


def theme_status(score: int) -> str:
    if score > HEALTHY_THRESHOLD:
        return "healthy"
    if score < NEEDS_ATTENTION_THRESHOLD:
        return "needs_attention"
    return "mixed"


def score_theme_health(items: Iterable[FeedbackItem], limit: int) -> List[ThemeHealth]:
    """Net sentiment per theme, busiest themes first.

    Every occurrence of a theme in an item's theme list counts once
    towards that theme's totals.
    """
    stats: Dict[str, Dict[str, int]] = {}
    for item in items:
        for theme in item.themes:
            entry = stats.setdefault(theme, {"positive": 0, "negative": 0, "total": 0})
            entry["total"] += 1
            if item.sentiment is Sentiment.POSITIVE:
                entry["positive"] += 1
            elif item.sentiment is Sentiment.NEGATIVE:
                entry["negative"] += 1

    ranked = sorted(stats.items(), key=lambda kv: -kv[1]["total"])
    health = []
    for theme, s in ranked[:limit]:
        if s["total"] == 0:
            score = 0
        else:
            score = int(round_half_up((s["positive"] - s["negative"]) / s["total"] * 100))
        health.append(
            ThemeHealth(
                theme=theme,
                total=s["total"],
                positive=s["positive"],
                negative=s["negative"],
                score=score,
                status=theme_status(score),
            )
        )
    return health


class AggregationEngine:
    """
    Dashboard and trend computation over a FeedbackStore.

    Args:
        store: Feedback store to read from.
        now: Clock returning an aware UTC datetime.
    """

    def __init__(self, store: FeedbackStore, now: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._now = now or _utcnow

    def cutoff_date(self, days: int) -> str:
        today: date = self._now().astimezone(timezone.utc).date()
        try:
            return (today - timedelta(days=days)).isoformat()
        except OverflowError:
            # Window reaches past year 1; every stored date qualifies
            return date.min.isoformat()

    def _trends(self, view: StoreView, days: int) -> List[TrendPoint]:
        return [
            TrendPoint(
                date=b.date,
                total=b.total,
                positive=b.positive,
                negative=b.negative,
                avg_score=round_half_up(b.avg_score, 1),
            )
            for b in view.daily_buckets(self.cutoff_date(days))
        ]

    def trends(self, days: int) -> List[TrendPoint]:
        """One point per date with feedback in the last *days* days, ascending."""
        if days < 1:
            raise ValueError("days must be >= 1")
        with self.store.snapshot() as view:
            return self._trends(view, days)

    def dashboard(self) -> DashboardSnapshot:
        with self.store.snapshot() as view:
            counts = view.sentiment_counts()
            average = view.average_score()
            window = view.recent(settings.theme_window_size)
            recent = view.recent(settings.recent_sample_size)
            sources = view.source_counts()
            trend = self._trends(view, settings.dashboard_trend_days)

        sentiment_counts = SentimentCounts(
            positive=counts[Sentiment.POSITIVE],
            neutral=counts[Sentiment.NEUTRAL],
            negative=counts[Sentiment.NEGATIVE],
        )
        return DashboardSnapshot(
            total_feedback=sentiment_counts.total,
            sentiment_counts=sentiment_counts,
            average_score=round_half_up(average, 1) if average is not None else 0,
            top_themes=top_themes(window, settings.top_themes_limit),
            sentiment_trend=trend,
            theme_health=score_theme_health(window, settings.theme_health_limit),
            source_breakdown=[SourceCount(source=s, count=c) for s, c in sources],
            recent_feedback=recent,
        )
