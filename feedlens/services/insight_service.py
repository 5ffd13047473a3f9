"""
Insight Service
===============

Assembles recent feedback into a text context and asks the LLM either a
free-form question or for an executive summary.

Provider errors are not caught here; callers map them to API errors.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from feedlens.config import settings
from feedlens.core.async_utils import run_sync
from feedlens.models.feedback import FeedbackItem, parse_timestamp
from feedlens.prompts.feedback import (
    ASK_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_ask_prompt,
    build_summary_prompt,
)
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.llm_service import LLMService

logger = logging.getLogger(__name__)

ASK_FALLBACK = "Unable to generate response"
SUMMARY_FALLBACK = "Unable to generate summary"


def format_score(score: float) -> str:
    """Plain decimal form: 8.0 -> "8", 6.5 -> "6.5", 1234567.0 -> "1234567"."""
    if score.is_integer():
        return str(int(score))
    return repr(score)


def render_line(item: FeedbackItem) -> str:
    return f"[{item.sentiment.value}, score:{format_score(item.score)}] ({item.source}): {item.content}"


def render_context(items: Iterable[FeedbackItem]) -> str:
    return "\n".join(render_line(i) for i in items)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InsightService:
    """
    Question answering and summaries over the most recent feedback.

    Args:
        llm: LLM facade used for generation.
        store: Feedback store to read from.
        now: Clock returning an aware UTC datetime.
    """

    def __init__(
        self,
        llm: LLMService,
        store: FeedbackStore,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.llm = llm
        self.store = store
        self._now = now or _utcnow

    async def ask(self, question: str) -> str:
        items = await run_sync(self.store.recent, settings.ask_context_size)
        answer = await self.llm.generate(
            prompt=build_ask_prompt(render_context(items), question),
            system_prompt=ASK_SYSTEM_PROMPT,
        )
        logger.info("insight_ask_answered", extra={"insight.context_items": len(items)})
        return answer or ASK_FALLBACK

    def _within_days(self, items: Iterable[FeedbackItem], days: int):
        try:
            since = self._now() - timedelta(days=days)
        except OverflowError:
            since = datetime.min.replace(tzinfo=timezone.utc)
        kept = []
        for item in items:
            try:
                if parse_timestamp(item.timestamp) >= since:
                    kept.append(item)
            except ValueError:
                logger.warning("Skipping feedback %s with unparseable timestamp", item.id)
        return kept

    async def summarize(self, days: int) -> str:
        if days < 1:
            raise ValueError("days must be >= 1")
        window = await run_sync(self.store.recent, settings.summary_window_size)
        items = self._within_days(window, days)
        if not items:
            return f"No feedback received in the last {days} days."

        summary = await self.llm.generate(
            prompt=build_summary_prompt(render_context(items), len(items), days),
            system_prompt=SUMMARY_SYSTEM_PROMPT,
        )
        logger.info("insight_summary_generated", extra={"insight.context_items": len(items), "insight.days": days})
        return summary or SUMMARY_FALLBACK
