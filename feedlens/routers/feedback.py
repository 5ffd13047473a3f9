"""
Feedback Router
===============

Ingestion, analytics and insight endpoints.

- POST /api/ingest      - classify and store a batch of feedback
- GET  /api/dashboard   - aggregate snapshot
- GET  /api/feedback    - most recent items
- POST /api/ask         - question answering over recent feedback
- GET  /api/summary     - executive summary of the last N days
- GET  /api/trends      - day-bucketed sentiment series
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from feedlens.config import settings
from feedlens.core.async_utils import run_sync
from feedlens.core.errors import FeedLensError
from feedlens.models.analytics import (
    AskRequest,
    AskResponse,
    DashboardSnapshot,
    FeedbackListResponse,
    IngestResponse,
    SummaryResponse,
    TrendsResponse,
)
from feedlens.services.aggregation_service import AggregationEngine
from feedlens.services.classifier import Classifier
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.ingestion_service import IngestionPipeline, validate_batch
from feedlens.services.insight_service import InsightService
from feedlens.services.llm_providers.base import (
    AuthenticationError,
    LLMProviderError,
    ProviderNotConfiguredError,
    RateLimitError,
)
from feedlens.services.llm_service import LLMService

logger = logging.getLogger(__name__)

router = APIRouter()


# ------------------------------------------------------------------
# Dependencies (overridable in tests)
# ------------------------------------------------------------------

def get_feedback_store(request: Request) -> FeedbackStore:
    return request.app.state.feedback_store


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_classifier(llm: LLMService = Depends(get_llm_service)) -> Classifier:
    return Classifier(llm)


def get_ingestion_pipeline(
    store: FeedbackStore = Depends(get_feedback_store),
    classifier: Classifier = Depends(get_classifier),
) -> IngestionPipeline:
    return IngestionPipeline(store, classifier)


def get_aggregation_engine(store: FeedbackStore = Depends(get_feedback_store)) -> AggregationEngine:
    return AggregationEngine(store)


def get_insight_service(
    llm: LLMService = Depends(get_llm_service),
    store: FeedbackStore = Depends(get_feedback_store),
) -> InsightService:
    return InsightService(llm, store)


def _llm_failure(exc: LLMProviderError) -> FeedLensError:
    """Map a provider exception onto the matching registry code."""
    if isinstance(exc, (ProviderNotConfiguredError, AuthenticationError)):
        code = "FL-LLM-002"
    elif isinstance(exc, RateLimitError):
        code = "FL-LLM-003"
    else:
        code = "FL-LLM-001"
    return FeedLensError(
        code,
        detail=exc.message,
        context={"provider": exc.provider, "kind": type(exc).__name__},
    )


# ------------------------------------------------------------------
# Ingestion
# ------------------------------------------------------------------

@router.post("/ingest", response_model=IngestResponse)
async def ingest_feedback(
    request: Request,
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """
    Classify and store a batch.

    Elements are validated one by one; valid ones are stored even when
    others are rejected, in which case the response is an FL-ING-001 error
    listing the rejected indexes.
    """
    try:
        body = await request.json()
    except ValueError:
        raise FeedLensError("FL-ING-003", detail="body is not valid JSON")

    raw_items = body.get("feedback") if isinstance(body, dict) else None
    if not isinstance(raw_items, list):
        raise FeedLensError("FL-ING-003", detail=f"got {type(body).__name__} without a feedback list")

    if len(raw_items) > settings.ingest_max_batch_size:
        raise FeedLensError(
            "FL-ING-002",
            detail=f"{len(raw_items)} items > {settings.ingest_max_batch_size}",
            payload={"maxBatchSize": settings.ingest_max_batch_size},
        )

    batch = validate_batch(raw_items)
    stored = await pipeline.ingest(batch.valid)

    if batch.rejected:
        raise FeedLensError(
            "FL-ING-001",
            detail=f"{len(batch.rejected)} of {len(raw_items)} items rejected",
            payload={"processed": len(stored), "rejected": batch.rejected},
        )
    return IngestResponse(processed=len(stored))


# ------------------------------------------------------------------
# Analytics
# ------------------------------------------------------------------

@router.get("/dashboard", response_model=DashboardSnapshot)
async def get_dashboard(engine: AggregationEngine = Depends(get_aggregation_engine)):
    return await run_sync(engine.dashboard)


@router.get("/feedback", response_model=FeedbackListResponse)
async def list_feedback(
    limit: Optional[int] = Query(None, ge=1, le=settings.max_feedback_limit),
    store: FeedbackStore = Depends(get_feedback_store),
):
    """Most recent feedback first."""
    items = await run_sync(store.recent, limit or settings.default_feedback_limit)
    return FeedbackListResponse(feedback=items)


@router.get("/trends", response_model=TrendsResponse)
async def get_trends(
    days: int = Query(30, ge=1),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    return TrendsResponse(trends=await run_sync(engine.trends, days))


# ------------------------------------------------------------------
# Insights
# ------------------------------------------------------------------

@router.post("/ask", response_model=AskResponse)
async def ask_question(
    body: AskRequest,
    insights: InsightService = Depends(get_insight_service),
):
    try:
        answer = await insights.ask(body.question)
    except LLMProviderError as exc:
        raise _llm_failure(exc)
    return AskResponse(answer=answer)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    days: int = Query(7, ge=1),
    insights: InsightService = Depends(get_insight_service),
):
    try:
        summary = await insights.summarize(days)
    except LLMProviderError as exc:
        raise _llm_failure(exc)
    return SummaryResponse(summary=summary)
