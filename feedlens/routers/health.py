"""
Health check endpoints.

- GET /api/health          - cheap: process alive, version, uptime
- GET /api/health/deep     - bounded checks for the database and the LLM provider
"""
import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from feedlens.core.async_utils import run_sync
from feedlens.core.structured_logging import APP_VERSION, SERVICE_NAME, get_uptime_s
from feedlens.routers.feedback import get_feedback_store, get_llm_service
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.llm_service import LLMService

logger = logging.getLogger(__name__)

router = APIRouter()

COMPONENT_TIMEOUT = 2.0  # seconds


# ── Cheap health ─────────────────────────────────────────────────────
@router.get("/health")
async def health_check():
    """Cheap health check - no I/O."""
    return {
        "status": "ok",
        "version": APP_VERSION,
        "service": SERVICE_NAME,
        "uptime_s": round(get_uptime_s(), 1),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Deep health ──────────────────────────────────────────────────────
@router.get("/health/deep")
async def deep_health_check(
    store: FeedbackStore = Depends(get_feedback_store),
    llm: LLMService = Depends(get_llm_service),
):
    """Deep health check with bounded component checks."""
    results = await asyncio.gather(
        _bounded_check("database", _check_database(store)),
        _bounded_check("llm", _check_llm(llm)),
    )
    components = dict(results)

    # Overall status = worst component
    statuses = [c.get("status", "down") for c in components.values()]
    if "down" in statuses:
        overall = "down"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "ok"

    return {
        "status": overall,
        "checked_at": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "uptime_s": round(get_uptime_s(), 1),
        "components": components,
    }


async def _bounded_check(name: str, coro) -> tuple[str, dict]:
    """Run a component check with a 2-second timeout."""
    try:
        result = await asyncio.wait_for(coro, timeout=COMPONENT_TIMEOUT)
        return name, result
    except asyncio.TimeoutError:
        return name, {"status": "down", "detail_safe": "Health check timed out"}
    except Exception as e:
        logger.warning("health_check_error", extra={"component": name, "error": str(e)})
        return name, {"status": "down", "detail_safe": f"Check failed: {type(e).__name__}"}


async def _check_database(store: FeedbackStore) -> dict:
    """SELECT 1 plus a row count."""
    start = time.perf_counter()
    await run_sync(store.ping, timeout=COMPONENT_TIMEOUT)
    count = await run_sync(store.count, timeout=COMPONENT_TIMEOUT)
    latency_ms = round((time.perf_counter() - start) * 1000, 1)
    return {
        "status": "degraded" if latency_ms > 250 else "ok",
        "latency_ms": latency_ms,
        "detail_safe": f"{count} feedback items",
    }


async def _check_llm(llm: LLMService) -> dict:
    """Configuration-only check; no tokens are spent."""
    if not llm.is_configured():
        return {"status": "degraded", "detail_safe": "No LLM provider configured"}
    info = llm.get_model_info()
    return {"status": "ok", "detail_safe": f"{info.get('provider')}: {info.get('model')}"}
