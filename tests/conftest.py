"""
Pytest configuration for FeedLens tests.
Points data, logs and the database at a temp directory before any imports.
"""

import os
import tempfile

# Must be set before feedlens.config is imported
_test_data_dir = tempfile.mkdtemp(prefix="feedlens_test_")
os.environ.setdefault("FEEDLENS_DATA_DIRECTORY", _test_data_dir)
os.environ.setdefault("FEEDLENS_LOG_DIRECTORY", os.path.join(_test_data_dir, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_test_data_dir}/test.db")
os.environ["FEEDLENS_LLM_PROVIDER"] = "workers_ai"
os.environ.pop("FEEDLENS_CLOUDFLARE_ACCOUNT_ID", None)
os.environ.pop("FEEDLENS_CLOUDFLARE_API_TOKEN", None)

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlmodel import SQLModel

from feedlens.core.database import build_engine
from feedlens.models.feedback import FeedbackItem, FeedbackRecord, Sentiment  # noqa: F401
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.llm_service import LLMService

# Load error registry so FeedLensError returns correct HTTP status codes
from feedlens.core.errors.registry import error_registry
error_registry.load()

# Fixed "now" shared by clock-dependent tests
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database per test."""
    eng = build_engine(f"sqlite:///{tmp_path}/feedlens.db")
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return FeedbackStore(engine)


@pytest.fixture
def fake_llm():
    """LLMService stand-in; set ``fake_llm.generate.return_value`` per test."""
    llm = MagicMock(spec=LLMService)
    llm.generate = AsyncMock(return_value="")
    llm.is_configured.return_value = True
    llm.get_model_info.return_value = {"provider": "fake", "model": "fake-1"}
    return llm


def _make_item(
    timestamp: str = "2026-03-15T10:00:00Z",
    sentiment: Sentiment = Sentiment.NEUTRAL,
    score: float = 5.0,
    themes=None,
    source: str = "web",
    content: str = "Some feedback",
) -> FeedbackItem:
    return FeedbackItem(
        id=str(uuid.uuid4()),
        source=source,
        content=content,
        timestamp=timestamp,
        sentiment=sentiment,
        score=score,
        themes=list(themes or []),
    )


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def add_items(store):
    """Insert items in order; returns them."""

    def _add(*items: FeedbackItem):
        for item in items:
            store.insert(item)
        return list(items)

    return _add
