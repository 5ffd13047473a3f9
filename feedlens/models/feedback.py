"""
Feedback Models
===============

Two-stage record model for feedback:

* ``FeedbackInput`` - what a caller submits (unclassified).
* ``FeedbackItem`` - the classified record returned to callers.

``FeedbackRecord`` is the SQL row behind ``FeedbackItem``; themes and
metadata are kept as JSON text columns.
"""

import json
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field as PydanticField, field_validator
from sqlmodel import Column, Field, SQLModel, Text

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FeedbackInput(BaseModel):
    """A raw feedback item as submitted for ingestion."""

    source: str
    content: str
    timestamp: str
    metadata: Dict[str, str] = PydanticField(default_factory=dict)

    @field_validator("source", "content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        # Stored exactly as submitted
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("timestamp")
    @classmethod
    def _iso_timestamp(cls, value: str) -> str:
        value = value.strip()
        if not _DATE_PREFIX.match(value):
            raise ValueError("timestamp must be ISO-8601 (YYYY-MM-DD...)")
        try:
            parse_timestamp(value)
        except ValueError:
            raise ValueError("timestamp must be ISO-8601 (YYYY-MM-DD...)")
        return value


class FeedbackItem(BaseModel):
    """A classified, persisted feedback item."""

    id: str
    source: str
    content: str
    timestamp: str
    sentiment: Sentiment
    score: float
    themes: List[str] = PydanticField(default_factory=list)
    metadata: Dict[str, str] = PydanticField(default_factory=dict)

    @property
    def date(self) -> str:
        """Calendar date portion of the timestamp (YYYY-MM-DD)."""
        return self.timestamp[:10]

    @classmethod
    def from_record(cls, record: "FeedbackRecord") -> "FeedbackItem":
        themes = json.loads(record.themes_json) if record.themes_json else []
        metadata = json.loads(record.metadata_json) if record.metadata_json else {}
        return cls(
            id=record.id,
            source=record.source,
            content=record.content,
            timestamp=record.timestamp,
            sentiment=Sentiment(record.sentiment),
            score=record.score,
            themes=[t for t in themes if isinstance(t, str)] if isinstance(themes, list) else [],
            metadata=metadata if isinstance(metadata, dict) else {},
        )

    def to_record(self) -> "FeedbackRecord":
        return FeedbackRecord(
            id=self.id,
            source=self.source,
            content=self.content,
            timestamp=self.timestamp,
            sentiment=self.sentiment.value,
            score=self.score,
            themes_json=json.dumps(self.themes),
            metadata_json=json.dumps(self.metadata),
        )


class FeedbackRecord(SQLModel, table=True):
    """SQL row for a classified feedback item. Rows are never updated."""

    __tablename__ = "feedback_items"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    source: str = Field(sa_column=Column(Text, nullable=False, index=True))
    content: str = Field(sa_column=Column(Text, nullable=False))
    timestamp: str = Field(index=True, max_length=64)
    sentiment: str = Field(index=True, max_length=16)
    score: float
    themes_json: str = Field(default="[]", sa_column=Column(Text, nullable=False, default="[]"))
    metadata_json: str = Field(default="{}", sa_column=Column(Text, nullable=False, default="{}"))
    # Ingestion instant; only used to order items sharing a timestamp
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
