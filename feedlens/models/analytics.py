"""
Analytics Schemas
=================

Derived, non-persisted shapes returned by the aggregation and insight
endpoints. Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from feedlens.models.feedback import FeedbackItem


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SentimentCounts(_CamelModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative


class ThemeCount(_CamelModel):
    theme: str
    count: int


class TrendPoint(_CamelModel):
    date: str
    total: int
    positive: int
    negative: int
    avg_score: float


class ThemeHealth(_CamelModel):
    theme: str
    total: int
    positive: int
    negative: int
    score: int
    status: str


class SourceCount(_CamelModel):
    source: str
    count: int


class DashboardSnapshot(_CamelModel):
    total_feedback: int
    sentiment_counts: SentimentCounts
    average_score: float
    top_themes: List[ThemeCount]
    sentiment_trend: List[TrendPoint]
    theme_health: List[ThemeHealth]
    source_breakdown: List[SourceCount]
    recent_feedback: List[FeedbackItem]


# ---------------------------------------------------------------------------
# Request / response envelopes
# ---------------------------------------------------------------------------

class IngestResponse(BaseModel):
    success: bool = True
    processed: int


class FeedbackListResponse(BaseModel):
    feedback: List[FeedbackItem]


class TrendsResponse(BaseModel):
    trends: List[TrendPoint]


class AskRequest(BaseModel):
    question: str = Field(min_length=1, max_length=4000)

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value.strip()


class AskResponse(BaseModel):
    answer: str


class SummaryResponse(BaseModel):
    summary: str
