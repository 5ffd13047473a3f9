"""
Feedback Classifier
===================

Turns one feedback body into a sentiment label, a 0-10 satisfaction score
and a short list of themes by asking the configured LLM for a JSON object.

The model is not trusted to return *only* JSON, so the first brace-delimited
object in its reply is extracted and validated field by field. Anything that
goes wrong (provider error, timeout, no object, bad JSON) yields the
fallback judgment ``neutral / 5 / []``. ``Classifier.classify`` never raises.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from feedlens.config import settings
from feedlens.models.feedback import Sentiment
from feedlens.prompts.feedback import CLASSIFY_SYSTEM_PROMPT
from feedlens.services.llm_providers.base import LLMProviderError
from feedlens.services.llm_service import LLMService

logger = logging.getLogger(__name__)

FALLBACK_SENTIMENT = Sentiment.NEUTRAL
FALLBACK_SCORE = 5.0

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ClassificationOutcome(str, Enum):
    CLASSIFIED = "classified"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ClassificationResult:
    sentiment: Sentiment
    score: float
    themes: List[str] = field(default_factory=list)
    outcome: ClassificationOutcome = ClassificationOutcome.CLASSIFIED
    reason: Optional[str] = None
    # Fields of a parsed reply that were missing or invalid and got defaults
    defaulted: Tuple[str, ...] = ()

    @property
    def is_fallback(self) -> bool:
        return self.outcome is ClassificationOutcome.FALLBACK


def fallback_result(reason: str) -> ClassificationResult:
    return ClassificationResult(
        sentiment=FALLBACK_SENTIMENT,
        score=FALLBACK_SCORE,
        themes=[],
        outcome=ClassificationOutcome.FALLBACK,
        reason=reason,
    )


def extract_json_object(text: str) -> dict:
    """Return the first JSON object embedded in *text*.

    Raises:
        ValueError: no brace-delimited substring, or it does not decode to
            a JSON object.
    """
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        raise ValueError("no JSON object in model response")

    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        # Greedy match may have swallowed trailing prose with braces in it
        try:
            parsed, _ = json.JSONDecoder().raw_decode(text, match.start())
        except ValueError:
            raise ValueError("model response contains unparseable JSON")

    if not isinstance(parsed, dict):
        raise ValueError("model response JSON is not an object")
    return parsed


def _coerce_sentiment(value: Any) -> Optional[Sentiment]:
    if isinstance(value, str):
        try:
            return Sentiment(value.strip().lower())
        except ValueError:
            return None
    return None


def _coerce_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        score = float(value)
    except OverflowError:
        # JSON integers are unbounded
        return None
    if not math.isfinite(score):
        return None
    return score


def _coerce_themes(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [t.strip() for t in value if isinstance(t, str) and t.strip()]


def parse_classification(text: str) -> ClassificationResult:
    """Validate a raw model reply into a ClassificationResult. Never raises."""
    try:
        parsed = extract_json_object(text)
    except ValueError as exc:
        return fallback_result(str(exc))

    defaulted = []

    sentiment = _coerce_sentiment(parsed.get("sentiment"))
    if sentiment is None:
        sentiment = FALLBACK_SENTIMENT
        defaulted.append("sentiment")

    score = _coerce_score(parsed.get("score"))
    if score is None:
        score = FALLBACK_SCORE
        defaulted.append("score")

    themes = _coerce_themes(parsed.get("themes"))
    if themes is None:
        themes = []
        defaulted.append("themes")

    return ClassificationResult(
        sentiment=sentiment,
        score=score,
        themes=themes,
        defaulted=tuple(defaulted),
    )


class Classifier:
    """Classifies feedback text through an LLMService. One call, no retries."""

    def __init__(
        self,
        llm: LLMService,
        max_tokens: Optional[int] = None,
        timeout_s: Optional[float] = None,
    ):
        self.llm = llm
        self.max_tokens = max_tokens or settings.classification_max_tokens
        self.timeout_s = timeout_s or settings.classification_timeout_s

    async def classify(self, content: str) -> ClassificationResult:
        try:
            reply = await self.llm.generate(
                prompt=content,
                system_prompt=CLASSIFY_SYSTEM_PROMPT,
                temperature=0.0,
                max_tokens=self.max_tokens,
                json_mode=True,
                timeout=self.timeout_s,
            )
            result = parse_classification(reply)
        except LLMProviderError as exc:
            result = fallback_result(f"{type(exc).__name__}: {exc.message}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("classifier_unexpected_error")
            result = fallback_result(f"unexpected {type(exc).__name__}")

        if result.is_fallback:
            logger.warning("classification_fallback", extra={"classify.reason": result.reason})
        elif result.defaulted:
            logger.info("classification_defaulted_fields", extra={"classify.defaulted": list(result.defaulted)})
        return result
