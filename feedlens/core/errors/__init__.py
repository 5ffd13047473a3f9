"""
Error code system.

FeedLensError is the base exception for all structured errors.
Raise it with an error code from the registry, and the error middleware
will produce a structured JSON response.

Usage:
    from feedlens.core.errors import FeedLensError
    raise FeedLensError("FL-LLM-001", detail="upstream returned 500")
"""

from __future__ import annotations

import re

CODE_PATTERN = re.compile(r"^FL-[A-Z]{2,6}-\d{3}$")


class FeedLensError(Exception):
    """Structured application error tied to the error registry.

    Args:
        code: Registry error code, e.g. "FL-LLM-001".
        detail: Internal-only detail message (never exposed to users).
        context: Arbitrary key-value context for structured logging.
        payload: Public fields merged into the error response body.
    """

    def __init__(
        self,
        code: str,
        detail: str | None = None,
        context: dict | None = None,
        payload: dict | None = None,
    ) -> None:
        if not CODE_PATTERN.match(code):
            raise ValueError(f"Invalid error code format: {code!r}")
        self.code = code
        self.detail = detail
        self.context = context or {}
        self.payload = payload or {}
        super().__init__(f"{code}: {detail}" if detail else code)
