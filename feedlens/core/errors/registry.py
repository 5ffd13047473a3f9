"""
FeedLens error catalogue.

registry.yaml lists every FL-<DOMAIN>-<NNN> code the API can return with its
HTTP status, safe message and remediation steps. The file is validated as a
whole at startup; a malformed catalogue stops the service from booting.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

from feedlens.core.errors import CODE_PATTERN

logger = logging.getLogger(__name__)

VALID_DOMAINS = {"API", "DB", "ING", "LLM", "SYS"}
VALID_SEVERITIES = {"DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"}
REQUIRED_FIELDS = {"code", "domain", "title", "severity", "retryable", "http_status", "safe_message", "remediation"}


@dataclass(frozen=True)
class ErrorEntry:
    code: str
    domain: str
    title: str
    severity: str
    retryable: bool
    http_status: int
    safe_message: str
    remediation: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    docs_url: Optional[str] = None


class RegistryValidationError(Exception):
    pass


def _parse_entry(idx: int, raw: object) -> ErrorEntry:
    if not isinstance(raw, dict):
        raise RegistryValidationError(f"Entry {idx}: expected a mapping, got {type(raw).__name__}")

    missing = REQUIRED_FIELDS - set(raw.keys())
    if missing:
        raise RegistryValidationError(f"Entry {idx} ({raw.get('code', '?')}): missing fields {sorted(missing)}")

    code = raw["code"]
    if not CODE_PATTERN.match(code):
        raise RegistryValidationError(f"Invalid code format: {code!r}")

    domain = raw["domain"]
    code_domain = code.split("-")[1]
    if domain != code_domain:
        raise RegistryValidationError(f"{code}: domain {domain!r} doesn't match code prefix {code_domain!r}")
    if domain not in VALID_DOMAINS:
        raise RegistryValidationError(f"{code}: unknown domain {domain!r}")

    if raw["severity"] not in VALID_SEVERITIES:
        raise RegistryValidationError(f"{code}: unknown severity {raw['severity']!r}")

    http_status = int(raw["http_status"])
    # Every catalogued code is returned as an error response
    if not 400 <= http_status <= 599:
        raise RegistryValidationError(f"{code}: http_status {http_status} is not an error status")

    return ErrorEntry(
        code=code,
        domain=domain,
        title=raw["title"],
        severity=raw["severity"],
        retryable=bool(raw["retryable"]),
        http_status=http_status,
        safe_message=raw["safe_message"],
        remediation=raw.get("remediation") or [],
        tags=raw.get("tags") or [],
        docs_url=raw.get("docs_url"),
    )


class ErrorRegistry:

    def __init__(self) -> None:
        self._entries: Dict[str, ErrorEntry] = {}
        self.schema_version: int = 0

    def load(self, path: str | None = None) -> None:
        if path is None:
            path = os.path.join(os.path.dirname(__file__), "registry.yaml")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        errors_list = data.get("errors", [])
        if not isinstance(errors_list, list):
            raise RegistryValidationError("'errors' must be a list")

        entries: Dict[str, ErrorEntry] = {}
        for idx, raw in enumerate(errors_list):
            entry = _parse_entry(idx, raw)
            if entry.code in entries:
                raise RegistryValidationError(f"Duplicate code: {entry.code}")
            entries[entry.code] = entry

        # Swap only after the whole file validated
        self._entries = entries
        self.schema_version = data.get("schema_version", 0)
        logger.info("error_registry_loaded", extra={"count": len(entries), "schema_version": self.schema_version})

    def get(self, code: str) -> ErrorEntry | None:
        return self._entries.get(code)

    def lookup(self, code: str) -> ErrorEntry:
        entry = self._entries.get(code)
        if entry is None:
            raise KeyError(f"Unknown error code: {code!r}")
        return entry

    def all_codes(self) -> list[str]:
        return list(self._entries.keys())

    def codes_for_domain(self, domain: str) -> list[str]:
        return [c for c, e in self._entries.items() if e.domain == domain]

    def __len__(self) -> int:
        return len(self._entries)


error_registry = ErrorRegistry()
