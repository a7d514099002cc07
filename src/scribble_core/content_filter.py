"""Content policy evaluation for prompts and generated responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .types import Request


LOGGER = logging.getLogger(__name__)


class FilterLevel(str, Enum):
    """Strictness tier controlling the safety keyword scan."""

    STRICT = "strict"
    MODERATE = "moderate"
    PERMISSIVE = "permissive"


SAFETY_KEYWORDS: Dict[FilterLevel, Tuple[str, ...]] = {
    FilterLevel.STRICT: (
        "violence",
        "hate",
        "harassment",
        "illegal",
        "harmful",
        "dangerous",
        "explicit",
        "nsfw",
        "toxic",
    ),
    FilterLevel.MODERATE: ("violence", "hate", "harassment", "illegal", "dangerous"),
    FilterLevel.PERMISSIVE: (),
}

SAFETY_REASON = "Content blocked by safety filter"
TOPIC_REASON = "Content blocked by topic filter"
USE_CASE_REASON = "Request blocked by use case filter"


class FilterConfig(BaseModel):
    """Policy applied before and after generation."""

    allowed_topics: List[str] = Field(default_factory=list)
    blocked_topics: List[str] = Field(default_factory=list)
    allowed_use_cases: List[str] = Field(default_factory=list)
    # None skips the safety keyword scan.
    filter_level: Optional[FilterLevel] = None
    enable_rag_filtering: bool = True

    @field_validator("filter_level", mode="before")
    @classmethod
    def _normalize_filter_level(cls, value: FilterLevel | str | None) -> Optional[FilterLevel]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, FilterLevel):
            return value
        if isinstance(value, str):
            try:
                return FilterLevel(value.strip().lower())
            except ValueError as exc:
                raise ValueError(f"Unsupported filter_level '{value}'") from exc
        raise ValueError(f"Unsupported filter_level type '{type(value)}'")

    @field_validator("allowed_topics", "blocked_topics", "allowed_use_cases", mode="before")
    @classmethod
    def _drop_blank_entries(cls, values: object) -> object:
        if values is None:
            return []
        if isinstance(values, (list, tuple, set, frozenset)):
            return [item for item in values if not (isinstance(item, str) and not item.strip())]
        return values


@dataclass(frozen=True)
class FilterVerdict:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


class ContentFilterEngine:
    """Evaluate text and request metadata against a :class:`FilterConfig`.

    Checks run in order (safety keywords, topics, use case) and the first
    failing check decides the verdict. Matching is plain case-folded
    substring search, so ``"class"`` matches a blocked topic ``"ass"``.
    """

    def __init__(self, config: FilterConfig | None = None) -> None:
        self._config = config or FilterConfig()

    @property
    def config(self) -> FilterConfig:
        return self._config

    def update_config(self, config: FilterConfig) -> None:
        self._config = config

    def is_allowed(self, content: str, request: Request) -> bool:
        return self.evaluate(content, request).allowed

    def evaluate(self, content: str, request: Request) -> FilterVerdict:
        lowered = content.lower()

        if not self._passes_safety(lowered):
            return self._reject(SAFETY_REASON)

        config = self._config
        if (config.allowed_topics or config.blocked_topics) and not self._passes_topics(lowered):
            return self._reject(TOPIC_REASON)

        if not self._passes_use_case(request):
            return self._reject(USE_CASE_REASON)

        return FilterVerdict(allowed=True)

    # ------------------------------------------------------------------ #
    # Checks
    # ------------------------------------------------------------------ #

    def _passes_safety(self, lowered: str) -> bool:
        level = self._config.filter_level
        if level is None:
            return True
        keywords = SAFETY_KEYWORDS.get(level, ())
        return not any(keyword in lowered for keyword in keywords)

    def _passes_topics(self, lowered: str) -> bool:
        for blocked in self._config.blocked_topics:
            if blocked.lower() in lowered:
                return False

        if self._config.allowed_topics:
            return any(allowed.lower() in lowered for allowed in self._config.allowed_topics)
        return True

    def _passes_use_case(self, request: Request) -> bool:
        allowed = self._config.allowed_use_cases
        if not allowed:
            return True
        use_case = request.metadata.get("useCase")
        return use_case is not None and use_case in allowed

    def _reject(self, reason: str) -> FilterVerdict:
        level = self._config.filter_level
        LOGGER.info("Filter rejected content (level=%s): %s", level.value if level else "none", reason)
        return FilterVerdict(allowed=False, reason=reason)
