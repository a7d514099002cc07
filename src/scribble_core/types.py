from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .content_filter import FilterConfig


class BackendKind(str, Enum):
    """Closed set of backend slots an orchestrator can dispatch to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    OLLAMA = "ollama"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: "BackendKind | str") -> "BackendKind":
        if isinstance(value, BackendKind):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unsupported backend kind '{value}'") from exc


BUILTIN_KINDS = (BackendKind.OPENAI, BackendKind.ANTHROPIC, BackendKind.GOOGLE, BackendKind.OLLAMA)


@dataclass
class Request:
    """Generation request flowing through the orchestrator pipeline."""

    prompt: str
    context: str = ""
    # Only used as the retrieval-augmentation trigger; contents are not sent.
    documents: List[str] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    filter: Optional["FilterConfig"] = None
    backend: Optional[BackendKind] = None
    max_tokens: int = 1000
    temperature: float = 0.7

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be a positive integer.")
        if self.backend is not None:
            self.backend = BackendKind.parse(self.backend)

    @property
    def use_case(self) -> Optional[str]:
        return self.metadata.get("useCase")


@dataclass
class Response:
    """Outcome of a generation request.

    Either ``success`` with non-empty ``content`` or a failure with empty
    content and an ``error`` and/or ``filtered_reason``.
    """

    content: str = ""
    success: bool = False
    error: str = ""
    filtered_reason: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)
    confidence: float = 0.0

    @classmethod
    def ok(cls, content: str, *, metadata: Optional[Dict[str, str]] = None) -> "Response":
        return cls(content=content, success=True, metadata=dict(metadata or {}))

    @classmethod
    def failure(cls, error: str, *, filtered_reason: str = "") -> "Response":
        return cls(success=False, error=error, filtered_reason=filtered_reason)

    def to_dict(self) -> Dict[str, object]:
        return {
            "content": self.content,
            "success": self.success,
            "error": self.error,
            "filtered_reason": self.filtered_reason,
            "metadata": dict(self.metadata),
            "confidence": self.confidence,
        }


@dataclass
class Document:
    """A retrievable text document held by a retrieval index."""

    id: str
    content: str
    title: str = ""
    source: str = ""
    tags: List[str] = field(default_factory=list)
    # Search-result annotation only, never persisted.
    relevance_score: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "content": self.content,
            "tags": list(self.tags),
            "relevance_score": self.relevance_score,
        }
