from __future__ import annotations

from typing import Any, Dict

from ..types import BackendKind
from .base import HTTPBackend


class AnthropicBackend(HTTPBackend):
    """Messages API; context is prepended to the single user message."""

    kind = BackendKind.ANTHROPIC
    display_name = "Anthropic"
    default_base_url = "https://api.anthropic.com"
    default_model = "claude-3-sonnet-20240229"

    def __init__(self, *, api_version: str = "2023-06-01", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_version = api_version

    def endpoint(self) -> str:
        return f"{self.base_url}/v1/messages"

    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }
