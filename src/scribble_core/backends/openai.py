from __future__ import annotations

from typing import Dict

from ..types import BackendKind
from .base import HTTPBackend


class OpenAIBackend(HTTPBackend):
    """Chat-completions endpoint; context travels as a system message."""

    kind = BackendKind.OPENAI
    display_name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-3.5-turbo"

    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
