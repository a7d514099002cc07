from __future__ import annotations

from typing import Dict

from ..types import BackendKind
from .base import HTTPBackend


class GoogleGeminiBackend(HTTPBackend):
    """Gemini ``generateContent``; the model is part of the URL path."""

    kind = BackendKind.GOOGLE
    display_name = "Google Gemini"
    default_base_url = "https://generativelanguage.googleapis.com"
    default_model = "gemini-1.5-flash"

    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    def headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
