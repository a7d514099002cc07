from __future__ import annotations

from typing import Dict

from ..types import BackendKind
from .base import HTTPBackend


class OllamaBackend(HTTPBackend):
    """Local ``/api/generate`` endpoint; needs a base URL rather than a key."""

    kind = BackendKind.OLLAMA
    display_name = "Ollama"
    default_base_url = "http://localhost:11434"
    default_model = "llama2"

    def is_configured(self) -> bool:
        return bool(self.base_url)

    def endpoint(self) -> str:
        return f"{self.base_url}/api/generate"

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def test_connection(self) -> bool:
        response = self.transport.get(f"{self.base_url}/api/tags")
        return response.success and response.status_code == 200
