"""
Built-in text-generation backends.

Every backend implements :class:`Backend`. The HTTP variants share one flow:
build the provider payload, post it through :class:`TransportClient`, and
scan the provider's content field out of the raw body.
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from ..config_store import BackendProfile
from ..transport import TransportClient
from ..types import BackendKind
from .anthropic import AnthropicBackend
from .base import Backend, HTTPBackend
from .google import GoogleGeminiBackend
from .ollama import OllamaBackend
from .openai import OpenAIBackend

BACKEND_CLASSES: Dict[BackendKind, Type[HTTPBackend]] = {
    BackendKind.OPENAI: OpenAIBackend,
    BackendKind.ANTHROPIC: AnthropicBackend,
    BackendKind.GOOGLE: GoogleGeminiBackend,
    BackendKind.OLLAMA: OllamaBackend,
}


def create_backend(profile: BackendProfile, *, transport: Optional[TransportClient] = None) -> HTTPBackend:
    """Instantiate the built-in backend described by ``profile``."""

    try:
        backend_cls = BACKEND_CLASSES[profile.kind]
    except KeyError:
        raise ValueError(f"Backend kind '{profile.kind.value}' has no built-in implementation") from None
    return backend_cls(
        api_key=profile.api_key,
        base_url=profile.base_url or None,
        model=profile.model or None,
        transport=transport,
    )


__all__ = [
    "AnthropicBackend",
    "BACKEND_CLASSES",
    "Backend",
    "GoogleGeminiBackend",
    "HTTPBackend",
    "OllamaBackend",
    "OpenAIBackend",
    "create_backend",
]
