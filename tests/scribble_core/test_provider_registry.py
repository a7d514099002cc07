from __future__ import annotations

import pytest

from scribble_core.backends import AnthropicBackend, Backend, OllamaBackend, OpenAIBackend
from scribble_core.config_store import InMemoryConfigStore
from scribble_core.errors import BackendNotFoundError, ConfigurationError
from scribble_core.provider_registry import ProviderRegistry
from scribble_core.types import BackendKind, Request, Response


class EchoBackend(Backend):
    def __init__(self, configured: bool = True) -> None:
        self.configured = configured

    @property
    def name(self) -> str:
        return "Echo"

    def generate_response(self, request: Request) -> Response:
        return Response.ok(request.prompt)

    def is_configured(self) -> bool:
        return self.configured

    def test_connection(self) -> bool:
        return self.configured


def test_only_credentialed_builtins_are_instantiated() -> None:
    store = InMemoryConfigStore({"ai_anthropic_apikey": "ak", "ai_openai_apikey": "  "})

    registry = ProviderRegistry(store)

    assert isinstance(registry.get("anthropic"), AnthropicBackend)
    assert registry.get(BackendKind.OPENAI) is None
    assert registry.configured_kinds() == [BackendKind.ANTHROPIC]
    assert registry.available() == ["Anthropic"]


def test_active_kind_defaults_to_openai_and_reads_store() -> None:
    assert ProviderRegistry(InMemoryConfigStore()).active_kind is BackendKind.OPENAI

    stored = ProviderRegistry(InMemoryConfigStore({"ai_current_provider": "ollama"}))
    assert stored.active_kind is BackendKind.OLLAMA

    unknown = ProviderRegistry(InMemoryConfigStore({"ai_current_provider": "mystery"}))
    assert unknown.active_kind is BackendKind.OPENAI


def test_resolve_raises_when_active_backend_missing() -> None:
    registry = ProviderRegistry(InMemoryConfigStore({"ai_anthropic_apikey": "ak"}))

    assert registry.active() is None
    with pytest.raises(ConfigurationError, match="AI provider not configured"):
        registry.resolve()
    assert isinstance(registry.resolve("anthropic"), AnthropicBackend)


def test_switch_active_persists_only_configured_targets() -> None:
    store = InMemoryConfigStore({"ai_anthropic_apikey": "ak"})
    registry = ProviderRegistry(store)

    assert registry.switch_active("google") is False
    assert registry.active_kind is BackendKind.OPENAI
    assert store.get_string("ai_current_provider", "unset") == "unset"

    assert registry.switch_active(BackendKind.ANTHROPIC) is True
    assert registry.active_kind is BackendKind.ANTHROPIC
    assert store.get_string("ai_current_provider") == "anthropic"


def test_reconfigure_rebuilds_backend_without_switching() -> None:
    store = InMemoryConfigStore({"ai_openai_model": "gpt-4o-mini"})
    registry = ProviderRegistry(store)

    backend = registry.reconfigure("openai", " sk-new ", "https://gateway.local/v1")

    assert isinstance(backend, OpenAIBackend)
    assert backend.api_key == "sk-new"
    assert backend.base_url == "https://gateway.local/v1"
    assert backend.model == "gpt-4o-mini"
    assert registry.get("openai") is backend
    assert store.get_string("ai_openai_apikey") == "sk-new"
    assert store.get_string("ai_openai_baseurl") == "https://gateway.local/v1"
    assert registry.active_kind is BackendKind.OPENAI
    assert store.get_string("ai_current_provider", "unset") == "unset"


def test_reconfigure_with_blank_key_removes_backend() -> None:
    registry = ProviderRegistry(InMemoryConfigStore({"ai_openai_apikey": "sk"}))

    assert registry.reconfigure("openai", "") is None
    assert registry.get("openai") is None


def test_reconfigure_ollama_falls_back_to_local_url() -> None:
    store = InMemoryConfigStore()
    registry = ProviderRegistry(store)

    backend = registry.reconfigure("ollama", "")

    assert isinstance(backend, OllamaBackend)
    assert backend.base_url == "http://localhost:11434"
    assert store.get_string("ai_ollama_baseurl") == "http://localhost:11434"


def test_custom_slot_is_registered_not_reconfigured() -> None:
    registry = ProviderRegistry(InMemoryConfigStore())

    with pytest.raises(BackendNotFoundError):
        registry.reconfigure("custom", "anything")

    echo = EchoBackend()
    registry.add_custom(echo)
    assert registry.get("custom") is echo
    assert registry.switch_active("custom") is True
    assert registry.resolve() is echo


def test_injected_backends_override_builtins() -> None:
    echo = EchoBackend(configured=False)
    registry = ProviderRegistry(InMemoryConfigStore({"ai_openai_apikey": "sk"}), backends={"openai": echo})

    assert registry.get("openai") is echo
    assert registry.configured_kinds() == []
    with pytest.raises(ConfigurationError):
        registry.resolve()
