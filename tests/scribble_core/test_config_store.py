from __future__ import annotations

import json
from pathlib import Path

import pytest

from scribble_core.config_store import (
    BackendProfile,
    InMemoryConfigStore,
    JsonConfigStore,
    api_key_key,
    base_url_key,
    model_key,
)
from scribble_core.types import BackendKind


def test_key_names_follow_backend_kind() -> None:
    assert api_key_key(BackendKind.OPENAI) == "ai_openai_apikey"
    assert base_url_key(BackendKind.OLLAMA) == "ai_ollama_baseurl"
    assert model_key(BackendKind.ANTHROPIC) == "ai_anthropic_model"


def test_bool_round_trip_uses_literal_strings() -> None:
    store = InMemoryConfigStore()

    assert store.get_bool("flag", True) is True
    store.set_bool("flag", False)
    assert store.as_dict() == {"flag": "false"}
    assert store.get_bool("flag", True) is False
    store.set_string("flag", "TRUE")
    assert store.get_bool("flag") is True


def test_json_store_persists_every_write(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for env_var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "OLLAMA_BASE_URL"):
        monkeypatch.delenv(env_var, raising=False)
    path = tmp_path / "config" / "scribble.json"

    store = JsonConfigStore(path)
    store.set_string("ai_current_provider", "anthropic")

    assert json.loads(path.read_text(encoding="utf-8")) == {"ai_current_provider": "anthropic"}
    assert JsonConfigStore(path).get_string("ai_current_provider") == "anthropic"


def test_json_stores_sharing_a_file_keep_each_others_keys(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for env_var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "OLLAMA_BASE_URL"):
        monkeypatch.delenv(env_var, raising=False)
    path = tmp_path / "shared.json"
    first = JsonConfigStore(path)
    second = JsonConfigStore(path)
    first.get_string("warm")
    second.get_string("warm")

    first.set_string("ai_openai_apikey", "sk-a")
    second.set_string("ai_anthropic_apikey", "sk-b")

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "ai_anthropic_apikey": "sk-b",
        "ai_openai_apikey": "sk-a",
    }


def test_json_store_seeds_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama:11434")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    store = JsonConfigStore(tmp_path / "fresh.json")

    assert store.get_string("ai_openai_apikey") == "sk-env"
    assert store.get_string("ai_ollama_baseurl") == "http://ollama:11434"
    assert store.get_string("ai_anthropic_apikey", "none") == "none"


def test_json_store_coerces_scalars_and_tolerates_corruption(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ai_enable_rag_filtering": False, "retries": 3, "nested": {"x": 1}}), encoding="utf-8")

    store = JsonConfigStore(path)
    assert store.get_bool("ai_enable_rag_filtering", True) is False
    assert store.get_string("retries") == "3"
    assert store.get_string("nested") == ""

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert JsonConfigStore(broken).get_string("anything", "fallback") == "fallback"


def test_backend_profile_load_and_persist() -> None:
    store = InMemoryConfigStore({"ai_openai_apikey": "  sk-1  ", "ai_openai_model": "gpt-4o-mini"})

    profile = BackendProfile.load(store, BackendKind.OPENAI)
    assert profile.api_key == "sk-1"
    assert profile.model == "gpt-4o-mini"
    assert profile.base_url == ""

    BackendProfile(kind=BackendKind.OLLAMA, base_url="http://localhost:11434").persist(store)
    assert store.get_string("ai_ollama_apikey", "unset") == ""
    assert store.get_string("ai_ollama_baseurl") == "http://localhost:11434"


def test_backend_profile_redacts_key() -> None:
    profile = BackendProfile(kind="anthropic", api_key="secret")

    assert profile.redacted() == {
        "kind": "anthropic",
        "api_key": "********",
        "base_url": "",
        "model": "",
    }
