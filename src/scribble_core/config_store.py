"""Key-value configuration stores and backend profile lookup."""

from __future__ import annotations

import abc
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .types import BackendKind


LOGGER = logging.getLogger(__name__)

FILTER_LEVEL_KEY = "ai_filter_level"
RAG_FILTERING_KEY = "ai_enable_rag_filtering"
CURRENT_PROVIDER_KEY = "ai_current_provider"

DEFAULT_CONFIG_PATH = "data/scribble_config.json"

_ENV_SEEDS = {
    "ai_openai_apikey": "OPENAI_API_KEY",
    "ai_anthropic_apikey": "ANTHROPIC_API_KEY",
    "ai_google_apikey": "GEMINI_API_KEY",
    "ai_ollama_baseurl": "OLLAMA_BASE_URL",
}


def api_key_key(kind: BackendKind) -> str:
    return f"ai_{kind.value}_apikey"


def base_url_key(kind: BackendKind) -> str:
    return f"ai_{kind.value}_baseurl"


def model_key(kind: BackendKind) -> str:
    return f"ai_{kind.value}_model"


class ConfigStore(abc.ABC):
    """String/bool key-value store owned by the host application."""

    @abc.abstractmethod
    def get_string(self, key: str, default: str = "") -> str:
        ...

    @abc.abstractmethod
    def set_string(self, key: str, value: str) -> None:
        ...

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get_string(key, "")
        if not raw:
            return default
        return raw.strip().lower() in {"1", "true", "yes", "on"}

    def set_bool(self, key: str, value: bool) -> None:
        self.set_string(key, "true" if value else "false")


class InMemoryConfigStore(ConfigStore):
    """Process-local store, handy for tests and embedding."""

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(values or {})
        self._lock = threading.Lock()

    def get_string(self, key: str, default: str = "") -> str:
        with self._lock:
            return self._values.get(key, default)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._values)


class JsonConfigStore(ConfigStore):
    """File-backed store; every write is flushed to disk."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or Path(os.getenv("SCRIBBLE_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
        self._values: Optional[Dict[str, str]] = None
        self._lock = threading.RLock()

    def _default_values(self) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for key, env_var in _ENV_SEEDS.items():
            seeded = os.getenv(env_var)
            if seeded:
                values[key] = seeded
        return values

    def _ensure_loaded(self) -> Dict[str, str]:
        if self._values is not None:
            return self._values

        if not self.path.exists():
            self._values = self._default_values()
            self.save()
            return self._values

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Config file %s unreadable, using defaults: %s", self.path, exc)
            self._values = self._default_values()
            return self._values

        values: Dict[str, str] = {}
        if isinstance(raw, dict):
            for key, value in raw.items():
                if isinstance(value, bool):
                    values[str(key)] = "true" if value else "false"
                elif isinstance(value, (str, int, float)):
                    values[str(key)] = str(value)

        self._values = values
        return self._values

    def save(self) -> None:
        with self._lock:
            values = self._ensure_loaded()
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
            except OSError as exc:
                LOGGER.error("Config file %s not written: %s", self.path, exc)

    def get_string(self, key: str, default: str = "") -> str:
        with self._lock:
            return self._ensure_loaded().get(key, default)

    def set_string(self, key: str, value: str) -> None:
        with self._lock:
            # Reload so keys flushed by other stores on the same file survive.
            if self.path.exists():
                self._values = None
            self._ensure_loaded()[key] = value
            self.save()


class BackendProfile(BaseModel):
    """Credential/endpoint slot for one built-in backend kind."""

    kind: BackendKind
    api_key: str = ""
    base_url: str = ""
    model: str = ""

    @classmethod
    def load(cls, store: ConfigStore, kind: BackendKind) -> "BackendProfile":
        return cls(
            kind=kind,
            api_key=store.get_string(api_key_key(kind)).strip(),
            base_url=store.get_string(base_url_key(kind)).strip(),
            model=store.get_string(model_key(kind)).strip(),
        )

    def persist(self, store: ConfigStore) -> None:
        store.set_string(api_key_key(self.kind), self.api_key)
        if self.base_url:
            store.set_string(base_url_key(self.kind), self.base_url)
        if self.model:
            store.set_string(model_key(self.kind), self.model)

    def redacted(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json")
        if payload.get("api_key"):
            payload["api_key"] = "********"
        return payload
