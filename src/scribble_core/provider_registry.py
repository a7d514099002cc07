from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional

from .backends import Backend, OllamaBackend, create_backend
from .config_store import CURRENT_PROVIDER_KEY, BackendProfile, ConfigStore
from .errors import BackendNotFoundError, ConfigurationError
from .transport import TransportClient
from .types import BUILTIN_KINDS, BackendKind


LOGGER = logging.getLogger(__name__)

DEFAULT_ACTIVE_KIND = BackendKind.OPENAI


class ProviderRegistry:
    """Own the configured backend instances and track which one is active."""

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        transport: Optional[TransportClient] = None,
        backends: Optional[Mapping[BackendKind, Backend]] = None,
    ) -> None:
        self._store = config_store
        self._transport = transport
        self._backends: Dict[BackendKind, Backend] = {}
        self._lock = threading.Lock()

        for kind in BUILTIN_KINDS:
            profile = BackendProfile.load(config_store, kind)
            if _is_usable(profile):
                self._backends[kind] = create_backend(profile, transport=transport)

        for kind, backend in (backends or {}).items():
            self._backends[BackendKind.parse(kind)] = backend

        self._active = self._load_active_kind()
        LOGGER.info(
            "Provider registry ready (active=%s, configured=%s)",
            self._active.value,
            ", ".join(kind.value for kind in self._backends) or "none",
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def active_kind(self) -> BackendKind:
        return self._active

    def get(self, kind: BackendKind | str) -> Optional[Backend]:
        with self._lock:
            return self._backends.get(BackendKind.parse(kind))

    def active(self) -> Optional[Backend]:
        backend = self.get(self._active)
        if backend is None or not backend.is_configured():
            return None
        return backend

    def resolve(self, kind: Optional[BackendKind | str] = None) -> Backend:
        """Return the requested (or active) backend or raise ``ConfigurationError``."""

        target = self._active if kind is None else BackendKind.parse(kind)
        backend = self.get(target)
        if backend is None or not backend.is_configured():
            raise ConfigurationError("AI provider not configured")
        return backend

    def configured_kinds(self) -> List[BackendKind]:
        with self._lock:
            return [kind for kind in BackendKind if kind in self._backends and self._backends[kind].is_configured()]

    def available(self) -> List[str]:
        names: List[str] = []
        for kind in self.configured_kinds():
            backend = self.get(kind)
            if backend is not None:
                names.append(backend.name)
        return names

    def switch_active(self, kind: BackendKind | str) -> bool:
        """Make ``kind`` active if present and configured; otherwise leave state unchanged."""

        target = BackendKind.parse(kind)
        backend = self.get(target)
        if backend is None or not backend.is_configured():
            LOGGER.info("Cannot switch to backend %s: not configured", target.value)
            return False

        self._active = target
        self._store.set_string(CURRENT_PROVIDER_KEY, target.value)
        return True

    def reconfigure(
        self,
        kind: BackendKind | str,
        credential: str,
        base_url: Optional[str] = None,
    ) -> Optional[Backend]:
        """Persist new settings for ``kind`` and rebuild that one backend.

        The active kind is left untouched. Returns the new backend, or
        ``None`` when the new settings leave the kind unconfigured.
        """

        target = BackendKind.parse(kind)
        if target is BackendKind.CUSTOM:
            raise BackendNotFoundError("The custom backend slot is configured with add_custom().")

        profile = BackendProfile.load(self._store, target)
        profile.api_key = (credential or "").strip()
        if base_url:
            profile.base_url = base_url.strip()
        elif target is BackendKind.OLLAMA and not profile.base_url:
            profile.base_url = OllamaBackend.default_base_url
        profile.persist(self._store)

        with self._lock:
            if _is_usable(profile):
                backend: Optional[Backend] = create_backend(profile, transport=self._transport)
                self._backends[target] = backend
            else:
                backend = None
                self._backends.pop(target, None)

        LOGGER.info("Backend %s reconfigured (configured=%s)", target.value, backend is not None)
        return backend

    def add_custom(self, backend: Backend) -> None:
        with self._lock:
            self._backends[BackendKind.CUSTOM] = backend
        LOGGER.info("Custom backend '%s' registered", backend.name)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _load_active_kind(self) -> BackendKind:
        stored = self._store.get_string(CURRENT_PROVIDER_KEY, DEFAULT_ACTIVE_KIND.value)
        try:
            return BackendKind.parse(stored)
        except ValueError:
            LOGGER.warning("Unknown stored provider '%s', falling back to %s", stored, DEFAULT_ACTIVE_KIND.value)
            return DEFAULT_ACTIVE_KIND


def _is_usable(profile: BackendProfile) -> bool:
    if profile.kind is BackendKind.OLLAMA:
        return bool(profile.base_url or profile.api_key)
    return bool(profile.api_key)
