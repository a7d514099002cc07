from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from scribble_agents import Orchestrator
from scribble_core.config_store import ConfigStore, JsonConfigStore
from scribble_core.content_filter import FilterConfig
from scribble_core.retrieval import LocalRetrievalIndex
from scribble_core.types import BackendKind, Request, Response

from .handles import AgentHandleTable

AgentFactory = Callable[[ConfigStore, Optional[Path]], Orchestrator]

OPERATIONS = ("generate", "summarize", "key-points", "answer")


def default_agent_factory(config_store: ConfigStore, index_path: Optional[Path]) -> Orchestrator:
    retrieval = LocalRetrievalIndex(index_path) if index_path is not None else None
    return Orchestrator(config_store, retrieval=retrieval)


class ScribbleGatewayAPI:
    """Facade translating JSON payloads into orchestrator calls."""

    def __init__(
        self,
        *,
        factory: Optional[AgentFactory] = None,
        handles: Optional[AgentHandleTable] = None,
        index_root: Optional[Path] = None,
        config_store: Optional[ConfigStore] = None,
    ) -> None:
        self.factory = factory or default_agent_factory
        # Agents share one store so settings written by one are seen by all.
        self.config_store = config_store or JsonConfigStore()
        self.handles = handles or AgentHandleTable()
        self.index_root = index_root or Path(os.getenv("SCRIBBLE_INDEX_ROOT") or "data/indexes")

    # ------------------------------------------------------------------ #
    # Agent lifecycle
    # ------------------------------------------------------------------ #

    def create_agent(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        index_name = payload.get("index")
        index_path: Optional[Path] = None
        if index_name is not None:
            if not isinstance(index_name, str) or not Path(index_name).name:
                raise ValueError("'index' must be a non-empty file name.")
            # Only the final path component is honoured.
            index_path = self.index_root / f"{Path(index_name).name}.idx"

        agent = self.factory(self.config_store, index_path)
        handle = self.handles.create(agent)
        return {"handle": handle, **self._backend_summary(agent)}

    def destroy_agent(self, handle: str) -> None:
        self.handles.destroy(handle)

    # ------------------------------------------------------------------ #
    # Backends
    # ------------------------------------------------------------------ #

    def configure_backend(self, handle: str, kind: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        api_key = payload.get("api_key") or ""
        base_url = payload.get("base_url")
        if not isinstance(api_key, str):
            raise ValueError("'api_key' must be a string.")
        if base_url is not None and not isinstance(base_url, str):
            raise ValueError("'base_url' must be a string if provided.")

        configured = agent.configure(BackendKind.parse(kind), api_key, base_url)
        return {"configured": configured, **self._backend_summary(agent)}

    def switch_backend(self, handle: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        kind = payload.get("kind")
        if not isinstance(kind, str) or not kind:
            raise ValueError("Payload must include a backend 'kind'.")
        switched = agent.switch_active(BackendKind.parse(kind))
        return {"switched": switched, **self._backend_summary(agent)}

    def list_backends(self, handle: str) -> Dict[str, Any]:
        return self._backend_summary(self.handles.get(handle))

    def test_connection(self, handle: str) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        ok = agent.test_connection()
        return {"ok": ok, "error": "" if ok else agent.last_error}

    def set_filter(self, handle: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        agent.set_filter_config(FilterConfig(**dict(payload)))
        return agent.filter_config.model_dump(mode="json")

    # ------------------------------------------------------------------ #
    # Generation
    # ------------------------------------------------------------------ #

    def process(self, handle: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        return agent.process_request(self._parse_request(payload)).to_dict()

    def run_operation(self, handle: str, operation: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        text = _required_text(payload, "text")
        context = _optional_text(payload, "context")

        response: Response
        if operation == "generate":
            response = agent.generate_text(text, context)
        elif operation == "summarize":
            response = agent.summarize(text)
        elif operation == "key-points":
            response = agent.extract_key_points(text)
        elif operation == "answer":
            response = agent.answer_question(text, context)
        else:
            raise ValueError(f"Unknown operation '{operation}'. Expected one of: {', '.join(OPERATIONS)}.")
        return response.to_dict()

    # ------------------------------------------------------------------ #
    # Documents
    # ------------------------------------------------------------------ #

    def index_document(self, handle: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        agent = self.handles.get(handle)
        content = _required_text(payload, "content")
        title = _optional_text(payload, "title")
        doc_id = payload.get("id")
        if doc_id is not None and not isinstance(doc_id, str):
            raise ValueError("'id' must be a string if provided.")
        indexed = agent.index_document(content, title, doc_id or None)
        return {"indexed": indexed, "error": "" if indexed else agent.last_error}

    def search(self, handle: str, query: str) -> List[Dict[str, Any]]:
        agent = self.handles.get(handle)
        return [document.to_dict() for document in agent.search_relevant_content(query)]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _backend_summary(self, agent: Orchestrator) -> Dict[str, Any]:
        return {
            "active": agent.current_backend.value,
            "ready": agent.is_configured(),
            "available": agent.available_backends(),
        }

    def _parse_request(self, payload: Mapping[str, Any]) -> Request:
        prompt = _required_text(payload, "prompt")
        context = _optional_text(payload, "context")

        documents = payload.get("documents") or []
        if not isinstance(documents, list) or not all(isinstance(item, str) for item in documents):
            raise ValueError("'documents' must be a list of strings.")

        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValueError("'metadata' must be an object.")
        metadata = {str(key): str(value) for key, value in metadata.items()}
        use_case = payload.get("use_case")
        if isinstance(use_case, str) and use_case:
            metadata["useCase"] = use_case

        filter_payload = payload.get("filter")
        if filter_payload is not None and not isinstance(filter_payload, Mapping):
            raise ValueError("'filter' must be an object if provided.")

        backend = payload.get("backend")
        max_tokens = payload.get("max_tokens")
        temperature = payload.get("temperature")

        return Request(
            prompt=prompt,
            context=context,
            documents=list(documents),
            metadata=metadata,
            filter=FilterConfig(**dict(filter_payload)) if filter_payload is not None else None,
            backend=BackendKind.parse(backend) if isinstance(backend, str) and backend else None,
            max_tokens=max_tokens if isinstance(max_tokens, int) and not isinstance(max_tokens, bool) else 1000,
            temperature=float(temperature) if isinstance(temperature, (int, float)) else 0.7,
        )


def _required_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Payload must include a non-empty '{key}'.")
    return value


def _optional_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string if provided.")
    return value
