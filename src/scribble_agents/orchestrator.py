"""Request pipeline tying the filter, retrieval index and backends together."""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import List, Optional, Tuple
from uuid import uuid4

from scribble_core.backends import Backend
from scribble_core.config_store import (
    FILTER_LEVEL_KEY,
    RAG_FILTERING_KEY,
    ConfigStore,
    InMemoryConfigStore,
)
from scribble_core.content_filter import ContentFilterEngine, FilterConfig, FilterLevel
from scribble_core.errors import ConfigurationError, FilterRejection, ScribbleError
from scribble_core.provider_registry import ProviderRegistry
from scribble_core.retrieval import RetrievalService
from scribble_core.transport import TransportClient
from scribble_core.types import BackendKind, Document, Request, Response

from . import prompts


LOGGER = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "AI provider not configured"
PROMPT_BLOCKED_ERROR = "Content blocked by filter"
RESPONSE_BLOCKED_ERROR = "Response blocked by filter"


class Orchestrator:
    """Public entry point: filter, augment, dispatch, filter again.

    Every operation reports failure through a :class:`Response` or a boolean;
    nothing raised by a backend escapes :meth:`process_request`.
    """

    def __init__(
        self,
        config_store: Optional[ConfigStore] = None,
        *,
        registry: Optional[ProviderRegistry] = None,
        transport: Optional[TransportClient] = None,
        retrieval: Optional[RetrievalService] = None,
    ) -> None:
        self.config_store = config_store or InMemoryConfigStore()
        self.registry = registry or ProviderRegistry(self.config_store, transport=transport)
        self.filter_engine = ContentFilterEngine(self._load_filter_config())
        self._retrieval = retrieval
        self.last_error = ""

    def __enter__(self) -> "Orchestrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._retrieval is not None:
            self._retrieval.close()

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def filter_config(self) -> FilterConfig:
        return self.filter_engine.config

    @property
    def current_backend(self) -> BackendKind:
        return self.registry.active_kind

    @property
    def retrieval(self) -> Optional[RetrievalService]:
        return self._retrieval

    def configure(self, kind: BackendKind | str, credential: str, base_url: Optional[str] = None) -> bool:
        """Store new credentials for ``kind`` and rebuild it; the active backend is unchanged."""

        try:
            backend = self.registry.reconfigure(kind, credential, base_url)
        except (ValueError, ScribbleError) as exc:
            self.last_error = str(exc)
            return False
        return backend is not None

    def set_filter_config(self, config: FilterConfig) -> None:
        self.filter_engine.update_config(config)
        self.config_store.set_string(FILTER_LEVEL_KEY, config.filter_level.value if config.filter_level else "")
        self.config_store.set_bool(RAG_FILTERING_KEY, config.enable_rag_filtering)

    def set_retrieval_service(self, service: Optional[RetrievalService]) -> None:
        self._retrieval = service

    def switch_active(self, kind: BackendKind | str) -> bool:
        try:
            return self.registry.switch_active(kind)
        except ValueError as exc:
            self.last_error = str(exc)
            return False

    def add_custom_backend(self, backend: Backend) -> None:
        self.registry.add_custom(backend)

    def available_backends(self) -> List[str]:
        return self.registry.available()

    def is_configured(self) -> bool:
        return self.registry.active() is not None

    def test_connection(self) -> bool:
        backend = self.registry.get(self.registry.active_kind)
        if backend is None:
            self.last_error = "Provider not available"
            return False
        try:
            return backend.test_connection()
        except Exception as exc:  # pragma: no cover - defensive guardrail
            LOGGER.exception("Connection test for %s raised", backend.name)
            self.last_error = str(exc)
            return False

    # ------------------------------------------------------------------ #
    # Pipeline
    # ------------------------------------------------------------------ #

    def process_request(self, request: Request) -> Response:
        self.last_error = ""
        engine = self._engine_for(request)

        try:
            backend = self.registry.resolve(request.backend)
            verdict = engine.evaluate(request.prompt, request)
            if not verdict.allowed:
                raise FilterRejection(verdict.reason)
        except ConfigurationError as exc:
            return self._fail(str(exc))
        except FilterRejection as exc:
            return self._fail(PROMPT_BLOCKED_ERROR, filtered_reason=exc.reason)

        try:
            outbound, excerpts = self._augment(request, engine)
            response = backend.generate_response(outbound)
        except Exception as exc:
            LOGGER.exception("Backend %s failed while generating", backend.name)
            return self._fail(f"AI processing error: {exc}")

        if not response.success:
            self.last_error = response.error
            return response
        if not response.content:
            return self._fail(f"{backend.name} returned an empty response")

        verdict = engine.evaluate(response.content, request)
        if not verdict.allowed:
            return self._fail(RESPONSE_BLOCKED_ERROR, filtered_reason=verdict.reason)

        if excerpts:
            response.metadata["ragDocuments"] = str(excerpts)
        return response

    def generate_text(self, prompt: str, context: str = "") -> Response:
        return self.process_request(
            self._templated_request(prompt, prompts.USE_CASE_TEXT_GENERATION, context=context)
        )

    def summarize(self, content: str) -> Response:
        return self.process_request(
            self._templated_request(
                prompts.SUMMARY_TEMPLATE.format(content=content),
                prompts.USE_CASE_SUMMARIZATION,
                max_tokens=500,
            )
        )

    def extract_key_points(self, content: str) -> Response:
        return self.process_request(
            self._templated_request(
                prompts.KEY_POINTS_TEMPLATE.format(content=content),
                prompts.USE_CASE_KEY_EXTRACTION,
                max_tokens=300,
            )
        )

    def answer_question(self, question: str, context: str = "") -> Response:
        prompt = question
        if context:
            prompt = prompts.QUESTION_WITH_CONTEXT_TEMPLATE.format(context=context, question=question)
        return self.process_request(self._templated_request(prompt, prompts.USE_CASE_QUESTION_ANSWERING))

    # ------------------------------------------------------------------ #
    # Retrieval
    # ------------------------------------------------------------------ #

    def index_document(self, content: str, title: str, id: Optional[str] = None) -> bool:
        if self._retrieval is None:
            self.last_error = "RAG service not configured"
            return False

        document = Document(
            id=id or f"doc_{int(time.time() * 1000)}_{uuid4().hex[:12]}",
            content=content,
            title=title,
            source="user_document",
        )
        return self._retrieval.index_document(document)

    def search_relevant_content(self, query: str) -> List[Document]:
        if self._retrieval is None:
            return []
        return self._retrieval.search_documents(query)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _load_filter_config(self) -> FilterConfig:
        stored_level = self.config_store.get_string(FILTER_LEVEL_KEY, FilterLevel.MODERATE.value).strip().lower()
        level: Optional[FilterLevel] = None
        if stored_level:
            try:
                level = FilterLevel(stored_level)
            except ValueError:
                LOGGER.warning("Unknown stored filter level '%s', using moderate", stored_level)
                level = FilterLevel.MODERATE
        return FilterConfig(
            filter_level=level,
            enable_rag_filtering=self.config_store.get_bool(RAG_FILTERING_KEY, True),
        )

    def _engine_for(self, request: Request) -> ContentFilterEngine:
        if request.filter is None:
            return self.filter_engine
        return ContentFilterEngine(request.filter)

    def _augment(self, request: Request, engine: ContentFilterEngine) -> Tuple[Request, int]:
        if self._retrieval is None or not request.documents:
            return request, 0

        matches = self._retrieval.search_documents(request.prompt, prompts.RAG_MAX_DOCUMENTS)
        parts = [prompts.RAG_HEADER]
        used = 0
        for document in matches[: prompts.RAG_MAX_DOCUMENTS]:
            if engine.config.enable_rag_filtering and not engine.is_allowed(document.content, request):
                LOGGER.debug("Skipping filtered document %s during augmentation", document.id)
                continue
            parts.append(prompts.rag_excerpt_line(document.title, document.content))
            used += 1
        if request.context:
            parts.append(prompts.RAG_ADDITIONAL_CONTEXT.format(context=request.context))

        return dataclasses.replace(request, context="".join(parts)), used

    def _templated_request(
        self,
        prompt: str,
        use_case: str,
        *,
        context: str = "",
        max_tokens: int = 1000,
    ) -> Request:
        return Request(
            prompt=prompt,
            context=context,
            metadata={"useCase": use_case},
            filter=self.filter_config.model_copy(deep=True),
            max_tokens=max_tokens,
        )

    def _fail(self, error: str, *, filtered_reason: str = "") -> Response:
        self.last_error = error
        if filtered_reason:
            LOGGER.info("%s: %s", error, filtered_reason)
        return Response.failure(error, filtered_reason=filtered_reason)
