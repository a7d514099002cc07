"""
Core primitives for the Scribble AI layer.

Modules under ``scribble_core`` provide the transport, payload codec, content
policy, retrieval index and backend registry that the orchestrator in
``scribble_agents`` composes into a request pipeline.
"""

from .config_store import BackendProfile, ConfigStore, InMemoryConfigStore, JsonConfigStore
from .content_filter import ContentFilterEngine, FilterConfig, FilterLevel, FilterVerdict
from .errors import (
    BackendNotFoundError,
    ConfigurationError,
    FilterRejection,
    PersistenceError,
    ProtocolError,
    ScribbleError,
    TransportError,
)
from .provider_registry import ProviderRegistry
from .retrieval import LocalRetrievalIndex, RetrievalService
from .transport import HttpResponse, TransportClient
from .types import BackendKind, Document, Request, Response

__all__ = [
    "BackendKind",
    "BackendNotFoundError",
    "BackendProfile",
    "ConfigStore",
    "ConfigurationError",
    "ContentFilterEngine",
    "Document",
    "FilterConfig",
    "FilterLevel",
    "FilterRejection",
    "FilterVerdict",
    "HttpResponse",
    "InMemoryConfigStore",
    "JsonConfigStore",
    "LocalRetrievalIndex",
    "PersistenceError",
    "ProtocolError",
    "ProviderRegistry",
    "Request",
    "Response",
    "RetrievalService",
    "ScribbleError",
    "TransportClient",
    "TransportError",
]
