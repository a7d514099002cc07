from __future__ import annotations

import abc
import logging
from typing import ClassVar, Dict, Optional

from .. import codec
from ..errors import ProtocolError, TransportError
from ..transport import HttpResponse, TransportClient
from ..types import BackendKind, Request, Response


LOGGER = logging.getLogger(__name__)


class Backend(abc.ABC):
    """Text-generation capability the orchestrator dispatches to."""

    kind: ClassVar[BackendKind] = BackendKind.CUSTOM

    @property
    @abc.abstractmethod
    def name(self) -> str:
        ...

    @abc.abstractmethod
    def generate_response(self, request: Request) -> Response:
        ...

    @abc.abstractmethod
    def is_configured(self) -> bool:
        ...

    @abc.abstractmethod
    def test_connection(self) -> bool:
        ...


class HTTPBackend(Backend):
    """Shared request/response flow for the built-in remote backends."""

    display_name: ClassVar[str] = ""
    default_base_url: ClassVar[str] = ""
    default_model: ClassVar[str] = ""

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[TransportClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.model = model or self.default_model
        self.transport = transport or TransportClient()
        self.logger = logger or LOGGER

    @property
    def name(self) -> str:
        return self.display_name

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate_response(self, request: Request) -> Response:
        if not self.is_configured():
            return Response.failure(f"{self.name} API key not configured")

        try:
            content = self._complete(request)
        except (TransportError, ProtocolError) as exc:
            self.logger.warning("%s generation failed: %s", self.name, exc)
            return Response.failure(str(exc))

        return Response.ok(content, metadata={"backend": self.kind.value, "model": self.model})

    def test_connection(self) -> bool:
        if not self.is_configured():
            return False
        probe = Request(prompt="Test", max_tokens=5)
        return self.generate_response(probe).success

    # ------------------------------------------------------------------ #
    # Hooks
    # ------------------------------------------------------------------ #

    @abc.abstractmethod
    def endpoint(self) -> str:
        ...

    @abc.abstractmethod
    def headers(self) -> Dict[str, str]:
        ...

    def _complete(self, request: Request) -> str:
        body = codec.build_body(self.kind, request, model=self.model)
        response = self.transport.post(self.endpoint(), body, self.headers())
        self._raise_for_status(response)

        content = codec.extract_content(self.kind, response.body)
        if not content:
            raise ProtocolError(f"{self.name} returned empty content", status_code=response.status_code)
        return content

    def _raise_for_status(self, response: HttpResponse) -> None:
        if not response.success:
            raise TransportError(f"Failed to connect to {self.name} API: {response.error}")
        if not response.is_2xx:
            raise ProtocolError(
                f"{self.name} API error: HTTP {response.status_code}",
                status_code=response.status_code,
                response_text=response.body or None,
            )
