"""Error taxonomy shared by the Scribble AI core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ScribbleError(Exception):
    """Base class for every error raised inside the core."""


class ConfigurationError(ScribbleError):
    """Raised when no usable backend is active or configured."""


class TransportError(ScribbleError):
    """Raised when a connection, write, or read fails."""


@dataclass
class ProtocolError(ScribbleError):
    """Raised for non-2xx statuses and response bodies that cannot be scanned."""

    message: str
    status_code: Optional[int] = None
    response_text: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class FilterRejection(ScribbleError):
    """Raised when the content policy rejects a prompt or a generated response."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class BackendNotFoundError(ScribbleError, KeyError):
    """Raised when a caller references a backend kind that is absent or unconfigured."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PersistenceError(ScribbleError):
    """Raised when the retrieval index file cannot be read or written."""
