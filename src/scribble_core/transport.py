"""Minimal HTTP/1.1 client speaking directly over a socket.

Each call opens a fresh connection, writes one request, reads until the peer
closes or goes quiet, and closes the connection again. There is no pooling,
no redirect handling and no chunked decoding: the body is whatever arrived
after the header block.
"""

from __future__ import annotations

import logging
import socket
import ssl
import threading
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

from .errors import ProtocolError, TransportError


LOGGER = logging.getLogger(__name__)

BodyLike = Union[str, bytes]

_RESERVED_HEADERS = frozenset({"host", "connection", "content-length"})


@dataclass
class HttpResponse:
    """Result of a single HTTP exchange."""

    status_code: int = 0
    body: str = ""
    success: bool = False
    error: Optional[str] = None

    @property
    def is_2xx(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class Target:
    scheme: str
    host: str
    port: int
    path: str

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"

    @property
    def host_header(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        default_port = 443 if self.is_secure else 80
        if self.port == default_port:
            return host
        return f"{host}:{self.port}"


def split_url(url: str) -> Target:
    """Split ``url`` into the pieces needed to open a connection."""

    if "://" not in url:
        raise TransportError(f"URL '{url}' has no scheme.")

    parts = urlsplit(url)
    host = parts.hostname or ""
    if not host:
        raise TransportError(f"URL '{url}' has no host.")

    try:
        port = parts.port
    except ValueError as exc:
        raise TransportError(f"URL '{url}' has an invalid port.") from exc

    scheme = parts.scheme.lower()
    if port is None:
        port = 443 if scheme == "https" else 80

    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return Target(scheme=scheme, host=host, port=port, path=path)


def build_request(
    method: str,
    target: Target,
    payload: bytes,
    headers: Optional[Mapping[str, str]] = None,
) -> bytes:
    lines: List[str] = [
        f"{method.upper()} {target.path} HTTP/1.1",
        f"Host: {target.host_header}",
        "Connection: close",
    ]
    for name, value in (headers or {}).items():
        if name.lower() in _RESERVED_HEADERS:
            continue
        lines.append(f"{name}: {value}")
    if payload:
        lines.append(f"Content-Length: {len(payload)}")

    head = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
    return head + payload


def parse_response(raw: bytes) -> Tuple[int, str]:
    """Split a raw response into status code and decoded body."""

    head, separator, body = raw.partition(b"\r\n\r\n")
    if not separator:
        raise ProtocolError("Malformed HTTP response: missing header terminator.")

    status_line = head.split(b"\r\n", 1)[0].decode("latin-1")
    tokens = status_line.split()
    if len(tokens) < 2:
        raise ProtocolError(f"Malformed HTTP status line: {status_line!r}")
    try:
        status_code = int(tokens[1])
    except ValueError as exc:
        raise ProtocolError(f"Non-numeric HTTP status: {tokens[1]!r}") from exc

    return status_code, body.decode("utf-8", errors="replace")


class TransportClient:
    """Blocking one-shot HTTP client with bounded waits."""

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float = 4.0,
        allow_tls: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
        recv_size: int = 4096,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.allow_tls = allow_tls
        self.recv_size = recv_size
        self.logger = logger or LOGGER
        self._ssl_context = ssl_context

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> HttpResponse:
        return self.request("GET", url, headers=headers, cancel=cancel)

    def post(
        self,
        url: str,
        body: BodyLike,
        headers: Optional[Mapping[str, str]] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> HttpResponse:
        return self.request("POST", url, body=body, headers=headers, cancel=cancel)

    def request(
        self,
        method: str,
        url: str,
        body: Optional[BodyLike] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> HttpResponse:
        """Perform exactly one request; failures come back as ``success=False``."""

        try:
            target = split_url(url)
            payload = body.encode("utf-8") if isinstance(body, str) else (body or b"")
            raw = self._exchange(target, build_request(method, target, payload, headers), cancel)
            status_code, text = parse_response(raw)
        except (TransportError, ProtocolError) as exc:
            self.logger.warning("HTTP %s failed: %s", method.upper(), exc)
            return HttpResponse(success=False, error=str(exc))

        self.logger.debug(
            "HTTP %s %s:%s%s -> %s",
            method.upper(),
            target.host,
            target.port,
            target.path.split("?", 1)[0],
            status_code,
        )
        return HttpResponse(status_code=status_code, body=text, success=True)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _exchange(self, target: Target, buffer: bytes, cancel: Optional[threading.Event]) -> bytes:
        _check_cancel(cancel)
        if target.is_secure and not self.allow_tls:
            raise TransportError(f"Refusing encrypted connection to {target.host}: TLS is disabled.")

        sock = self._connect(target)
        conn: socket.socket = sock
        try:
            if target.is_secure:
                try:
                    conn = self._tls_context().wrap_socket(sock, server_hostname=target.host)
                except OSError as exc:
                    raise TransportError(f"TLS handshake with {target.host} failed: {exc}") from exc
            return self._send_and_receive(conn, buffer, cancel)
        finally:
            conn.close()
            if conn is not sock:
                sock.close()

    def _connect(self, target: Target) -> socket.socket:
        try:
            return socket.create_connection((target.host, target.port), timeout=self.connect_timeout)
        except socket.timeout as exc:
            raise TransportError(f"Connection to {target.host}:{target.port} timed out.") from exc
        except OSError as exc:
            raise TransportError(f"Connection to {target.host}:{target.port} failed: {exc}") from exc

    def _tls_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = ssl.create_default_context()
        return self._ssl_context

    def _send_and_receive(
        self,
        conn: socket.socket,
        buffer: bytes,
        cancel: Optional[threading.Event],
    ) -> bytes:
        try:
            sent = conn.send(buffer)
        except OSError as exc:
            raise TransportError(f"Write failed: {exc}") from exc
        if sent <= 0:
            raise TransportError("Write failed: no bytes were sent.")
        if sent < len(buffer):
            raise TransportError(f"Partial write: {sent} of {len(buffer)} bytes sent.")

        conn.settimeout(self.read_timeout)
        chunks: List[bytes] = []
        while True:
            _check_cancel(cancel)
            try:
                chunk = conn.recv(self.recv_size)
            except socket.timeout:
                break
            except OSError as exc:
                self.logger.debug("Read interrupted after %d chunks: %s", len(chunks), exc)
                break
            if not chunk:
                break
            chunks.append(chunk)

        raw = b"".join(chunks)
        if not raw:
            raise TransportError("Empty response: no bytes received.")
        return raw


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise TransportError("Request cancelled.")
