"""Provider wire payloads.

Request bodies are serialized with :mod:`json`. Responses are *not* parsed
structurally: a single known field is located by scanning and its raw string
token is returned as-is, escape sequences included.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from .errors import ProtocolError
from .types import BackendKind, Request


CONTENT_LABELS: Dict[BackendKind, str] = {
    BackendKind.OPENAI: "content",
    BackendKind.ANTHROPIC: "text",
    BackendKind.GOOGLE: "text",
    BackendKind.OLLAMA: "response",
}


def _dumps(body: Dict[str, Any]) -> str:
    return json.dumps(body, ensure_ascii=False)


def _merged_prompt(request: Request) -> str:
    if request.context:
        return f"{request.context}\n\n{request.prompt}"
    return request.prompt


def build_openai_body(request: Request, *, model: str) -> str:
    messages: List[Dict[str, str]] = []
    if request.context:
        messages.append({"role": "system", "content": request.context})
    messages.append({"role": "user", "content": request.prompt})
    return _dumps(
        {
            "model": model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
    )


def build_anthropic_body(request: Request, *, model: str) -> str:
    return _dumps(
        {
            "model": model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": _merged_prompt(request)}],
        }
    )


def build_google_body(request: Request, *, model: str) -> str:
    # Gemini takes the model in the URL path, not the body.
    return _dumps(
        {
            "contents": [{"role": "user", "parts": [{"text": _merged_prompt(request)}]}],
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": request.temperature,
            },
        }
    )


def build_ollama_body(request: Request, *, model: str) -> str:
    return _dumps({"model": model, "prompt": _merged_prompt(request), "stream": False})


_BUILDERS = {
    BackendKind.OPENAI: build_openai_body,
    BackendKind.ANTHROPIC: build_anthropic_body,
    BackendKind.GOOGLE: build_google_body,
    BackendKind.OLLAMA: build_ollama_body,
}


def build_body(kind: BackendKind, request: Request, *, model: str) -> str:
    """Serialize ``request`` into the literal JSON shape expected by ``kind``."""

    try:
        builder = _BUILDERS[kind]
    except KeyError:
        raise ValueError(f"No payload shape defined for backend '{kind.value}'") from None
    return builder(request, model=model)


def extract_field(body: str, label: str) -> str:
    """Return the raw string token following the first ``"label":`` marker.

    The closing quote is the first one preceded by an even run of
    backslashes. Escape sequences inside the token are left undecoded.
    """

    marker = f'"{label}":'
    start = body.find(marker)
    if start == -1:
        raise ProtocolError(f"Response has no '{label}' field.", response_text=body)

    start = body.find('"', start + len(marker))
    if start == -1:
        raise ProtocolError(f"Response field '{label}' has no string value.", response_text=body)
    start += 1

    backslashes = 0
    for index in range(start, len(body)):
        char = body[index]
        if char == "\\":
            backslashes += 1
            continue
        if char == '"' and backslashes % 2 == 0:
            return body[start:index]
        backslashes = 0

    raise ProtocolError(f"Response field '{label}' is not terminated.", response_text=body)


def extract_content(kind: BackendKind, body: str) -> str:
    try:
        label = CONTENT_LABELS[kind]
    except KeyError:
        raise ValueError(f"No response field defined for backend '{kind.value}'") from None
    return extract_field(body, label)
