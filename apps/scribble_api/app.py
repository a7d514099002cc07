from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional, TypeVar

from fastapi import FastAPI, HTTPException

from .gateway import ScribbleGatewayAPI

T = TypeVar("T")


def _call(func: Callable[[], T], *, handle: Optional[str] = None) -> T:
    try:
        return func()
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Agent '{handle}' not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app(api: Optional[ScribbleGatewayAPI] = None) -> FastAPI:
    gateway = api or ScribbleGatewayAPI()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        gateway.handles.close_all()

    app = FastAPI(title="Scribble AI API", version="0.1.0", lifespan=lifespan)

    @app.post("/api/agents")
    def create_agent(payload: Optional[dict] = None) -> dict:
        return _call(lambda: gateway.create_agent(payload or {}))

    @app.delete("/api/agents/{handle}")
    def destroy_agent(handle: str) -> dict:
        _call(lambda: gateway.destroy_agent(handle), handle=handle)
        return {"handle": handle, "destroyed": True}

    @app.get("/api/agents/{handle}/backends")
    def list_backends(handle: str) -> dict:
        return _call(lambda: gateway.list_backends(handle), handle=handle)

    @app.post("/api/agents/{handle}/backends/{kind}")
    def configure_backend(handle: str, kind: str, payload: dict) -> dict:
        return _call(lambda: gateway.configure_backend(handle, kind, payload), handle=handle)

    @app.post("/api/agents/{handle}/active")
    def switch_backend(handle: str, payload: dict) -> dict:
        return _call(lambda: gateway.switch_backend(handle, payload), handle=handle)

    @app.post("/api/agents/{handle}/connection-test")
    def test_connection(handle: str) -> dict:
        return _call(lambda: gateway.test_connection(handle), handle=handle)

    @app.put("/api/agents/{handle}/filter")
    def set_filter(handle: str, payload: dict) -> dict:
        return _call(lambda: gateway.set_filter(handle, payload), handle=handle)

    @app.post("/api/agents/{handle}/requests")
    def process_request(handle: str, payload: dict) -> dict:
        return _call(lambda: gateway.process(handle, payload), handle=handle)

    @app.post("/api/agents/{handle}/operations/{operation}")
    def run_operation(handle: str, operation: str, payload: dict) -> dict:
        return _call(lambda: gateway.run_operation(handle, operation, payload), handle=handle)

    @app.post("/api/agents/{handle}/documents")
    def index_document(handle: str, payload: dict) -> dict:
        return _call(lambda: gateway.index_document(handle, payload), handle=handle)

    @app.get("/api/agents/{handle}/documents/search")
    def search_documents(handle: str, q: str) -> Any:
        return _call(lambda: gateway.search(handle, q), handle=handle)

    return app


app = create_app()
