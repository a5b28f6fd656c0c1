from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import Response
from pydantic import BaseModel

from blockops import __version__
from blockops.builtins import build_registry
from blockops.config import Settings, get_settings
from blockops.dispatch import Dispatcher, DispatchRequest, error_response
from blockops.errors import BadRequestError, BlockOpsError
from blockops.logging import configure_logging
from blockops.operations import OperationRegistry
from blockops.runtime import Runtime

from .bootstrap import build_runtime


class HealthResponse(BaseModel):
    status: str
    version: str
    capabilities: list[str]
    operations: int


async def read_body(request: Request) -> Any:
    """Parse a command body: JSON, or url-encoded form fields."""
    raw = await request.body()
    if not raw.strip():
        return None
    content_type = request.headers.get("content-type", "")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BadRequestError("Request body is not valid UTF-8") from exc
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(text, keep_blank_values=True))
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise BadRequestError(f"Malformed JSON body: {exc.msg}") from exc
    except RecursionError as exc:
        raise BadRequestError("Malformed JSON body: nested too deeply") from exc


async def to_dispatch_request(identifier: str, request: Request) -> DispatchRequest:
    body = await read_body(request) if request.method == "POST" else None
    return DispatchRequest(
        identifier=identifier,
        method=request.method,
        authorization=request.headers.get("authorization"),
        query=dict(request.query_params),
        body=body,
        host=request.headers.get("host"),
    )


def create_app(
    settings: Settings | None = None,
    *,
    runtime: Runtime | None = None,
    registry: OperationRegistry | None = None,
) -> FastAPI:
    settings = settings or (runtime.settings if runtime is not None else get_settings())
    runtime = runtime or build_runtime(settings)
    registry = registry or build_registry()
    dispatcher = Dispatcher(registry, runtime, logger=configure_logging(settings.logging))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await runtime.start()
        try:
            yield
        finally:
            await runtime.close()

    app = FastAPI(title="blockops", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.runtime = runtime
    app.state.registry = registry
    app.state.dispatcher = dispatcher

    @app.exception_handler(BlockOpsError)
    async def blockops_error_handler(request: Request, exc: BlockOpsError) -> Response:
        return error_response(exc)

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(
            status="ok",
            version=__version__,
            capabilities=sorted(runtime.capabilities),
            operations=len(registry),
        )

    @app.get("/extension/{token}.js")
    async def extension_script(token: str, request: Request) -> Response:
        return await dispatcher.dispatch(
            DispatchRequest(
                identifier="extension",
                method="GET",
                query={"jwt": token},
                host=request.headers.get("host"),
            )
        )

    @app.api_route("/{identifier}", methods=["GET", "POST"])
    async def operation(identifier: str, request: Request) -> Response:
        return await dispatcher.dispatch(await to_dispatch_request(identifier, request))

    return app


app = create_app()
