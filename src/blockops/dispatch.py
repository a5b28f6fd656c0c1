"""
Per-request dispatch pipeline.

Stages run strictly in order and any of them may end the request:

1. identify: bearer credential -> ``Identity``
2. capability gate: required capabilities present in the runtime
3. validate: arguments through the ``SchemaEngine``
4. execute: the operation body
5. respond: map the body's return value to a response

Failures are tagged ``BlockOpsError`` subclasses and become JSON error
responses with the error's status. ``Dispatcher.dispatch`` never raises.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, PlainTextResponse, Response

from .auth import extract_bearer_token
from .errors import (
    BadRequestError,
    BlockOpsError,
    ErrorCode,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from .logging import DispatchLog, StructuredLogger, Timer, generate_request_id, redact_token
from .operations import ANONYMOUS, Identity, Operation, OperationContext, OperationKind, OperationRegistry
from .runtime import Runtime
from .schema import FieldErrorCode, SchemaEngine


@dataclass(frozen=True)
class DispatchRequest:
    """Transport-neutral view of one inbound call."""

    identifier: str
    method: str = "GET"
    authorization: str | None = field(default=None, repr=False)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    host: str | None = None


def build_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if isinstance(result, (bytes, bytearray, memoryview)):
        return Response(bytes(result), media_type="application/octet-stream")
    if isinstance(result, str):
        return PlainTextResponse(result)
    if result is None:
        return JSONResponse({"success": True})
    return JSONResponse(jsonable_encoder(result))


def error_response(error: BlockOpsError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, UnauthorizedError) else None
    return JSONResponse(error.to_dict(), status_code=error.http_status, headers=headers)


class Dispatcher:
    def __init__(
        self,
        registry: OperationRegistry,
        runtime: Runtime,
        *,
        engine: SchemaEngine | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.registry = registry
        self.runtime = runtime
        self._engine = engine or SchemaEngine()
        self._logger = logger or StructuredLogger("blockops.dispatch", json_output=False)

    async def dispatch(self, request: DispatchRequest) -> Response:
        timer = Timer()
        request_id = generate_request_id()
        log = self._logger.bind(request_id=request_id, operation=request.identifier)
        identity = ANONYMOUS
        error_code = None
        try:
            operation = self._resolve(request)
            identity = await self._identify(operation, request, log)
            self._check_capabilities(operation)
            arguments = self._validate(operation, request)
            result = await self._execute(operation, identity, arguments, request, request_id, log)
            response = self._respond(result)
        except BlockOpsError as exc:
            error_code = exc.code.value
            response = error_response(exc)
        except Exception as exc:
            log.log_error(exc, f"Unexpected failure dispatching {request.identifier}")
            error = InternalError("Internal error", cause=exc)
            error_code = error.code.value
            response = error_response(error)

        log.log_dispatch(
            DispatchLog(
                request_id=request_id,
                operation=request.identifier,
                method=request.method.upper(),
                status=response.status_code,
                latency_ms=timer.stop(),
                identity=identity.email,
                error_code=error_code,
            )
        )
        return response

    def _resolve(self, request: DispatchRequest) -> Operation:
        operation = self.registry.require(request.identifier)
        if request.method.upper() != operation.http_method:
            raise NotFoundError(f"Operation {operation.identifier} does not accept {request.method.upper()} requests")
        return operation

    async def _identify(self, operation: Operation, request: DispatchRequest, log: StructuredLogger) -> Identity:
        token = extract_bearer_token(request.authorization)
        verifier = self.runtime.verifier

        if not operation.auth_required:
            if token is None or verifier is None:
                return ANONYMOUS
            try:
                claims = await verifier.verify(token)
            except Exception as exc:
                log.debug("Optional identification failed", token=redact_token(token), error=str(exc))
                return ANONYMOUS
            return Identity.from_claims(claims, token) if claims else ANONYMOUS

        if verifier is None:
            raise UnauthorizedError("Authentication is not configured", code=ErrorCode.AUTH_NOT_CONFIGURED)
        if token is None:
            raise UnauthorizedError("Missing or invalid authorization header")
        claims = await verifier.verify(token)
        if not claims:
            raise UnauthorizedError("Invalid or expired token", code=ErrorCode.INVALID_TOKEN)
        return Identity.from_claims(claims, token)

    def _check_capabilities(self, operation: Operation) -> None:
        available = self.runtime.capabilities
        missing = sorted(tag for tag in operation.capabilities if tag not in available)
        if missing:
            raise ServiceUnavailableError(
                f"Required capabilities not available: {', '.join(missing)}",
                missing=missing,
            )

    def _validate(self, operation: Operation, request: DispatchRequest) -> dict[str, Any]:
        if operation.kind is OperationKind.QUERY:
            raw = {name: request.query[name] for name in operation.arguments if name in request.query}
        elif request.body is None:
            raw = {}
        elif isinstance(request.body, Mapping):
            raw = request.body
        else:
            raise BadRequestError("Request body must be an object")

        result = self._engine.validate(operation.arguments, raw)
        if not result.valid:
            code = ErrorCode.VALIDATION_FAILED
            if any(error.code is FieldErrorCode.INVALID_JSON for error in result.errors):
                code = ErrorCode.INVALID_JSON
            raise BadRequestError(
                f"Validation failed: {'; '.join(result.messages)}",
                code=code,
                errors=[error.to_dict() for error in result.errors],
            )
        return result.data

    async def _execute(
        self,
        operation: Operation,
        identity: Identity,
        arguments: dict[str, Any],
        request: DispatchRequest,
        request_id: str,
        log: StructuredLogger,
    ) -> Any:
        context = OperationContext(
            operation=operation,
            identity=identity,
            arguments=arguments,
            runtime=self.runtime,
            registry=self.registry,
            request_id=request_id,
            request_host=request.host,
        )
        try:
            result = operation.handler(context)
            if inspect.isawaitable(result):
                result = await result
        except BlockOpsError:
            raise
        except Exception as exc:
            log.log_error(exc, f"Operation {operation.identifier} failed")
            raise InternalError(f"Operation {operation.identifier} failed", cause=exc) from exc
        return result

    def _respond(self, result: Any) -> Response:
        try:
            return build_response(result)
        except (TypeError, ValueError) as exc:
            raise InternalError("Operation result could not be serialized", cause=exc) from exc

