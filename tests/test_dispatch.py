"""
Tests for the dispatch pipeline.
"""

import json

import pytest
from starlette.responses import Response

from blockops.dispatch import Dispatcher, DispatchRequest, build_response, error_response
from blockops.errors import BadRequestError, UnauthorizedError
from blockops.logging import StructuredLogger
from blockops.operations import Capability, Operation, OperationKind, OperationRegistry
from blockops.schema import ArgumentSpec, ArgumentType
from tests._testkit import ExplodingVerifier, StaticVerifier, make_runtime


def _body(response) -> dict:
    return json.loads(response.body)


def _dispatcher(*operations, **runtime_kwargs) -> Dispatcher:
    return Dispatcher(
        OperationRegistry(operations),
        make_runtime(**runtime_kwargs),
        logger=StructuredLogger("blockops.tests", json_output=False),
    )


async def _whoami(context):
    return {"email": context.identity.email, "authenticated": context.identity.authenticated}


async def _echo(context):
    return dict(context.arguments)


async def _explode(context):
    raise RuntimeError("database password is hunter2")


WHOAMI_PUBLIC = Operation("whoami", OperationKind.QUERY, "who am i", _whoami, auth_required=False)
WHOAMI_PRIVATE = Operation("whoamiStrict", OperationKind.QUERY, "who am i strictly", _whoami)
ECHO = Operation(
    "echo",
    OperationKind.COMMAND,
    "echo [count] [label]",
    _echo,
    arguments={
        "count": ArgumentSpec(ArgumentType.NUMBER),
        "label": ArgumentSpec(ArgumentType.STRING, default="none"),
    },
    auth_required=False,
)
LOOKUP = Operation(
    "lookup",
    OperationKind.QUERY,
    "lookup [key]",
    _echo,
    arguments={"key": ArgumentSpec(ArgumentType.STRING, default="k")},
    auth_required=False,
)


class TestIdentify:
    """Test the identity stage."""

    @pytest.mark.asyncio
    async def test_missing_header_rejected(self):
        dispatcher = _dispatcher(WHOAMI_PRIVATE)

        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict"))

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert _body(response)["error"] == "Missing or invalid authorization header"

    @pytest.mark.asyncio
    async def test_malformed_header_rejected(self):
        dispatcher = _dispatcher(WHOAMI_PRIVATE)
        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict", authorization="Basic abc"))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_rejected(self):
        dispatcher = _dispatcher(WHOAMI_PRIVATE)

        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict", authorization="Bearer nope"))

        assert response.status_code == 401
        assert _body(response)["code"] == "ERR_2002"

    @pytest.mark.asyncio
    async def test_no_verifier_rejects_required_auth(self):
        dispatcher = _dispatcher(WHOAMI_PRIVATE, with_issuer=False)

        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict", authorization="Bearer x"))

        assert response.status_code == 401
        assert _body(response)["error"] == "Authentication is not configured"

    @pytest.mark.asyncio
    async def test_valid_token_sets_identity(self, token):
        dispatcher = _dispatcher(WHOAMI_PRIVATE)

        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict", authorization=f"Bearer {token}"))

        assert response.status_code == 200
        assert _body(response) == {"email": "ada@example.com", "authenticated": True}

    @pytest.mark.asyncio
    async def test_optional_auth_is_best_effort(self):
        dispatcher = _dispatcher(WHOAMI_PUBLIC)

        anonymous = await dispatcher.dispatch(DispatchRequest("whoami"))
        bad = await dispatcher.dispatch(DispatchRequest("whoami", authorization="Bearer garbage"))

        assert _body(anonymous) == {"email": None, "authenticated": False}
        assert bad.status_code == 200
        assert _body(bad)["authenticated"] is False

    @pytest.mark.asyncio
    async def test_optional_auth_survives_verifier_failure(self):
        dispatcher = _dispatcher(WHOAMI_PUBLIC, verifier=ExplodingVerifier())

        response = await dispatcher.dispatch(DispatchRequest("whoami", authorization="Bearer anything"))

        assert response.status_code == 200
        assert _body(response)["authenticated"] is False

    @pytest.mark.asyncio
    async def test_custom_verifier(self):
        verifier = StaticVerifier({"abc": {"email": "grace@example.com"}})
        dispatcher = _dispatcher(WHOAMI_PRIVATE, verifier=verifier)

        response = await dispatcher.dispatch(DispatchRequest("whoamiStrict", authorization="Bearer abc"))

        assert _body(response)["email"] == "grace@example.com"


class TestCapabilityGate:
    @pytest.mark.asyncio
    async def test_missing_capability_is_503(self):
        operation = Operation(
            "streamy",
            OperationKind.QUERY,
            "streamy",
            _echo,
            auth_required=False,
            capabilities=frozenset({Capability.STREAM_STORE, Capability.WORKSPACE}),
        )
        dispatcher = _dispatcher(operation)

        response = await dispatcher.dispatch(DispatchRequest("streamy"))

        assert response.status_code == 503
        assert _body(response)["missing"] == ["stream-store", "workspace"]

    @pytest.mark.asyncio
    async def test_gate_runs_before_validation(self):
        operation = Operation(
            "needsArgs",
            OperationKind.COMMAND,
            "needs [thing]",
            _echo,
            auth_required=False,
            capabilities=frozenset({Capability.WORKSPACE}),
        )
        dispatcher = _dispatcher(operation)

        response = await dispatcher.dispatch(DispatchRequest("needsArgs", method="POST", body={}))

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_auth_runs_before_gate(self):
        operation = Operation(
            "private",
            OperationKind.QUERY,
            "private",
            _echo,
            capabilities=frozenset({Capability.WORKSPACE}),
        )
        dispatcher = _dispatcher(operation)

        response = await dispatcher.dispatch(DispatchRequest("private"))

        assert response.status_code == 401


class TestValidate:
    """Test the validation stage."""

    @pytest.mark.asyncio
    async def test_body_is_validated_and_coerced(self):
        dispatcher = _dispatcher(ECHO)

        response = await dispatcher.dispatch(DispatchRequest("echo", method="POST", body={"count": "3"}))

        assert response.status_code == 200
        assert _body(response) == {"count": 3, "label": "none"}

    @pytest.mark.asyncio
    async def test_validation_failure_is_400(self):
        dispatcher = _dispatcher(ECHO)

        response = await dispatcher.dispatch(DispatchRequest("echo", method="POST", body={}))
        payload = _body(response)

        assert response.status_code == 400
        assert payload["code"] == "ERR_1001"
        assert payload["error"] == "Validation failed: Missing required property: count"
        assert payload["errors"][0]["field"] == "count"

    @pytest.mark.asyncio
    async def test_invalid_json_code(self):
        operation = Operation(
            "ingest",
            OperationKind.COMMAND,
            "ingest [data]",
            _echo,
            arguments={"data": ArgumentSpec(ArgumentType.JSON, schema={"type": "object"})},
            auth_required=False,
        )
        dispatcher = _dispatcher(operation)

        response = await dispatcher.dispatch(DispatchRequest("ingest", method="POST", body={"data": "{oops"}))

        assert response.status_code == 400
        assert _body(response)["code"] == "ERR_1002"

    @pytest.mark.asyncio
    async def test_non_object_body_rejected(self):
        dispatcher = _dispatcher(ECHO)

        response = await dispatcher.dispatch(DispatchRequest("echo", method="POST", body=[1, 2]))

        assert response.status_code == 400
        assert _body(response)["error"] == "Request body must be an object"

    @pytest.mark.asyncio
    async def test_query_reads_only_declared_keys(self):
        dispatcher = _dispatcher(LOOKUP)

        response = await dispatcher.dispatch(DispatchRequest("lookup", query={"key": "v", "other": "x"}))

        assert _body(response) == {"key": "v"}

    @pytest.mark.asyncio
    async def test_query_is_idempotent(self):
        dispatcher = _dispatcher(LOOKUP)
        request = DispatchRequest("lookup", query={"key": "v"})

        first = await dispatcher.dispatch(request)
        second = await dispatcher.dispatch(request)

        assert first.body == second.body


class TestResolveAndExecute:
    @pytest.mark.asyncio
    async def test_unknown_operation_is_404(self):
        response = await _dispatcher().dispatch(DispatchRequest("nope"))

        assert response.status_code == 404
        assert _body(response)["error"] == "Unknown operation: nope"

    @pytest.mark.asyncio
    async def test_wrong_method_is_404(self):
        dispatcher = _dispatcher(ECHO, LOOKUP)

        assert (await dispatcher.dispatch(DispatchRequest("echo", method="GET"))).status_code == 404
        assert (await dispatcher.dispatch(DispatchRequest("lookup", method="POST"))).status_code == 404

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_generic_500(self):
        operation = Operation("explode", OperationKind.QUERY, "explode", _explode, auth_required=False)
        dispatcher = _dispatcher(operation)

        response = await dispatcher.dispatch(DispatchRequest("explode"))
        payload = _body(response)

        assert response.status_code == 500
        assert payload["kind"] == "internal"
        assert "hunter2" not in payload["error"]

    @pytest.mark.asyncio
    async def test_tagged_error_from_body_passes_through(self):
        async def reject(context):
            raise BadRequestError("No thanks")

        operation = Operation("reject", OperationKind.QUERY, "reject", reject, auth_required=False)

        response = await _dispatcher(operation).dispatch(DispatchRequest("reject"))

        assert response.status_code == 400
        assert _body(response)["error"] == "No thanks"

    @pytest.mark.asyncio
    async def test_sync_handler(self):
        operation = Operation("plain", OperationKind.QUERY, "plain", lambda context: "hello", auth_required=False)

        response = await _dispatcher(operation).dispatch(DispatchRequest("plain"))

        assert response.body == b"hello"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_unserializable_result_is_500(self):
        operation = Operation("odd", OperationKind.QUERY, "odd", lambda context: object(), auth_required=False)

        response = await _dispatcher(operation).dispatch(DispatchRequest("odd"))

        assert response.status_code == 500


class TestBuildResponse:
    def test_mappings(self):
        assert json.loads(build_response(None).body) == {"success": True}
        assert json.loads(build_response([1, 2]).body) == [1, 2]
        assert build_response(b"\x00\x01").media_type == "application/octet-stream"
        assert build_response("text").body == b"text"

    def test_response_passes_through(self):
        response = Response("x", media_type="application/javascript")
        assert build_response(response) is response

    def test_error_response_headers(self):
        assert error_response(UnauthorizedError("no")).headers["www-authenticate"] == "Bearer"
        assert "www-authenticate" not in error_response(BadRequestError("bad")).headers
