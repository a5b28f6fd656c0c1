"""
Shared fixtures for blockops tests.

Fakes live in ``tests._testkit``; this module only wires them into
fixtures for the dispatcher, registry and runtime.
"""

from __future__ import annotations

import pytest

from blockops.auth import JwtTokenService
from blockops.builtins import build_registry
from blockops.dispatch import Dispatcher, DispatchRequest
from blockops.logging import StructuredLogger
from blockops.operations import OperationRegistry
from blockops.runtime import Runtime
from tests._testkit import SECRET, MemoryStreamStore, RecordingProfile, make_runtime


@pytest.fixture
def token_service() -> JwtTokenService:
    return JwtTokenService(SECRET)


@pytest.fixture
def token(token_service: JwtTokenService) -> str:
    return token_service.issue("ada@example.com")


@pytest.fixture
def auth_header(token: str) -> str:
    return f"Bearer {token}"


@pytest.fixture
def profile() -> RecordingProfile:
    return RecordingProfile(["example.com"])


@pytest.fixture
def stream_store() -> MemoryStreamStore:
    return MemoryStreamStore()


@pytest.fixture
def runtime(profile: RecordingProfile, stream_store: MemoryStreamStore) -> Runtime:
    return make_runtime(profiles=[profile], stream_store=stream_store)


@pytest.fixture
def registry() -> OperationRegistry:
    return build_registry()


@pytest.fixture
def dispatcher(registry: OperationRegistry, runtime: Runtime) -> Dispatcher:
    return Dispatcher(registry, runtime, logger=StructuredLogger("blockops.tests", json_output=False))


@pytest.fixture
def call(dispatcher: Dispatcher, auth_header: str):
    """Dispatch helper: ``await call("getUser")`` or ``await call("queueEmail", body={...})``."""

    async def _call(identifier: str, *, method: str | None = None, query=None, body=None, authorization=..., host=None):
        if method is None:
            operation = dispatcher.registry.get(identifier)
            method = operation.http_method if operation is not None else "GET"
        return await dispatcher.dispatch(
            DispatchRequest(
                identifier=identifier,
                method=method,
                authorization=auth_header if authorization is ... else authorization,
                query=query or {},
                body=body,
                host=host,
            )
        )

    return _call
