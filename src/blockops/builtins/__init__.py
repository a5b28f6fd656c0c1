"""
Built-in operations.

``OPERATION_PROVIDERS`` is the static, ordered set of descriptor-producing
functions. Adding an operation module means adding its ``operations``
function here.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..operations import Operation, OperationRegistry
from . import core, data, email_queue, extension, streams

OperationProvider = Callable[[], Iterable[Operation]]

OPERATION_PROVIDERS: tuple[OperationProvider, ...] = (
    core.operations,
    email_queue.operations,
    data.operations,
    streams.operations,
    extension.operations,
)


def collect_operations(providers: Iterable[OperationProvider] = OPERATION_PROVIDERS) -> list[Operation]:
    return [operation for provider in providers for operation in provider()]


def build_registry(providers: Iterable[OperationProvider] = OPERATION_PROVIDERS) -> OperationRegistry:
    return OperationRegistry(collect_operations(providers))


def reload_registry(registry: OperationRegistry, providers: Iterable[OperationProvider] = OPERATION_PROVIDERS) -> None:
    """Rebuild every descriptor and swap them into ``registry`` at once."""
    registry.replace_all(collect_operations(providers))


__all__ = ["OPERATION_PROVIDERS", "OperationProvider", "build_registry", "collect_operations", "reload_registry"]
