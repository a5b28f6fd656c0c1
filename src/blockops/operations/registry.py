from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ..errors import NotFoundError
from ..schema import ArgumentType, check_nested_schema
from .types import IDENTIFIER_PATTERN, RESERVED_IDENTIFIERS, RESERVED_WORDS, Operation

logger = logging.getLogger(__name__)


def template_sort_key(operation: Operation) -> tuple[str, str, str]:
    return (operation.template.casefold(), operation.template, operation.identifier)


def validate_operation(operation: Operation) -> None:
    """Reject descriptors that could only fail at request time."""
    if not IDENTIFIER_PATTERN.match(operation.identifier):
        raise ValueError(f"operation identifier is not a valid script identifier: {operation.identifier!r}")
    if operation.identifier in RESERVED_IDENTIFIERS:
        raise ValueError(f"operation identifier is reserved: {operation.identifier}")
    if not callable(operation.handler):
        raise ValueError(f"operation {operation.identifier} has no callable handler")
    for name, spec in operation.arguments.items():
        if not IDENTIFIER_PATTERN.match(name):
            raise ValueError(f"operation {operation.identifier}: invalid argument name {name!r}")
        if name in RESERVED_WORDS:
            raise ValueError(f"operation {operation.identifier}: argument name {name!r} is a reserved word")
        if spec.schema is not None:
            check_nested_schema(spec.schema)
        if spec.type is ArgumentType.ANY:
            raise ValueError(f"operation {operation.identifier}: argument {name} needs a concrete type")


class OperationRegistry:
    """
    Index of operation descriptors by identifier.

    The registry is constructed by the composition root and passed to the
    dispatcher and the client generator. Re-registration replaces a
    descriptor wholesale; ``replace_all`` swaps the whole index at once.
    """

    def __init__(self, operations: Iterable[Operation] | None = None) -> None:
        self._operations: dict[str, Operation] = {}
        for operation in operations or ():
            self.register(operation)

    def register(self, operation: Operation, *, replace: bool = False) -> OperationRegistry:
        validate_operation(operation)
        if operation.identifier in self._operations and not replace:
            raise ValueError(f"operation already registered: {operation.identifier}")
        operations = dict(self._operations)
        operations[operation.identifier] = operation
        self._operations = operations
        return self

    def unregister(self, identifier: str) -> bool:
        if identifier not in self._operations:
            return False
        operations = dict(self._operations)
        del operations[identifier]
        self._operations = operations
        return True

    def replace_all(self, operations: Iterable[Operation]) -> None:
        """Swap the full index; readers see either the old or the new set."""
        fresh: dict[str, Operation] = {}
        for operation in operations:
            validate_operation(operation)
            if operation.identifier in fresh:
                raise ValueError(f"duplicate operation identifier: {operation.identifier}")
            fresh[operation.identifier] = operation
        self._operations = fresh
        logger.info("Operation registry reloaded with %d operations", len(fresh))

    def get(self, identifier: str) -> Operation | None:
        return self._operations.get(identifier)

    def require(self, identifier: str) -> Operation:
        operation = self._operations.get(identifier)
        if operation is None:
            raise NotFoundError(f"Unknown operation: {identifier}")
        return operation

    def list(self) -> list[Operation]:
        """Descriptors in registration order."""
        return list(self._operations.values())

    def sorted_by_template(self) -> list[Operation]:
        return sorted(self._operations.values(), key=template_sort_key)

    @property
    def identifiers(self) -> list[str]:
        return list(self._operations)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(list(self._operations.values()))
