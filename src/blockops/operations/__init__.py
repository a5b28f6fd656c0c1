from .registry import OperationRegistry, template_sort_key, validate_operation
from .types import (
    ANONYMOUS,
    IDENTIFIER_PATTERN,
    RESERVED_IDENTIFIERS,
    RESERVED_WORDS,
    Capability,
    Identity,
    Operation,
    OperationContext,
    OperationHandler,
    OperationKind,
    capability_tag,
)

__all__ = [
    "ANONYMOUS",
    "IDENTIFIER_PATTERN",
    "RESERVED_IDENTIFIERS",
    "RESERVED_WORDS",
    "Capability",
    "Identity",
    "Operation",
    "OperationContext",
    "OperationHandler",
    "OperationKind",
    "OperationRegistry",
    "capability_tag",
    "template_sort_key",
    "validate_operation",
]
