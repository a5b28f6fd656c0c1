from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..schema import ArgumentSpec, PLACEHOLDER_PATTERN, arguments_from_template

if TYPE_CHECKING:
    from ..runtime import Runtime
    from .registry import OperationRegistry

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
# Methods every generated client class defines itself.
RESERVED_IDENTIFIERS = frozenset({"constructor", "getInfo"})
# Words that cannot be bound as parameters inside a strict-mode class body.
RESERVED_WORDS = frozenset(
    {
        "arguments", "await", "break", "case", "catch", "class", "const", "continue", "debugger",
        "default", "delete", "do", "else", "enum", "eval", "export", "extends", "false", "finally",
        "for", "function", "if", "implements", "import", "in", "instanceof", "interface", "let",
        "new", "null", "package", "private", "protected", "public", "return", "static", "super",
        "switch", "this", "throw", "true", "try", "typeof", "var", "void", "while", "with", "yield",
    }
)


class OperationKind(str, Enum):
    COMMAND = "command"
    QUERY = "query"

    @property
    def http_method(self) -> str:
        return "GET" if self is OperationKind.QUERY else "POST"

    @property
    def block_type(self) -> str:
        return "reporter" if self is OperationKind.QUERY else "command"


class Capability(str, Enum):
    WORKSPACE = "workspace"
    EMAIL_DELIVERY = "email-delivery"
    STREAM_STORE = "stream-store"
    TOKEN_ISSUER = "token-issuer"


def capability_tag(value: Capability | str) -> str:
    return value.value if isinstance(value, Capability) else str(value)


OperationHandler = Callable[["OperationContext"], Any]


@dataclass(frozen=True, eq=False)
class Operation:
    """
    Immutable description of one callable operation.

    ``arguments`` defaults to a schema derived from the template's
    ``[placeholder]`` names. The registry replaces descriptors wholesale and
    never mutates them.
    """

    identifier: str
    kind: OperationKind
    template: str
    handler: OperationHandler = field(repr=False)
    arguments: Mapping[str, ArgumentSpec] | None = None
    auth_required: bool = True
    capabilities: frozenset[str] = frozenset()
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, OperationKind):
            object.__setattr__(self, "kind", OperationKind(self.kind))
        arguments = self.arguments if self.arguments is not None else arguments_from_template(self.template)
        object.__setattr__(self, "arguments", MappingProxyType(dict(arguments)))
        object.__setattr__(self, "capabilities", frozenset(capability_tag(c) for c in self.capabilities))

    @property
    def placeholders(self) -> list[str]:
        return [name.strip() for name in PLACEHOLDER_PATTERN.findall(self.template)]

    @property
    def http_method(self) -> str:
        return self.kind.http_method

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.http_method,
            "path": f"/{self.identifier}",
            "opcode": self.identifier,
            "blockType": self.kind.block_type,
            "text": self.template,
            "schema": {name: spec.to_dict() for name, spec in self.arguments.items()},
            "requiresAuth": self.auth_required,
            "capabilities": sorted(self.capabilities),
        }


@dataclass(frozen=True)
class Identity:
    email: str | None = None
    claims: Mapping[str, Any] = field(default_factory=dict)
    token: str | None = field(default=None, repr=False)

    @property
    def authenticated(self) -> bool:
        return bool(self.claims)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any], token: str) -> Identity:
        email = claims.get("email")
        return cls(email=email if isinstance(email, str) and email else None, claims=dict(claims), token=token)


ANONYMOUS = Identity()


@dataclass(frozen=True)
class OperationContext:
    """Everything an operation body receives for one invocation."""

    operation: Operation
    identity: Identity
    arguments: Mapping[str, Any]
    runtime: Runtime
    registry: OperationRegistry
    request_id: str
    request_host: str | None = None
