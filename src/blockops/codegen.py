"""
Client script generation.

Renders the operation registry into one self-contained browser script for a
block-programming client. Each operation becomes a block in ``getInfo()``
and an async method that calls the HTTP surface with the bearer credential
baked in. Output is deterministic for an unchanged registry.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from .config import ServerConfig
from .operations import Operation, OperationKind, OperationRegistry
from .schema import ArgumentSpec, ArgumentType


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _js(value: Any) -> str:
    """A JavaScript literal for ``value``."""
    return json.dumps(value, ensure_ascii=False)


def extension_id_from_org(org_name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_$]", "", org_name or "")
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"Ext{cleaned}"
    return cleaned[0].upper() + cleaned[1:]


def resolve_base_url(request_host: str | None, *, hosted_at: str | None = None) -> str:
    """
    Public base URL the generated script calls back to.

    A configured ``hosted_at`` wins over the request host. Local hosts are
    addressed over http, everything else over https.
    """
    host = (hosted_at or request_host or "localhost").strip().rstrip("/")
    if host.startswith(("http://", "https://")):
        return host
    hostname = host.split(":", 1)[0]
    scheme = "http" if hostname in ("localhost", "127.0.0.1", "0.0.0.0") else "https"
    return f"{scheme}://{host}"


def default_from_schema(schema: Any) -> Any:
    """Example value shaped like ``schema``."""
    if not isinstance(schema, dict):
        return None
    if "default" in schema:
        return schema["default"]
    schema_type = schema.get("type")
    if schema_type == "object":
        properties = schema.get("properties") or {}
        return {name: default_from_schema(prop) for name, prop in properties.items()}
    if schema_type == "array":
        return []
    if schema_type == "string":
        return ""
    if schema_type in ("number", "integer"):
        return 0
    if schema_type == "boolean":
        return False
    return None


@dataclass(frozen=True)
class ClientArgument:
    name: str
    type: str
    default: Any = None

    def to_block(self) -> dict[str, Any]:
        block: dict[str, Any] = {"type": self.type}
        if self.default is not None:
            block["defaultValue"] = self.default
        return block


def client_argument(name: str, spec: ArgumentSpec) -> ClientArgument:
    if spec.type is ArgumentType.NUMBER:
        return ClientArgument(name, "number", spec.default)
    if spec.type is ArgumentType.BOOLEAN:
        return ClientArgument(name, "boolean", spec.default)
    if spec.type in (ArgumentType.ARRAY, ArgumentType.OBJECT, ArgumentType.JSON):
        if spec.default is None:
            if spec.type is ArgumentType.ARRAY:
                fallback: Any = []
            elif spec.type is ArgumentType.OBJECT:
                fallback = {}
            else:
                fallback = default_from_schema(spec.schema)
            return ClientArgument(name, "string", _compact(fallback))
        default = spec.default if isinstance(spec.default, str) else _compact(spec.default)
        return ClientArgument(name, "string", default)
    return ClientArgument(name, "string", spec.default)


def client_arguments(operation: Operation) -> list[ClientArgument]:
    """Flattened parameter list: structured arguments travel as JSON text."""
    return [client_argument(name, spec) for name, spec in operation.arguments.items()]


class ClientScriptGenerator:
    def __init__(self, *, extension_id: str, display_name: str | None = None) -> None:
        self.extension_id = extension_id
        self.display_name = display_name or extension_id

    @classmethod
    def from_config(cls, config: ServerConfig) -> ClientScriptGenerator:
        return cls(extension_id=extension_id_from_org(config.org_name), display_name=config.org_name)

    def block_info(self, operation: Operation) -> dict[str, Any]:
        return {
            "opcode": operation.identifier,
            "blockType": operation.kind.block_type,
            "text": operation.template,
            "arguments": {arg.name: arg.to_block() for arg in client_arguments(operation)},
        }

    def generate(self, registry: OperationRegistry, *, token: str, base_url: str) -> str:
        operations = registry.sorted_by_template()

        info = {
            "id": self.extension_id[0].lower() + self.extension_id[1:],
            "name": self.display_name,
            "blocks": [self.block_info(operation) for operation in operations],
        }
        info_json = json.dumps(info, indent=2, ensure_ascii=False).replace("\n", "\n    ")

        lines = [
            f"class {self.extension_id} {{",
            "  constructor() {}",
            "",
            "  getInfo() {",
            f"    return {info_json};",
            "  }",
        ]
        for operation in operations:
            lines.append("")
            lines.extend(self._method(operation, token=token, base_url=base_url.rstrip("/")))
        lines.extend(["}", "", f"Scratch.extensions.register(new {self.extension_id}());", ""])
        return "\n".join(lines)

    def _method(self, operation: Operation, *, token: str, base_url: str) -> list[str]:
        names = list(operation.arguments)
        params = f"{{ {', '.join(names)} }}" if names else ""
        url = _js(f"{base_url}/{operation.identifier}")
        auth_header = f'"Authorization": {_js(f"Bearer {token}")}'

        lines = [f"  async {operation.identifier}({params}) {{"]
        if operation.kind is OperationKind.QUERY:
            query = "".join(
                f' + "{"?" if index == 0 else "&"}{name}=" + encodeURIComponent({name} ?? "")'
                for index, name in enumerate(names)
            )
            lines += [
                f"    const response = await fetch({url}{query}, {{",
                '      method: "GET",',
                f"      headers: {{ {auth_header} }},",
                "    });",
            ]
        else:
            lines += [
                f"    const response = await fetch({url}, {{",
                '      method: "POST",',
                f'      headers: {{ {auth_header}, "Content-Type": "application/json" }},',
                f"      body: JSON.stringify({params or '{}'}),",
                "    });",
            ]
        lines += ["    return response.text();", "  }"]
        return lines


__all__ = [
    "ClientArgument",
    "ClientScriptGenerator",
    "client_argument",
    "client_arguments",
    "default_from_schema",
    "extension_id_from_org",
    "resolve_base_url",
]
