"""
Tests for client script generation.
"""

import json

import pytest

from blockops.builtins import build_registry
from blockops.codegen import (
    ClientScriptGenerator,
    client_arguments,
    default_from_schema,
    extension_id_from_org,
    resolve_base_url,
)
from blockops.config import ServerConfig
from blockops.operations import Operation, OperationKind, OperationRegistry
from blockops.schema import ArgumentSpec, ArgumentType


async def _noop(context):
    return None


@pytest.fixture
def generator() -> ClientScriptGenerator:
    return ClientScriptGenerator(extension_id="AcmeBlocks", display_name="Acme Blocks")


def _info(script: str) -> dict:
    start = script.index("return ", script.index("getInfo()")) + len("return ")
    end = script.index(";\n  }", start)
    return json.loads(script[start:end])


class TestNaming:
    @pytest.mark.parametrize(
        "org,expected",
        [
            ("acme", "Acme"),
            ("acme-labs inc.", "Acmelabsinc"),
            ("42things", "Ext42things"),
            ("", "Ext"),
        ],
    )
    def test_extension_id_from_org(self, org, expected):
        assert extension_id_from_org(org) == expected

    def test_from_config(self):
        generator = ClientScriptGenerator.from_config(ServerConfig(org_name="acme"))
        assert generator.extension_id == "Acme"
        assert generator.display_name == "acme"


class TestBaseUrl:
    def test_local_hosts_use_http(self):
        assert resolve_base_url("localhost:3000") == "http://localhost:3000"
        assert resolve_base_url("127.0.0.1:8080") == "http://127.0.0.1:8080"

    def test_public_hosts_use_https(self):
        assert resolve_base_url("blocks.example.com") == "https://blocks.example.com"

    def test_hosted_at_wins(self):
        assert resolve_base_url("localhost:3000", hosted_at="blocks.example.com/") == "https://blocks.example.com"
        assert resolve_base_url(None, hosted_at="http://internal:9000") == "http://internal:9000"


class TestArgumentFlattening:
    def test_structured_arguments_become_json_strings(self):
        operation = Operation(
            "mixed",
            OperationKind.COMMAND,
            "mixed [n] [flag] [ids] [data]",
            _noop,
            arguments={
                "n": ArgumentSpec(ArgumentType.NUMBER, default=5),
                "flag": ArgumentSpec(ArgumentType.BOOLEAN),
                "ids": ArgumentSpec(ArgumentType.ARRAY),
                "data": ArgumentSpec(
                    ArgumentType.JSON,
                    schema={"type": "object", "properties": {"name": {"type": "string"}, "age": {"type": "integer"}}},
                ),
            },
        )

        flattened = {arg.name: arg for arg in client_arguments(operation)}

        assert flattened["n"].to_block() == {"type": "number", "defaultValue": 5}
        assert flattened["flag"].to_block() == {"type": "boolean"}
        assert flattened["ids"].to_block() == {"type": "string", "defaultValue": "[]"}
        assert flattened["data"].default == '{"name":"","age":0}'

    def test_structured_default_is_compacted(self):
        operation = Operation(
            "obj",
            OperationKind.COMMAND,
            "obj [data]",
            _noop,
            arguments={"data": ArgumentSpec(ArgumentType.OBJECT, default={"a": [1, 2]})},
        )

        assert client_arguments(operation)[0].default == '{"a":[1,2]}'

    def test_default_from_schema(self):
        assert default_from_schema({"type": "array"}) == []
        assert default_from_schema({"type": "string", "default": "x"}) == "x"
        assert default_from_schema("not a schema") is None


class TestGenerate:
    """Test full script output."""

    def test_blocks_sorted_by_template(self, generator):
        registry = OperationRegistry(
            [
                Operation("second", OperationKind.QUERY, "b operation", _noop),
                Operation("first", OperationKind.QUERY, "a operation", _noop),
            ]
        )

        script = generator.generate(registry, token="tok", base_url="https://blocks.example.com")

        assert script.index("a operation") < script.index("b operation")
        assert script.index("async first(") < script.index("async second(")
        assert [block["opcode"] for block in _info(script)["blocks"]] == ["first", "second"]

    def test_deterministic(self, generator):
        registry = build_registry()

        first = generator.generate(registry, token="tok", base_url="https://blocks.example.com")
        second = generator.generate(registry, token="tok", base_url="https://blocks.example.com")

        assert first == second

    def test_every_operation_has_a_method(self, generator):
        registry = build_registry()

        script = generator.generate(registry, token="tok", base_url="https://blocks.example.com")

        for operation in registry:
            assert f"async {operation.identifier}(" in script
        assert script.startswith("class AcmeBlocks {")
        assert script.rstrip().endswith("Scratch.extensions.register(new AcmeBlocks());")

    def test_info_header(self, generator):
        script = generator.generate(OperationRegistry(), token="tok", base_url="https://x.example.com")

        info = _info(script)

        assert info["id"] == "acmeBlocks"
        assert info["name"] == "Acme Blocks"
        assert info["blocks"] == []

    def test_query_method_builds_query_string(self, generator):
        registry = OperationRegistry(
            [Operation("read", OperationKind.QUERY, "read [streamName] limit [limit]", _noop)]
        )

        script = generator.generate(registry, token="tok", base_url="https://x.example.com/")

        assert "async read({ streamName, limit }) {" in script
        assert (
            'fetch("https://x.example.com/read" + "?streamName=" + encodeURIComponent(streamName ?? "")'
            ' + "&limit=" + encodeURIComponent(limit ?? ""), {'
        ) in script
        assert 'method: "GET"' in script
        assert '"Authorization": "Bearer tok"' in script

    def test_command_method_posts_json(self, generator):
        registry = OperationRegistry(
            [
                Operation("send", OperationKind.COMMAND, "send [to]", _noop),
                Operation("clear", OperationKind.COMMAND, "clear all", _noop),
            ]
        )

        script = generator.generate(registry, token="tok", base_url="https://x.example.com")

        assert 'method: "POST"' in script
        assert "body: JSON.stringify({ to })," in script
        assert "body: JSON.stringify({})," in script
        assert '"Content-Type": "application/json"' in script

    def test_block_types(self, generator):
        registry = OperationRegistry(
            [
                Operation("q", OperationKind.QUERY, "a query", _noop),
                Operation("c", OperationKind.COMMAND, "b command", _noop),
            ]
        )

        blocks = _info(generator.generate(registry, token="t", base_url="https://x.example.com"))["blocks"]

        assert [block["blockType"] for block in blocks] == ["reporter", "command"]
        assert blocks[0]["text"] == "a query"
