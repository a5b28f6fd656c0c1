from __future__ import annotations

import json
from typing import Any

import chevron
import markdown
from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from ..errors import BadRequestError
from ..operations import Operation, OperationContext, OperationKind
from ..schema import ArgumentSpec, ArgumentType

ANY_OBJECT = {"type": "object", "properties": {}, "additionalProperties": True}

WELCOME_TEMPLATE = (
    "Welcome, {{name}}! You have {{count}} new "
    "{{#isOne}}notification{{/isOne}}{{^isOne}}notifications{{/isOne}}. "
    "Your next meeting is at {{meetingTime}}."
)


def as_text(value: Any) -> str:
    """Render one extracted value the way a reporter block shows it."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def normalize_booleans(value: Any) -> Any:
    """Turn the block editor's ``"TRUE"``/``"FALSE"`` strings into booleans, recursively."""
    if value == "TRUE":
        return True
    if value == "FALSE":
        return False
    if isinstance(value, list):
        return [normalize_booleans(item) for item in value]
    if isinstance(value, dict):
        return {key: normalize_booleans(item) for key, item in value.items()}
    return value


async def get_array_length(context: OperationContext) -> str:
    return str(len(context.arguments["array"]))


async def extract_with_jsonpath(context: OperationContext) -> str:
    path = context.arguments["path"]
    try:
        expression = parse_jsonpath(path)
    except JSONPathError as exc:
        raise BadRequestError(f"Invalid JSONPath expression: {path}") from exc

    results = [match.value for match in expression.find(context.arguments["json"])]
    if not results:
        return ""
    if len(results) == 1:
        return as_text(results[0])
    return json.dumps(results, separators=(",", ":"), ensure_ascii=False)


async def render_template(context: OperationContext) -> str:
    data = normalize_booleans(context.arguments["data"])
    return chevron.render(context.arguments["template"], data)


async def markdown_to_html(context: OperationContext) -> str:
    text = context.arguments["markdown"]
    # Clients send JSON-encoded text; bare markdown is accepted too.
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = text
    return markdown.markdown(decoded if isinstance(decoded, str) else text)


def operations() -> list[Operation]:
    return [
        Operation(
            identifier="getArrayLength",
            kind=OperationKind.QUERY,
            template="length of array [array]",
            handler=get_array_length,
            arguments={
                "array": ArgumentSpec(
                    ArgumentType.JSON,
                    schema={"type": "array", "items": {}},
                    default='["apple","banana","cherry"]',
                    description="JSON array to measure",
                ),
            },
        ),
        Operation(
            identifier="extractWithJSONPath",
            kind=OperationKind.QUERY,
            template="extract from JSON [json] using JSONPath [path]",
            handler=extract_with_jsonpath,
            arguments={
                "json": ArgumentSpec(
                    ArgumentType.JSON,
                    schema=ANY_OBJECT,
                    default=json.dumps({"users": [{"email": "alice@example.com"}]}),
                    description="JSON object to extract from",
                ),
                "path": ArgumentSpec(
                    ArgumentType.STRING, default="$.users[0].email", description="JSONPath expression"
                ),
            },
        ),
        Operation(
            identifier="renderTemplate",
            kind=OperationKind.QUERY,
            template="render template [template] with data [data]",
            handler=render_template,
            arguments={
                "template": ArgumentSpec(
                    ArgumentType.STRING, default=WELCOME_TEMPLATE, description="Mustache template string"
                ),
                "data": ArgumentSpec(
                    ArgumentType.JSON,
                    schema=ANY_OBJECT,
                    default=json.dumps({"name": "Alice", "count": 1, "isOne": True, "meetingTime": "2:00 PM"}),
                    description="JSON object with template data",
                ),
            },
        ),
        Operation(
            identifier="markdownToHTML",
            kind=OperationKind.QUERY,
            template="Markdown to HTML from [markdown]",
            handler=markdown_to_html,
            arguments={
                "markdown": ArgumentSpec(
                    ArgumentType.STRING,
                    default=json.dumps(
                        "# Hello World\n\nThis is a **markdown** example with a [link](https://example.com)."
                    ),
                    description="JSON-encoded Markdown text to convert to HTML",
                ),
            },
        ),
    ]
