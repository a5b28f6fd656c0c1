from __future__ import annotations

import json
from typing import Any

from ..operations import Capability, Operation, OperationContext, OperationKind
from ..schema import ArgumentSpec, ArgumentType

STREAM_STORE = frozenset({Capability.STREAM_STORE})

STREAM_NAME = ArgumentSpec(ArgumentType.STRING, default="demo", description="Name of the stream")


def parse_limit(value: Any, fallback: int) -> int:
    try:
        limit = int(str(value).strip())
    except ValueError:
        return fallback
    return limit if limit > 0 else fallback


async def create_stream(context: OperationContext) -> dict[str, Any]:
    result = await context.runtime.stream_store.create_stream(context.arguments["streamName"])
    return {"success": True, **result}


async def append_to_stream(context: OperationContext) -> dict[str, Any]:
    name = context.arguments["streamName"]
    await context.runtime.stream_store.append(name, context.arguments["data"])
    return {"success": True, "message": f"Data appended to stream {name}"}


async def read_from_stream(context: OperationContext) -> list[Any]:
    limit = parse_limit(context.arguments.get("limit"), 10)
    return await context.runtime.stream_store.read(context.arguments["streamName"], limit=limit)


async def check_stream_tail(context: OperationContext) -> list[Any]:
    limit = parse_limit(context.arguments.get("limit"), 5)
    return await context.runtime.stream_store.tail(context.arguments["streamName"], limit=limit)


async def read_from_stream_raw(context: OperationContext) -> list[dict[str, Any]]:
    limit = parse_limit(context.arguments.get("limit"), 10)
    return await context.runtime.stream_store.read_raw(context.arguments["streamName"], limit=limit)


async def check_stream_tail_raw(context: OperationContext) -> list[dict[str, Any]]:
    limit = parse_limit(context.arguments.get("limit"), 5)
    return await context.runtime.stream_store.tail_raw(context.arguments["streamName"], limit=limit)


def operations() -> list[Operation]:
    return [
        Operation(
            identifier="createStream",
            kind=OperationKind.COMMAND,
            template="create stream [streamName]",
            handler=create_stream,
            arguments={"streamName": STREAM_NAME},
            capabilities=STREAM_STORE,
        ),
        Operation(
            identifier="appendToStream",
            kind=OperationKind.COMMAND,
            template="append to stream [streamName] data [data]",
            handler=append_to_stream,
            arguments={
                "streamName": STREAM_NAME,
                "data": ArgumentSpec(
                    ArgumentType.JSON,
                    schema={"type": "object", "additionalProperties": True},
                    default=json.dumps({"event": "user_action", "action": "button_click"}),
                    description="Payload to append",
                ),
            },
            capabilities=STREAM_STORE,
        ),
        Operation(
            identifier="readFromStream",
            kind=OperationKind.QUERY,
            template="read from stream [streamName] limit [limit]",
            handler=read_from_stream,
            arguments={
                "streamName": STREAM_NAME,
                "limit": ArgumentSpec(ArgumentType.STRING, default="10", description="Maximum records to read"),
            },
            capabilities=STREAM_STORE,
        ),
        Operation(
            identifier="checkStreamTail",
            kind=OperationKind.QUERY,
            template="check tail of stream [streamName] limit [limit]",
            handler=check_stream_tail,
            arguments={
                "streamName": STREAM_NAME,
                "limit": ArgumentSpec(ArgumentType.STRING, default="5", description="Latest records to return"),
            },
            capabilities=STREAM_STORE,
        ),
        Operation(
            identifier="readFromStreamRaw",
            kind=OperationKind.QUERY,
            template="read raw from stream [streamName] limit [limit]",
            handler=read_from_stream_raw,
            arguments={
                "streamName": STREAM_NAME,
                "limit": ArgumentSpec(ArgumentType.STRING, default="10", description="Maximum records to read"),
            },
            capabilities=STREAM_STORE,
        ),
        Operation(
            identifier="checkStreamTailRaw",
            kind=OperationKind.QUERY,
            template="check raw tail of stream [streamName] limit [limit]",
            handler=check_stream_tail_raw,
            arguments={
                "streamName": STREAM_NAME,
                "limit": ArgumentSpec(ArgumentType.STRING, default="5", description="Latest records to return"),
            },
            capabilities=STREAM_STORE,
        ),
    ]
