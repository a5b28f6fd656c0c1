from __future__ import annotations

from typing import Any

from ..errors import BadRequestError
from ..operations import Capability, Operation, OperationContext, OperationKind
from ..schema import ArgumentSpec, ArgumentType

EMAIL_DELIVERY = frozenset({Capability.EMAIL_DELIVERY})

IDS_ARGUMENT = ArgumentSpec(
    ArgumentType.ARRAY,
    schema={"type": "array", "items": {"type": "string"}},
    description="Ids of queued emails",
    required=True,
)


def _ids(context: OperationContext) -> list[str]:
    ids = context.arguments["ids"]
    if not ids:
        raise BadRequestError("Invalid or empty ids array")
    return ids


async def queue_email(context: OperationContext) -> dict[str, Any]:
    arguments = context.arguments
    to = arguments.get("to") or context.identity.email
    if not to:
        raise BadRequestError("No recipient given and the caller has no email")
    message = context.runtime.email_queue.add(arguments["from"], to, arguments["subject"], arguments["content"])
    return {"success": True, "email": message.to_dict()}


async def get_email_queue(context: OperationContext) -> list[dict[str, Any]]:
    return [message.to_dict() for message in context.runtime.email_queue.get_all()]


async def clear_email_queue(context: OperationContext) -> dict[str, Any]:
    cleared = context.runtime.email_queue.clear()
    return {"success": True, "cleared": cleared, "message": f"Cleared {cleared} email(s)"}


async def send_all_emails(context: OperationContext) -> dict[str, Any]:
    result = await context.runtime.email_queue.send()
    return result.to_dict()


async def send_selected_emails(context: OperationContext) -> dict[str, Any]:
    result = await context.runtime.email_queue.send(_ids(context))
    return result.to_dict()


async def remove_emails(context: OperationContext) -> dict[str, Any]:
    removed = context.runtime.email_queue.remove_by_ids(_ids(context))
    return {"success": True, "removed": removed, "message": f"Removed {removed} email(s)"}


def operations() -> list[Operation]:
    return [
        Operation(
            identifier="queueEmail",
            kind=OperationKind.COMMAND,
            template="add email to queue from [from] to [to] subject [subject] content [content]",
            handler=queue_email,
            arguments={
                "from": ArgumentSpec(ArgumentType.STRING, description="Sender address"),
                "to": ArgumentSpec(ArgumentType.STRING, required=False, description="Recipient, defaults to the caller"),
                "subject": ArgumentSpec(ArgumentType.STRING, default="Hello from blocks"),
                "content": ArgumentSpec(ArgumentType.STRING, default="This email was queued from a block."),
            },
            capabilities=EMAIL_DELIVERY,
        ),
        Operation(
            identifier="getEmailQueue",
            kind=OperationKind.QUERY,
            template="queued emails",
            handler=get_email_queue,
            capabilities=EMAIL_DELIVERY,
        ),
        Operation(
            identifier="clearEmailQueue",
            kind=OperationKind.COMMAND,
            template="clear all queued emails",
            handler=clear_email_queue,
            capabilities=EMAIL_DELIVERY,
        ),
        Operation(
            identifier="sendAllEmails",
            kind=OperationKind.COMMAND,
            template="send all queued emails",
            handler=send_all_emails,
            capabilities=EMAIL_DELIVERY,
        ),
        Operation(
            identifier="sendSelectedEmails",
            kind=OperationKind.COMMAND,
            template="send selected queued emails [ids]",
            handler=send_selected_emails,
            arguments={"ids": IDS_ARGUMENT},
            capabilities=EMAIL_DELIVERY,
        ),
        Operation(
            identifier="removeEmails",
            kind=OperationKind.COMMAND,
            template="remove queued emails [ids]",
            handler=remove_emails,
            arguments={"ids": IDS_ARGUMENT},
            capabilities=EMAIL_DELIVERY,
        ),
    ]
