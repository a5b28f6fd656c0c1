from __future__ import annotations

from typing import Any

from ..codegen import resolve_base_url
from ..errors import BadRequestError, ServiceUnavailableError
from ..mail import QueuedEmail, sender_domain
from ..operations import Capability, Operation, OperationContext, OperationKind
from ..schema import ArgumentSpec, ArgumentType


async def get_user(context: OperationContext) -> dict[str, Any]:
    return {"email": context.identity.email or "Unknown"}


async def get_health(context: OperationContext) -> dict[str, Any]:
    runtime = context.runtime
    queue = runtime.email_queue
    return {
        "status": "ok",
        "capabilities": sorted(runtime.capabilities),
        "operations": len(context.registry),
        "emailQueue": {"queued": len(queue), "sending": queue.sending} if queue is not None else None,
    }


async def list_endpoints(context: OperationContext) -> list[dict[str, Any]]:
    return [operation.to_dict() for operation in context.registry.sorted_by_template()]


async def get_domains(context: OperationContext) -> list[str]:
    return context.runtime.email_queue.domains()


async def send_jwt(context: OperationContext) -> dict[str, Any]:
    """Email a fresh access token, only to addresses in an accepted domain."""
    runtime = context.runtime
    email = context.arguments["email"].strip()
    domain = sender_domain(email)
    queue = runtime.email_queue
    if domain not in queue.domains():
        raise BadRequestError(f"Email domain {domain} is not allowed")

    sender = runtime.settings.auth.token_sender or f"access@{domain}"
    profile = queue.route(sender)
    if profile is None:
        raise ServiceUnavailableError(f"No delivery profile accepts token sender {sender}")

    token = runtime.token_issuer.issue(email)
    base_url = resolve_base_url(context.request_host, hosted_at=runtime.settings.server.hosted_at)
    content = (
        f"Your access token:\n\n{token}\n\n"
        f"Load the block extension from {base_url}/extension/{token}.js"
    )
    await profile.send(QueuedEmail.create(sender, email, "Your access token", content))
    return {"success": True, "message": f"Access token sent to {email}"}


def operations() -> list[Operation]:
    return [
        Operation(
            identifier="getUser",
            kind=OperationKind.QUERY,
            template="current user email",
            handler=get_user,
        ),
        Operation(
            identifier="getHealth",
            kind=OperationKind.QUERY,
            template="service health",
            handler=get_health,
            auth_required=False,
        ),
        Operation(
            identifier="listEndpoints",
            kind=OperationKind.QUERY,
            template="list all endpoints",
            handler=list_endpoints,
            auth_required=False,
        ),
        Operation(
            identifier="getDomains",
            kind=OperationKind.QUERY,
            template="email sender domains",
            handler=get_domains,
            auth_required=False,
            capabilities=frozenset({Capability.EMAIL_DELIVERY}),
        ),
        Operation(
            identifier="sendJwt",
            kind=OperationKind.COMMAND,
            template="send access token to [email]",
            handler=send_jwt,
            arguments={
                "email": ArgumentSpec(ArgumentType.STRING, description="Address that receives the token"),
            },
            auth_required=False,
            capabilities=frozenset({Capability.EMAIL_DELIVERY, Capability.TOKEN_ISSUER}),
        ),
    ]
