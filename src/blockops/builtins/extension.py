from __future__ import annotations

from starlette.responses import Response

from ..codegen import ClientScriptGenerator, resolve_base_url
from ..errors import BadRequestError, ErrorCode, UnauthorizedError
from ..operations import Operation, OperationContext, OperationKind
from ..schema import ArgumentSpec, ArgumentType


async def extension_source(context: OperationContext) -> Response:
    """Client script with the caller's token baked into every call."""
    runtime = context.runtime
    token = context.arguments["jwt"]
    if runtime.verifier is None:
        raise UnauthorizedError("Authentication is not configured", code=ErrorCode.AUTH_NOT_CONFIGURED)
    claims = await runtime.verifier.verify(token)
    if not claims:
        raise UnauthorizedError("Invalid or expired token", code=ErrorCode.INVALID_TOKEN)
    if not claims.get("email"):
        raise BadRequestError("Token does not carry an email claim")

    generator = ClientScriptGenerator.from_config(runtime.settings.server)
    base_url = resolve_base_url(context.request_host, hosted_at=runtime.settings.server.hosted_at)
    script = generator.generate(context.registry, token=token, base_url=base_url)
    return Response(script, media_type="application/javascript")


def operations() -> list[Operation]:
    return [
        Operation(
            identifier="extension",
            kind=OperationKind.QUERY,
            template="extension source with JWT [jwt]",
            handler=extension_source,
            arguments={"jwt": ArgumentSpec(ArgumentType.STRING, description="Access token to embed")},
            auth_required=False,
        ),
    ]
