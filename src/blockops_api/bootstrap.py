"""
Composition root: turns ``Settings`` into the runtime collaborators.
"""

from __future__ import annotations

import logging

from blockops.auth import JwtTokenService
from blockops.config import Settings
from blockops.integrations import ResendClient, ResendDeliveryProfile, S2StreamStore, Workspace, WorkspaceDeliveryProfile
from blockops.mail import DeliveryProfile, EmailQueue
from blockops.runtime import Runtime

logger = logging.getLogger(__name__)


def build_delivery_profiles(settings: Settings, *, workspace: Workspace | None = None) -> list[DeliveryProfile]:
    profiles: list[DeliveryProfile] = []
    if workspace is not None:
        profiles.append(WorkspaceDeliveryProfile(workspace))
    if settings.email.resend_api_key:
        client = ResendClient(
            settings.email.resend_api_key,
            api_root=settings.email.resend_api_root,
            timeout=settings.email.timeout_seconds,
        )
        profiles.append(ResendDeliveryProfile(client))
    return profiles


def build_runtime(settings: Settings, *, workspace: Workspace | None = None) -> Runtime:
    token_service = JwtTokenService.from_config(settings.auth)
    if token_service is None:
        logger.warning("No JWT secret configured; authenticated operations will be rejected")

    email_queue = EmailQueue(
        build_delivery_profiles(settings, workspace=workspace),
        send_interval_ms=settings.email.send_interval_ms,
    )

    stream_store = None
    if settings.stream.enabled:
        stream_store = S2StreamStore(
            settings.stream.access_token,
            settings.stream.basin,
            endpoint=settings.stream.endpoint,
            source_host=settings.server.hosted_at or settings.server.org_name,
            timeout=settings.stream.timeout_seconds,
        )

    return Runtime(
        settings=settings,
        token_issuer=token_service,
        email_queue=email_queue,
        stream_store=stream_store,
        workspace=workspace,
    )
