from __future__ import annotations

import logging
from typing import Any

from .auth import JwtTokenService, TokenVerifier
from .config import Settings
from .integrations import StreamStore, Workspace
from .mail import EmailQueue
from .operations.types import Capability, capability_tag

logger = logging.getLogger(__name__)


class Runtime:
    """
    Handle to the collaborators a process actually initialized.

    Operation bodies receive it through their context. ``capabilities`` is
    derived from what is present, so the dispatch gate and health reporting
    never disagree.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        verifier: TokenVerifier | None = None,
        token_issuer: JwtTokenService | None = None,
        email_queue: EmailQueue | None = None,
        stream_store: StreamStore | None = None,
        workspace: Workspace | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.token_issuer = token_issuer
        self.verifier = verifier if verifier is not None else token_issuer
        self.email_queue = email_queue
        self.stream_store = stream_store
        self.workspace = workspace

    @property
    def capabilities(self) -> frozenset[str]:
        tags = set()
        if self.workspace is not None:
            tags.add(Capability.WORKSPACE.value)
        if self.email_queue is not None and self.email_queue.profiles:
            tags.add(Capability.EMAIL_DELIVERY.value)
        if self.stream_store is not None:
            tags.add(Capability.STREAM_STORE.value)
        if self.token_issuer is not None:
            tags.add(Capability.TOKEN_ISSUER.value)
        return frozenset(tags)

    def has_capability(self, tag: Capability | str) -> bool:
        return capability_tag(tag) in self.capabilities

    def _resources(self) -> list[Any]:
        resources: list[Any] = []
        if self.email_queue is not None:
            resources.extend(self.email_queue.profiles)
        if self.stream_store is not None:
            resources.append(self.stream_store)
        return resources

    async def start(self) -> None:
        for resource in self._resources():
            start = getattr(resource, "start", None)
            if start is not None:
                await start()
        logger.info("Runtime started with capabilities: %s", ", ".join(sorted(self.capabilities)) or "none")

    async def close(self) -> None:
        for resource in self._resources():
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
