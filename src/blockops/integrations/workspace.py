from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from ..mail import QueuedEmail
from .resend import render_html


class Workspace(Protocol):
    """Mailbox/workspace account of the organisation (implemented externally)."""

    def domains(self) -> Iterable[str]: ...

    async def send_email(self, *, sender: str, to: str, subject: str, html_body: str) -> None: ...


class WorkspaceDeliveryProfile:
    """Sends mail through the workspace account for the domains it owns."""

    name = "workspace"

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def domains(self) -> list[str]:
        return [d.lower() for d in self._workspace.domains()]

    async def send(self, message: QueuedEmail) -> None:
        await self._workspace.send_email(
            sender=message.sender,
            to=message.to,
            subject=message.subject,
            html_body=render_html(message.content),
        )


__all__ = ["Workspace", "WorkspaceDeliveryProfile"]
