"""
In-memory outbound email queue.

Messages are routed by sender domain to the first delivery profile that
accepts it. ``send`` is single-flight process-wide: it works on a snapshot of
its target messages, calls providers strictly one after another under an
``IntervalLimiter``, and removes a message only after its provider call
succeeded.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..errors import AlreadyInProgressError, BadRequestError
from .profiles import DeliveryProfile, profile_name, sender_domain
from .rate_limit import IntervalLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedEmail:
    id: str
    sender: str
    to: str
    subject: str
    content: str
    queued_at: int

    @classmethod
    def create(cls, sender: str, to: str, subject: str, content: str) -> QueuedEmail:
        return cls(
            id=str(uuid.uuid4()),
            sender=sender,
            to=to,
            subject=subject,
            content=content,
            queued_at=int(time.time() * 1000),
        )

    @property
    def sender_domain(self) -> str:
        return sender_domain(self.sender)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "content": self.content,
            "queuedAt": self.queued_at,
        }


@dataclass
class SendResult:
    sent: int
    errors: int
    message: str
    failures: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def summarize(cls, sent: int, failures: list[dict[str, str]]) -> SendResult:
        message = f"Sent {sent} email(s)"
        if failures:
            message += f", {len(failures)} error(s)"
        return cls(sent=sent, errors=len(failures), message=message, failures=failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "sent": self.sent,
            "errors": self.errors,
            "message": self.message,
            "failures": list(self.failures),
        }


class EmailQueue:
    """
    FIFO of pending outbound messages.

    Example:
        ```python
        queue = EmailQueue([resend_profile], send_interval_ms=100)
        queue.add("team@example.com", "ada@example.org", "Hi", "Hello there")
        result = await queue.send()
        ```
    """

    def __init__(
        self,
        profiles: Iterable[DeliveryProfile] = (),
        *,
        send_interval_ms: int = 100,
        limiter: IntervalLimiter | None = None,
    ) -> None:
        self._profiles: list[DeliveryProfile] = list(profiles)
        self._limiter = limiter or IntervalLimiter(send_interval_ms)
        self._messages: list[QueuedEmail] = []
        self._sending = False

    @property
    def profiles(self) -> tuple[DeliveryProfile, ...]:
        return tuple(self._profiles)

    def add_profile(self, profile: DeliveryProfile) -> None:
        self._profiles.append(profile)

    @property
    def sending(self) -> bool:
        return self._sending

    def route(self, sender: str) -> DeliveryProfile | None:
        domain = sender_domain(sender)
        for profile in self._profiles:
            if domain in {d.lower() for d in profile.domains()}:
                return profile
        return None

    def domains(self) -> list[str]:
        """Sorted union of the sender domains all profiles accept right now."""
        return sorted({d.lower() for profile in self._profiles for d in profile.domains()})

    def add(self, sender: str, to: str, subject: str, content: str) -> QueuedEmail:
        sender_domain(to)
        if self.route(sender) is None:
            domain = sender_domain(sender)
            raise BadRequestError(
                f"Unrecognized sender domain: {domain}. Accepted domains: {', '.join(self.domains()) or 'none'}"
            )
        message = QueuedEmail.create(sender, to, subject, content)
        self._messages.append(message)
        logger.info("Queued email %s from %s to %s", message.id, sender, to)
        return message

    async def send(self, ids: Iterable[str] | None = None) -> SendResult:
        """
        Deliver all queued messages, or only those whose id is in ``ids``.

        Raises:
            AlreadyInProgressError: Another ``send`` is still running.
        """
        if self._sending:
            raise AlreadyInProgressError("Email sending already in progress")
        self._sending = True
        try:
            if ids is None:
                batch = list(self._messages)
            else:
                wanted = set(ids)
                batch = [message for message in self._messages if message.id in wanted]
            if not batch:
                return SendResult(sent=0, errors=0, message="No emails to send")

            sent = 0
            failures: list[dict[str, str]] = []
            for message in batch:
                reason = await self._deliver(message)
                if reason is None:
                    sent += 1
                    self._discard(message.id)
                else:
                    failures.append({"id": message.id, "reason": reason})
            logger.info("Email send finished: %d sent, %d failed", sent, len(failures))
            return SendResult.summarize(sent, failures)
        finally:
            self._sending = False

    async def _deliver(self, message: QueuedEmail) -> str | None:
        """Return None on success, else the failure reason."""
        profile = self.route(message.sender)
        if profile is None:
            logger.error(
                "No delivery profile accepts sender domain %s; email %s stays queued",
                message.sender_domain,
                message.id,
            )
            return f"Unroutable sender domain: {message.sender_domain}"
        try:
            async with self._limiter.limit():
                await profile.send(message)
        except Exception as exc:
            logger.warning(
                "Failed to send email %s via %s: %s", message.id, profile_name(profile), exc, exc_info=True
            )
            return str(exc) or type(exc).__name__
        return None

    def _discard(self, message_id: str) -> None:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index]
                return

    def remove_by_ids(self, ids: Iterable[str]) -> int:
        wanted = set(ids)
        before = len(self._messages)
        self._messages = [message for message in self._messages if message.id not in wanted]
        return before - len(self._messages)

    def clear(self) -> int:
        count = len(self._messages)
        self._messages = []
        return count

    def get_all(self) -> list[QueuedEmail]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


__all__ = ["QueuedEmail", "SendResult", "EmailQueue"]
