from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..errors import BadRequestError

if TYPE_CHECKING:
    from .queue import QueuedEmail


@runtime_checkable
class DeliveryProfile(Protocol):
    """
    Routing target for outbound email.

    ``domains()`` is queried on every routing decision, so a profile may
    change the sender domains it accepts at runtime. ``send`` raises on
    failure.
    """

    name: str

    def domains(self) -> Iterable[str]: ...

    async def send(self, message: QueuedEmail) -> None: ...


def sender_domain(address: str) -> str:
    """Return the lower-cased domain of ``address`` (``Name <a@b>`` accepted)."""
    value = (address or "").strip()
    if value.endswith(">") and "<" in value:
        value = value[value.rindex("<") + 1 : -1].strip()
    local, sep, domain = value.rpartition("@")
    if not sep or not local or not domain or "." not in domain:
        raise BadRequestError(f"Invalid email address: {address}")
    return domain.lower()


def profile_name(profile: DeliveryProfile) -> str:
    return getattr(profile, "name", None) or type(profile).__name__


__all__ = ["DeliveryProfile", "sender_domain", "profile_name"]
