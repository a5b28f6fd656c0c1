"""
Resend transactional email adapter.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from ..mail import QueuedEmail

logger = logging.getLogger(__name__)


def render_html(content: str) -> str:
    """Plain-text content as a single HTML paragraph."""
    return f"<p>{html.escape(content).replace(chr(10), '<br>')}</p>"


class ResendClient:
    """Minimal async client for the Resend REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        api_root: str = "api.resend.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Resend API key cannot be empty")
        self._api_key = api_key
        self._base_url = api_root if api_root.startswith(("http://", "https://")) else f"https://{api_root}"
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._api_key}"},
                transport=self._transport,
            )
        return self._http_client

    async def list_domains(self) -> list[dict[str, Any]]:
        client = await self._get_http_client()
        response = await client.get("/domains")
        response.raise_for_status()
        payload = response.json()
        return list(payload.get("data") or []) if isinstance(payload, dict) else []

    async def send_email(self, *, sender: str, to: str, subject: str, html_body: str) -> dict[str, Any]:
        client = await self._get_http_client()
        response = await client.post(
            "/emails",
            json={"from": sender, "to": [to], "subject": subject, "html": html_body},
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class ResendDeliveryProfile:
    """Delivery profile for the domains verified in the Resend account."""

    name = "resend"

    def __init__(self, client: ResendClient, domains: Iterable[str] = ()) -> None:
        self._client = client
        self._domains = [d.lower() for d in domains]

    def domains(self) -> list[str]:
        return list(self._domains)

    async def refresh(self) -> list[str]:
        """Reload the verified sender domains from the API."""
        entries = await self._client.list_domains()
        self._domains = sorted(
            str(entry["name"]).lower()
            for entry in entries
            if isinstance(entry, dict) and entry.get("status") == "verified" and entry.get("name")
        )
        logger.info("Resend verified domains: %s", ", ".join(self._domains) or "none")
        return list(self._domains)

    async def send(self, message: QueuedEmail) -> None:
        await self._client.send_email(
            sender=message.sender,
            to=message.to,
            subject=message.subject,
            html_body=render_html(message.content),
        )

    async def start(self) -> None:
        try:
            await self.refresh()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not load Resend domains, keeping %d cached: %s", len(self._domains), exc)

    async def close(self) -> None:
        await self._client.close()


__all__ = ["ResendClient", "ResendDeliveryProfile", "render_html"]
