"""
S2 stream store adapter.

Appended payloads are wrapped in CloudEvents 1.0 envelopes; reads unwrap
them so operations only ever see the payload.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from ..errors import NotFoundError

logger = logging.getLogger(__name__)


class StreamStore(Protocol):
    async def create_stream(self, name: str) -> dict[str, Any]: ...

    async def append(self, name: str, payload: Any) -> None: ...

    async def read(self, name: str, *, limit: int = 10, start: int = 0) -> list[Any]: ...

    async def tail(self, name: str, *, limit: int = 5) -> list[Any]: ...

    async def read_raw(self, name: str, *, limit: int = 10, start: int = 0) -> list[dict[str, Any]]: ...

    async def tail_raw(self, name: str, *, limit: int = 5) -> list[dict[str, Any]]: ...


def reversed_host(host: str) -> str:
    """``blocks.example.com`` -> ``com.example.blocks``."""
    domain = host.split("://", 1)[-1].split("/", 1)[0]
    return ".".join(reversed(domain.split(".")))


def wrap_event(payload: Any, *, stream: str, source_host: str) -> dict[str, Any]:
    prefix = reversed_host(source_host)
    return {
        "specversion": "1.0",
        "id": str(uuid.uuid4()),
        "source": f"{prefix}/{stream}",
        "type": f"{prefix}.{stream}",
        "time": datetime.now(timezone.utc).isoformat(),
        "datacontenttype": "application/json",
        "data": payload,
    }


def unwrap_event(body: str) -> Any:
    """Return the CloudEvent payload, or the raw body for non-event records."""
    try:
        event = json.loads(body)
    except (TypeError, ValueError):
        return body
    if isinstance(event, dict) and "specversion" in event:
        return event.get("data")
    return event


class S2StreamStore:
    def __init__(
        self,
        access_token: str,
        basin: str,
        *,
        endpoint: str | None = None,
        source_host: str = "blockops.local",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token or not basin:
            raise ValueError("S2 access token and basin are required")
        self.basin = basin
        self._access_token = access_token
        self._base_url = endpoint or f"https://{basin}.b.aws.s2.dev/v1"
        self._source_host = source_host
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._access_token}"},
                transport=self._transport,
            )
        return self._http_client

    @staticmethod
    def _records_path(name: str) -> str:
        return f"/streams/{quote(name, safe='')}/records"

    async def create_stream(self, name: str) -> dict[str, Any]:
        client = await self._get_http_client()
        response = await client.post("/streams", json={"stream": name})
        if response.status_code == 409:
            return {"created": False, "message": f"Stream {name} already exists in basin {self.basin}"}
        response.raise_for_status()
        logger.info("Created stream %s in basin %s", name, self.basin)
        return {"created": True, "message": f"Stream {name} created in basin {self.basin}"}

    async def append(self, name: str, payload: Any) -> None:
        event = wrap_event(payload, stream=name, source_host=self._source_host)
        client = await self._get_http_client()
        response = await client.post(self._records_path(name), json={"records": [{"body": json.dumps(event)}]})
        if response.status_code == 404:
            raise NotFoundError(f"Stream not found: {name}")
        response.raise_for_status()

    async def read_raw(self, name: str, *, limit: int = 10, start: int = 0) -> list[dict[str, Any]]:
        """Records as stored, CloudEvent envelope and sequence numbers included."""
        client = await self._get_http_client()
        response = await client.get(self._records_path(name), params={"seq_num": start, "count": limit})
        if response.status_code == 404:
            raise NotFoundError(f"Stream not found: {name}")
        response.raise_for_status()
        payload = response.json()
        records = payload.get("records")
        if records is None:
            records = (payload.get("batch") or {}).get("records") or []
        return list(records)

    async def read(self, name: str, *, limit: int = 10, start: int = 0) -> list[Any]:
        records = await self.read_raw(name, limit=limit, start=start)
        return [unwrap_event(record.get("body")) for record in records]

    async def tail_raw(self, name: str, *, limit: int = 5) -> list[dict[str, Any]]:
        client = await self._get_http_client()
        response = await client.get(f"{self._records_path(name)}/tail")
        if response.status_code == 404:
            raise NotFoundError(f"Stream not found: {name}")
        response.raise_for_status()
        payload = response.json()
        tail = payload.get("tail")
        next_seq = int(tail.get("seq_num", 0) if isinstance(tail, dict) else payload.get("next_seq_num", 0))
        if next_seq <= 0:
            return []
        return await self.read_raw(name, limit=limit, start=max(0, next_seq - limit))

    async def tail(self, name: str, *, limit: int = 5) -> list[Any]:
        records = await self.tail_raw(name, limit=limit)
        return [unwrap_event(record.get("body")) for record in records]

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


__all__ = ["StreamStore", "S2StreamStore", "wrap_event", "unwrap_event", "reversed_host"]
