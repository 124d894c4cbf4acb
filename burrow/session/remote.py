from abc import ABC, abstractmethod

import httpx

from burrow.session.models import Session
from burrow.session.store import safe_key
from burrow.types import Message


class RemoteSessionStore(ABC):
    """Optional mirror consulted before the local cache on load."""

    @abstractmethod
    async def load_session(self, session_key: str) -> Session | None: ...

    @abstractmethod
    async def append_message(self, session_key: str, message: Message) -> None: ...

    async def aclose(self) -> None:
        return None


class HttpSessionMirror(RemoteSessionStore):
    """Mirror that keeps one row per message behind a small HTTP API.

    ``GET  {base}/sessions/{key}``       -> Session JSON, 404 when unknown
    ``POST {base}/sessions/{key}/rows``  -> append one message
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def load_session(self, session_key: str) -> Session | None:
        response = await self._client.get(f"/sessions/{safe_key(session_key)}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return Session.model_validate(response.json())

    async def append_message(self, session_key: str, message: Message) -> None:
        response = await self._client.post(
            f"/sessions/{safe_key(session_key)}/rows",
            json=message.model_dump(mode="json"),
        )
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()
