from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, Field

from burrow.constants import WEB_FETCH_TIMEOUT
from burrow.tools.core.base import ExecutionError, Tool
from burrow.tools.sandbox import SandboxConfig, truncate_output

WEB_FETCH_DESCRIPTION = "Fetch content from a URL. Returns the response body as text."


def host_allowed(host: str, allowlist: tuple[str, ...]) -> bool:
    if not allowlist:
        return True
    host = host.lower()
    return any(host == domain or host.endswith(f".{domain}") for domain in (d.lower() for d in allowlist))


class WebFetchInput(BaseModel):
    url: str = Field(description="The http(s) URL to fetch")


class WebFetchTool(Tool):
    name = "web_fetch"
    description = WEB_FETCH_DESCRIPTION
    input_model = WebFetchInput

    def __init__(self, sandbox: SandboxConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.sandbox = sandbox
        self._transport = transport

    async def execute(self, url: str, **kwargs: Any) -> str:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ExecutionError(f"Unsupported URL: {url}")
        if not host_allowed(parsed.hostname, self.sandbox.network_allowlist):
            raise ExecutionError(f"Host not in network allowlist: {parsed.hostname}")

        try:
            async with httpx.AsyncClient(
                timeout=WEB_FETCH_TIMEOUT, follow_redirects=False, transport=self._transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExecutionError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise ExecutionError(f"Fetch failed for {url}: {e}") from e

        return truncate_output(response.text, self.sandbox.max_output_bytes)
