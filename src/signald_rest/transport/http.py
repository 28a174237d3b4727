"""
REST client for a running signald-rest gateway, used by the CLI.
"""

from typing import Any, Optional

import httpx

from signald_rest.errors import SignaldRestError

DEFAULT_BASE_URL = "http://127.0.0.1:8080"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "signald-rest-cli/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _check(resp: httpx.Response) -> httpx.Response:
        """Raise the gateway's ``{"error": ...}`` message for any 4xx/5xx answer."""
        if resp.status_code >= 400:
            try:
                message = resp.json().get("error") or resp.text[:200]
            except (ValueError, AttributeError):
                message = resp.text[:200]
            raise SignaldRestError("http_error", f"HTTP {resp.status_code}: {message}")
        return resp

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        resp = self._check(await self._client.get(path, params=params))
        return resp.json()

    async def get_bytes(self, path: str, params: Optional[dict[str, Any]] = None) -> bytes:
        resp = self._check(await self._client.get(path, params=params))
        return resp.content

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = self._check(await self._client.post(path, json=body))
        return resp.json() if resp.content else None

    async def delete(self, path: str) -> Any:
        resp = self._check(await self._client.delete(path))
        return resp.json() if resp.content else None

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
