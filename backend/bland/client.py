import json
from typing import Any, Optional

import httpx

from config import Settings


class BlandAPIError(RuntimeError):
    def __init__(self, status: int, body: str):
        super().__init__(f"Bland API error {status}: {body}")
        self.status = status
        self.body = body


def _truncate(s: str, max_chars: int = 500) -> str:
    return s if len(s) <= max_chars else s[:max_chars] + "…"


class BlandClient:
    """Thin async JSON client for the Bland REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.bland.ai",
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        base_url = (base_url or "").rstrip("/")
        if not base_url:
            raise ValueError("Missing BLAND_BASE_URL")
        self.api_key = api_key
        self.base_url = base_url
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, http: Optional[httpx.AsyncClient] = None) -> "BlandClient":
        return cls(settings.bland_api_key, settings.bland_base_url, http=http, timeout=settings.http_timeout)

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        url = f"{self.base_url}{'' if path.startswith('/') else '/'}{path}"
        headers = {"content-type": "application/json"}
        if self.api_key:
            headers["authorization"] = self.api_key

        resp = await self._http.request(
            method,
            url,
            headers=headers,
            content=None if body is None else json.dumps(body),
        )
        text = resp.text
        if not resp.is_success:
            raise BlandAPIError(resp.status_code, _truncate(text))
        if not text:
            return None
        return json.loads(text)

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()
