from __future__ import annotations

from typing import Any

from saltmaster.clients.base import BaseHTTPClient

DEFAULT_BASE_URL = "https://api.nsone.net/v1"


class NS1Client(BaseHTTPClient):
    """NS1 DNS API client."""

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["X-NSONE-Key"] = self._api_key
        return headers

    async def get_record(self, zone: str, domain: str, record_type: str) -> dict[str, Any]:
        return await self.get(f"/zones/{zone}/{domain}/{record_type}")

    async def create_record(
        self, zone: str, domain: str, record_type: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.put(f"/zones/{zone}/{domain}/{record_type}", json=body)

    async def update_record(
        self, zone: str, domain: str, record_type: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.post(f"/zones/{zone}/{domain}/{record_type}", json=body)
