from __future__ import annotations

from typing import Any

from saltmaster.clients.base import BaseHTTPClient

DEFAULT_BASE_URL = "https://api.equinix.com/metal/v1"


class EquinixMetalClient(BaseHTTPClient):
    """Equinix Metal API client."""

    def __init__(
        self,
        token: str | None,
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
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._token:
            headers["X-Auth-Token"] = self._token
        return headers

    async def list_ip_reservations(self, project_id: str) -> list[dict[str, Any]]:
        data = await self.get(f"/projects/{project_id}/ips", params={"types": "public_ipv4"})
        return data.get("ip_addresses", [])

    async def create_ip_reservation(self, project_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self.post(f"/projects/{project_id}/ips", json=body)

    async def list_devices(self, project_id: str, hostname: str) -> list[dict[str, Any]]:
        data = await self.get(f"/projects/{project_id}/devices", params={"hostname": hostname})
        return data.get("devices", [])

    async def get_device(self, device_id: str) -> dict[str, Any]:
        return await self.get(f"/devices/{device_id}")

    async def create_device(self, project_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self.post(f"/projects/{project_id}/devices", json=body)

    async def delete_device(self, device_id: str) -> None:
        await self.delete(f"/devices/{device_id}")

    async def assign_ip(self, device_id: str, cidr_notation: str) -> dict[str, Any]:
        return await self.post(f"/devices/{device_id}/ips", json={"address": cidr_notation})

    async def unassign_ip(self, assignment_id: str) -> None:
        await self.delete(f"/ips/{assignment_id}")
