"""NS1 DNS provider: create-or-update of a single record."""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from saltmaster.clients.base import HTTPClientError, PermanentHTTPError
from saltmaster.clients.ns1 import DEFAULT_BASE_URL, NS1Client
from saltmaster.core.errors import ProviderError
from saltmaster.providers.base import DnsRecord, ProviderHealth
from saltmaster.providers.registry import register_provider

logger = structlog.get_logger()


class NS1ProviderError(ProviderError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, provider="ns1")


def _answers_from_api(data: dict[str, Any]) -> tuple[str, ...]:
    values: list[str] = []
    for answer in data.get("answers") or []:
        values.extend(str(part) for part in answer.get("answer") or [])
    return tuple(values)


class NS1Provider:
    name = "ns1"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        client: NS1Client | None = None,
    ) -> None:
        self._client = client or NS1Client(
            api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )

    async def health_check(self) -> ProviderHealth:
        try:
            await self._client.get("/zones")
        except HTTPClientError as exc:
            return ProviderHealth(status="unreachable", details=str(exc))
        return ProviderHealth(status="healthy")

    async def get_dns_record(self, zone: str, domain: str, record_type: str = "A") -> DnsRecord | None:
        try:
            data = await self._client.get_record(zone, domain, record_type)
        except HTTPClientError as exc:
            if isinstance(exc, PermanentHTTPError) and exc.not_found:
                return None
            raise NS1ProviderError(f"get record: {exc}", {"status": exc.status_code}) from exc
        return DnsRecord(
            zone=zone,
            domain=domain,
            type=record_type,
            answers=_answers_from_api(data),
            id=data.get("id"),
        )

    async def create_dns_record(
        self,
        zone: str,
        domain: str,
        record_type: str = "A",
        answers: Sequence[str] = (),
    ) -> DnsRecord:
        body = {
            "zone": zone,
            "domain": domain,
            "type": record_type,
            "answers": [{"answer": [answer]} for answer in answers],
        }

        existing = await self.get_dns_record(zone, domain, record_type)
        try:
            if existing is None:
                data = await self._client.create_record(zone, domain, record_type, body)
                logger.info("dns_record_created", zone=zone, domain=domain, type=record_type)
            elif existing.answers != tuple(answers):
                data = await self._client.update_record(zone, domain, record_type, body)
                logger.info("dns_record_updated", zone=zone, domain=domain, type=record_type)
            else:
                logger.info("dns_record_unchanged", zone=zone, domain=domain, type=record_type)
                return existing
        except HTTPClientError as exc:
            raise NS1ProviderError(f"write record: {exc}", {"status": exc.status_code}) from exc

        return DnsRecord(
            zone=zone,
            domain=domain,
            type=record_type,
            answers=_answers_from_api(data) or tuple(answers),
            id=data.get("id"),
        )


def _factory(**kwargs: Any) -> NS1Provider:
    api_key = kwargs.pop("api_key", None)
    return NS1Provider(api_key, **kwargs)


register_provider(
    "ns1",
    _factory,
    capabilities=("dns",),
    version="1.0.0",
    description="NS1 managed DNS records",
)
