"""Bootstrap configuration aggregate and its builder."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace

from saltmaster.config.models import ProvisioningRequest
from saltmaster.core.errors import DependencyUnresolved


@dataclass(frozen=True)
class BootstrapConfig:
    """All values the bootstrap payload is rendered from."""

    teleport_domain: str
    teleport_client_id: str
    teleport_client_secret: str
    teleport_peer_token: str
    github_username: str
    github_access_token: str
    storage_bucket_name: str
    storage_bucket_location: str
    storage_access_key_id: str
    storage_secret_access_key: str


@dataclass(frozen=True)
class BootstrapConfigBuilder:
    """Collects BootstrapConfig fields as they become known.

    Static fields come from the request; the peer token arrives last, once
    the token generation resolved. Each ``with_*`` call returns a new
    builder, so a builder handed to one callback can't be changed by another.
    """

    teleport_domain: str | None = None
    teleport_client_id: str | None = None
    teleport_client_secret: str | None = None
    teleport_peer_token: str | None = None
    github_username: str | None = None
    github_access_token: str | None = None
    storage_bucket_name: str | None = None
    storage_bucket_location: str | None = None
    storage_access_key_id: str | None = None
    storage_secret_access_key: str | None = None

    @classmethod
    def from_request(cls, request: ProvisioningRequest) -> BootstrapConfigBuilder:
        return cls(
            teleport_domain=request.teleport_domain,
            teleport_client_id=request.teleport.client_id,
            teleport_client_secret=request.teleport.client_secret,
            github_username=request.github.username,
            github_access_token=request.github.access_token,
            storage_bucket_name=request.storage.bucket_name,
            storage_bucket_location=request.storage.bucket_location,
            storage_access_key_id=request.storage.access_key_id,
            storage_secret_access_key=request.storage.secret_access_key,
        )

    def with_peer_token(self, token: str) -> BootstrapConfigBuilder:
        return replace(self, teleport_peer_token=token)

    def missing(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is None]

    def build(self) -> BootstrapConfig:
        missing = self.missing()
        if missing:
            raise DependencyUnresolved(
                f"Bootstrap configuration is incomplete: {', '.join(missing)}",
                {"missing": missing},
            )
        return BootstrapConfig(**{f.name: getattr(self, f.name) for f in fields(self)})
