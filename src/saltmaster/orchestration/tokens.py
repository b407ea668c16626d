"""Secret and peer-token resolution for a run."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from saltmaster.config.models import GitHubConfig, ProvisioningRequest, StorageConfig, TeleportConfig
from saltmaster.deferred import Deferred
from saltmaster.providers.base import TokenProvider
from saltmaster.state import StackState

logger = structlog.get_logger()

PEER_TOKEN_RESOURCE = "random:RandomUuid:teleport-peer-token"


@dataclass(frozen=True)
class ResolvedSecrets:
    teleport: TeleportConfig
    github: GitHubConfig
    storage: StorageConfig
    peer_token: Deferred[str]


class SecretTokenResolver:
    """Hands out the loaded credentials and starts peer-token generation.

    A token recorded in the stack state is reused, so a re-run renders the
    same bootstrap payload and does not replace the instance. Otherwise one
    ``generate_token`` call is issued; ``resolve`` does not wait for it.
    """

    def __init__(self, tokens: TokenProvider, state: StackState | None = None) -> None:
        self._tokens = tokens
        self._state = state

    def resolve(self, request: ProvisioningRequest) -> ResolvedSecrets:
        return ResolvedSecrets(
            teleport=request.teleport,
            github=request.github,
            storage=request.storage,
            peer_token=self._peer_token(),
        )

    def _peer_token(self) -> Deferred[str]:
        recorded = self._state.get(PEER_TOKEN_RESOURCE) if self._state else None
        if recorded and recorded.get("result"):
            logger.debug("peer_token_reused")
            return Deferred.from_value(recorded["result"], name=PEER_TOKEN_RESOURCE)
        return Deferred(self._generate(), name=PEER_TOKEN_RESOURCE)

    async def _generate(self) -> str:
        token = await self._tokens.generate_token()
        if self._state is not None:
            self._state.set(PEER_TOKEN_RESOURCE, {"result": token})
        logger.info("peer_token_generated")
        return token
