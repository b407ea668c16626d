"""
Typed configuration records for a salt master stack.

Every record is frozen; ``from_dict`` validates required keys and raises
ConfigurationError naming the missing key, so a malformed stack file is
rejected before any remote call is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from saltmaster.core.errors import ConfigurationError


class Facility(StrEnum):
    """Equinix Metal facility codes."""

    AM6 = "am6"
    AMS1 = "ams1"
    CH3 = "ch3"
    DA11 = "da11"
    DC13 = "dc13"
    DFW2 = "dfw2"
    EWR1 = "ewr1"
    FR2 = "fr2"
    HK2 = "hk2"
    LA4 = "la4"
    LD7 = "ld7"
    NRT1 = "nrt1"
    NY5 = "ny5"
    ORD1 = "ord1"
    PA4 = "pa4"
    SEA1 = "sea1"
    SG4 = "sg4"
    SJC1 = "sjc1"
    SV15 = "sv15"
    SY4 = "sy4"
    TR2 = "tr2"


class Plan(StrEnum):
    """Equinix Metal server plans."""

    C2_LARGE_ARM = "c2.large.arm"
    C2_MEDIUM_X86 = "c2.medium.x86"
    C3_LARGE_ARM = "c3.large.arm"
    C3_MEDIUM_X86 = "c3.medium.x86"
    C3_SMALL_X86 = "c3.small.x86"
    F3_LARGE_X86 = "f3.large.x86"
    F3_MEDIUM_X86 = "f3.medium.x86"
    G2_LARGE_X86 = "g2.large.x86"
    M2_XLARGE_X86 = "m2.xlarge.x86"
    M3_LARGE_X86 = "m3.large.x86"
    M3_SMALL_X86 = "m3.small.x86"
    N2_XLARGE_X86 = "n2.xlarge.x86"
    S3_XLARGE_X86 = "s3.xlarge.x86"
    T1_SMALL_X86 = "t1.small.x86"


class OperatingSystem(StrEnum):
    UBUNTU_2004 = "ubuntu_20_04"


class BillingCycle(StrEnum):
    HOURLY = "hourly"
    MONTHLY = "monthly"


def _require(data: Any, key: str, section: str) -> str:
    if data is None:
        raise ConfigurationError(
            f"Missing required configuration section '{section}'",
            {"section": section},
        )
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration section '{section}' must be a mapping",
            {"section": section},
        )
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigurationError(
            f"Missing required configuration value '{section}.{key}'",
            {"section": section, "key": key},
        )
    return str(value)


def _require_choice(data: Any, key: str, section: str, enum_cls: type[StrEnum]) -> Any:
    raw = _require(data, key, section)
    try:
        return enum_cls(raw)
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Invalid value '{raw}' for '{section}.{key}' (expected one of: {choices})",
            {"section": section, "key": key},
        ) from exc


@dataclass(frozen=True)
class SaltMasterConfig:
    facility: Facility
    plan: Plan

    @classmethod
    def from_dict(cls, data: Any) -> SaltMasterConfig:
        return cls(
            facility=_require_choice(data, "facility", "saltMaster", Facility),
            plan=_require_choice(data, "plan", "saltMaster", Plan),
        )


@dataclass(frozen=True)
class TeleportConfig:
    client_id: str
    client_secret: str

    @classmethod
    def from_dict(cls, data: Any) -> TeleportConfig:
        return cls(
            client_id=_require(data, "clientId", "teleport"),
            client_secret=_require(data, "clientSecret", "teleport"),
        )


@dataclass(frozen=True)
class GitHubConfig:
    username: str
    access_token: str

    @classmethod
    def from_dict(cls, data: Any) -> GitHubConfig:
        return cls(
            username=_require(data, "username", "github"),
            access_token=_require(data, "accessToken", "github"),
        )


@dataclass(frozen=True)
class StorageConfig:
    """S3-compatible bucket the salt master syncs state to."""

    access_key_id: str
    secret_access_key: str
    bucket_name: str
    bucket_location: str

    @classmethod
    def from_dict(cls, data: Any) -> StorageConfig:
        return cls(
            access_key_id=_require(data, "accessKeyId", "aws"),
            secret_access_key=_require(data, "secretAccessKey", "aws"),
            bucket_name=_require(data, "bucketName", "aws"),
            bucket_location=_require(data, "bucketLocation", "aws"),
        )


@dataclass(frozen=True)
class ProvisioningRequest:
    """Everything a run needs, loaded and validated up front."""

    stack: str
    project_id: str
    zone: str
    salt_master: SaltMasterConfig
    teleport: TeleportConfig
    github: GitHubConfig
    storage: StorageConfig

    @property
    def facility(self) -> Facility:
        return self.salt_master.facility

    @property
    def plan(self) -> Plan:
        return self.salt_master.plan

    @property
    def hostname(self) -> str:
        return f"{self.stack}-salt-master"

    @property
    def teleport_domain(self) -> str:
        return f"teleport.{self.zone}"

    @classmethod
    def from_dict(cls, stack: str, data: dict[str, Any]) -> ProvisioningRequest:
        """Build a request from a (secret-resolved) stack file mapping.

        Keys follow the stack file layout::

            equinix-metal:projectId: "..."
            zone: example.com
            saltMaster: {facility: sjc1, plan: c3.small.x86}
            teleport: {clientId: ..., clientSecret: ...}
            github: {username: ..., accessToken: ...}
            aws: {accessKeyId: ..., secretAccessKey: ..., bucketName: ..., bucketLocation: ...}
        """
        if not stack:
            raise ConfigurationError("Stack name is required")

        return cls(
            stack=stack,
            project_id=_require(data, "equinix-metal:projectId", "config"),
            zone=_require(data, "zone", "config"),
            salt_master=SaltMasterConfig.from_dict(data.get("saltMaster")),
            teleport=TeleportConfig.from_dict(data.get("teleport")),
            github=GitHubConfig.from_dict(data.get("github")),
            storage=StorageConfig.from_dict(data.get("aws")),
        )
