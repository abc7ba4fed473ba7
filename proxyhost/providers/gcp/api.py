"""Compute Engine API surface consumed by the GCP provider.

Locators identify resources for every call. ``ComputeApi`` is the seam to
the REST client: implementations return the Compute Engine JSON bodies
below as plain dicts and raise :class:`proxyhost.errors.HttpError` on
failure, with status 404 for missing resources.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, Protocol, TypedDict, runtime_checkable

# =============================================================================
# Locators
# =============================================================================


@dataclass(frozen=True, slots=True)
class RegionLocator:
    project_id: str
    region_id: str


@dataclass(frozen=True, slots=True)
class ZoneLocator:
    project_id: str
    zone_id: str


@dataclass(frozen=True, slots=True)
class InstanceLocator:
    project_id: str
    zone_id: str
    instance_id: str

    @property
    def zone(self) -> Zone:
        return Zone(self.zone_id)

    def zone_locator(self) -> ZoneLocator:
        return ZoneLocator(project_id=self.project_id, zone_id=self.zone_id)

    def region_locator(self) -> RegionLocator:
        return RegionLocator(project_id=self.project_id, region_id=self.zone.region_id)


@dataclass(frozen=True, slots=True)
class Zone:
    """A Compute Engine zone such as ``us-central1-a``."""

    id: str

    def __post_init__(self) -> None:
        if "-" not in self.id:
            raise ValueError(f"Invalid zone id: {self.id!r}")

    @property
    def region_id(self) -> str:
        return self.id.rsplit("-", 1)[0]

    def __str__(self) -> str:
        return self.id


# =============================================================================
# Response Types
# =============================================================================


class OperationErrorItem(TypedDict):
    code: str
    message: NotRequired[str]


class OperationError(TypedDict):
    errors: list[OperationErrorItem]


class ComputeEngineOperation(TypedDict):
    name: str
    status: NotRequired[str]
    targetId: NotRequired[str]
    error: NotRequired[OperationError]


class AccessConfig(TypedDict):
    natIP: NotRequired[str]
    type: NotRequired[str]


class NetworkInterface(TypedDict):
    accessConfigs: NotRequired[list[AccessConfig]]
    networkIP: NotRequired[str]


class Instance(TypedDict):
    id: str
    name: str
    zone: NotRequired[str]
    description: NotRequired[str]
    status: NotRequired[str]
    labels: NotRequired[dict[str, str]]
    networkInterfaces: NotRequired[list[NetworkInterface]]


class StaticIp(TypedDict):
    name: str
    address: NotRequired[str]
    status: NotRequired[str]


class GuestAttributeEntry(TypedDict):
    namespace: NotRequired[str]
    key: str
    value: str


class GuestAttributeQueryValue(TypedDict):
    items: NotRequired[list[GuestAttributeEntry]]


class GuestAttributes(TypedDict):
    queryPath: NotRequired[str]
    queryValue: NotRequired[GuestAttributeQueryValue]


class ZoneInfo(TypedDict):
    name: str
    status: NotRequired[str]


# =============================================================================
# Client protocol
# =============================================================================


@runtime_checkable
class ComputeApi(Protocol):
    async def get_instance(self, locator: InstanceLocator) -> Instance: ...

    async def create_instance(
        self, zone: ZoneLocator, body: dict[str, Any],
    ) -> ComputeEngineOperation: ...

    async def delete_instance(self, locator: InstanceLocator) -> ComputeEngineOperation: ...

    async def list_instances(
        self, project_id: str, *, filter: str | None = None,  # noqa: A002
    ) -> list[Instance]: ...

    async def wait_for_zone_operation(
        self, zone: ZoneLocator, operation_name: str,
    ) -> ComputeEngineOperation: ...

    async def get_static_ip(self, region: RegionLocator, name: str) -> StaticIp: ...

    async def create_static_ip(
        self, region: RegionLocator, data: dict[str, Any],
    ) -> ComputeEngineOperation: ...

    async def delete_static_ip(self, region: RegionLocator, name: str) -> ComputeEngineOperation: ...

    async def get_guest_attributes(
        self, locator: InstanceLocator, namespace: str,
    ) -> GuestAttributes | None: ...

    async def list_zones(self, project_id: str) -> list[ZoneInfo]: ...


def operation_errors(operation: ComputeEngineOperation) -> list[OperationErrorItem]:
    """Errors reported inside an operation body, if any."""
    return (operation.get("error") or {}).get("errors") or []


def guest_attribute_map(attributes: GuestAttributes | None) -> dict[str, str]:
    """Flatten a guest attribute query result into key/value pairs."""
    if not attributes:
        return {}
    items = (attributes.get("queryValue") or {}).get("items") or []
    return {entry["key"]: entry["value"] for entry in items}


def external_ip(instance: Instance) -> str | None:
    """The ephemeral NAT address of the instance's first interface."""
    match instance.get("networkInterfaces"):
        case [first, *_]:
            match first.get("accessConfigs"):
                case [config, *_]:
                    return config.get("natIP")
    return None
