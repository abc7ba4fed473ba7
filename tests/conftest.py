from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import pytest

from proxyhost.errors import HttpError
from proxyhost.providers.gcp.api import (
    ComputeEngineOperation,
    GuestAttributes,
    Instance,
    InstanceLocator,
    RegionLocator,
    StaticIp,
    ZoneInfo,
    ZoneLocator,
)
from proxyhost.providers.gcp.config import GCP
from proxyhost.providers.gcp.server import GcpServer
from proxyhost.trust import TrustedCertificates

LOCATOR = InstanceLocator(project_id="proj", zone_id="us-central1-b", instance_id="1234")
INSTANCE_NAME = "outline-20260101-000000-abcdef"


def not_found() -> HttpError:
    return HttpError(status=404, body="not found")


class FakeComputeApi:
    """In-memory Compute Engine API.

    Guest attribute snapshots are served in order; the last one repeats once
    the script is exhausted. ``errors`` maps a method name to the exception
    its next call raises.
    """

    def __init__(
        self,
        snapshots: Iterable[dict[str, str]] = (),
        *,
        static_ip: bool = True,
        nat_ip: str | None = "203.0.113.7",
    ) -> None:
        self.snapshots = list(snapshots)
        self.static_ip = static_ip
        self.nat_ip = nat_ip
        self.errors: dict[str, BaseException] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.polled = asyncio.Event()
        self.created_static_ip: dict[str, Any] | None = None
        self.static_ip_operation: ComputeEngineOperation = {"name": "op-ip"}
        self.create_instance_operation: ComputeEngineOperation = {
            "name": "op-insert", "targetId": "98765",
        }
        self.zone_operation: ComputeEngineOperation = {"name": "op-insert", "status": "DONE"}
        self.instances: list[Instance] = []
        self.zones: list[ZoneInfo] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if (error := self.errors.pop(method, None)) is not None:
            raise error

    def called(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def get_instance(self, locator: InstanceLocator) -> Instance:
        self._record("get_instance", locator)
        interfaces = [{"accessConfigs": [{"natIP": self.nat_ip}]}] if self.nat_ip else []
        return {
            "id": locator.instance_id,
            "name": INSTANCE_NAME,
            "description": "My server",
            "networkInterfaces": interfaces,
        }

    async def create_instance(self, zone: ZoneLocator, body: dict[str, Any]) -> ComputeEngineOperation:
        self._record("create_instance", zone, body)
        return self.create_instance_operation

    async def delete_instance(self, locator: InstanceLocator) -> ComputeEngineOperation:
        self._record("delete_instance", locator)
        return {"name": "op-delete-instance"}

    async def list_instances(self, project_id: str, *, filter: str | None = None) -> list[Instance]:  # noqa: A002
        self._record("list_instances", project_id, filter)
        return self.instances

    async def wait_for_zone_operation(self, zone: ZoneLocator, operation_name: str) -> ComputeEngineOperation:
        self._record("wait_for_zone_operation", zone, operation_name)
        return self.zone_operation

    async def get_static_ip(self, region: RegionLocator, name: str) -> StaticIp:
        self._record("get_static_ip", region, name)
        if not self.static_ip:
            raise not_found()
        return {"name": name, "address": "203.0.113.7"}

    async def create_static_ip(self, region: RegionLocator, data: dict[str, Any]) -> ComputeEngineOperation:
        self._record("create_static_ip", region, data)
        self.created_static_ip = data
        return self.static_ip_operation

    async def delete_static_ip(self, region: RegionLocator, name: str) -> ComputeEngineOperation:
        self._record("delete_static_ip", region, name)
        return {"name": "op-delete-ip"}

    async def get_guest_attributes(self, locator: InstanceLocator, namespace: str) -> GuestAttributes | None:
        self._record("get_guest_attributes", locator, namespace)
        self.polled.set()
        if not self.snapshots:
            return None
        snapshot = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        return {
            "queryPath": namespace,
            "queryValue": {"items": [{"key": k, "value": v} for k, v in snapshot.items()]},
        }

    async def list_zones(self, project_id: str) -> list[ZoneInfo]:
        self._record("list_zones", project_id)
        return self.zones


def resolved() -> asyncio.Future[None]:
    future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
    future.set_result(None)
    return future


def make_server(
    api: FakeComputeApi,
    *,
    creation: Any = None,
    trust: TrustedCertificates | None = None,
) -> GcpServer:
    """Build a server in the running loop with a zero poll interval."""
    return GcpServer(
        "proj:us-central1-b:1234",
        LOCATOR,
        INSTANCE_NAME,
        creation if creation is not None else resolved(),
        api,
        trust if trust is not None else TrustedCertificates(),
        GCP(project="proj", zone="us-central1-b", poll_interval=0),
    )


@pytest.fixture
def api() -> FakeComputeApi:
    return FakeComputeApi()
