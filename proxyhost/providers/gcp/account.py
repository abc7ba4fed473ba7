"""Server creation and discovery within a Google Cloud account."""

from __future__ import annotations

import asyncio
import secrets
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from proxyhost.errors import ServerInstallFailedError
from proxyhost.trust import CertificateTrust, TrustedCertificates

from .api import (
    ComputeApi,
    ComputeEngineOperation,
    Instance,
    InstanceLocator,
    Zone,
    ZoneLocator,
    operation_errors,
)
from .config import GCP
from .server import GcpServer

log = logger.bind(provider="gcp", component="account")

type RegionMap = dict[str, list[str]]


def make_instance_name(now: datetime | None = None) -> str:
    """Unique VM name, also used for the instance's static IP."""
    timestamp = (now or datetime.now(UTC)).strftime("%Y%m%d-%H%M%S")
    return f"outline-{timestamp}-{secrets.token_hex(3)}"


def make_server_id(locator: InstanceLocator) -> str:
    return f"{locator.project_id}:{locator.zone_id}:{locator.instance_id}"


def _zone_from_url(zone: str) -> str:
    # Instances report their zone as a full resource URL.
    return zone.rsplit("/", 1)[-1]


class GcpAccount:
    """Creates and lists proxy servers in the projects of one account."""

    def __init__(
        self,
        api: ComputeApi,
        config: GCP | None = None,
        trust: CertificateTrust | None = None,
    ) -> None:
        self._api = api
        self._config = config or GCP()
        self._trust = trust if trust is not None else TrustedCertificates()

    def _instance_body(self, instance_name: str, display_name: str, zone_id: str) -> dict[str, Any]:
        cfg = self._config
        return {
            "name": instance_name,
            "description": display_name,
            "machineType": f"zones/{zone_id}/machineTypes/{cfg.machine_type}",
            "labels": {cfg.label: "true"},
            "disks": [
                {
                    "boot": True,
                    "autoDelete": True,
                    "initializeParams": {
                        "sourceImage": cfg.image,
                        "diskSizeGb": str(cfg.disk_size_gb),
                    },
                },
            ],
            "networkInterfaces": [
                {
                    "network": "global/networks/default",
                    "accessConfigs": [{"type": "ONE_TO_ONE_NAT", "name": "External NAT"}],
                },
            ],
            "metadata": {
                "items": [
                    {"key": "enable-guest-attributes", "value": "TRUE"},
                    {"key": "startup-script", "value": cfg.install_script},
                ],
            },
            "tags": {"items": [cfg.label]},
        }

    async def create_server(self, project_id: str, name: str, zone_id: str) -> GcpServer:
        """Create a server on a new VM.

        Returns once the insert has been accepted; the proxy server itself
        may not be installed yet. See ``GcpServer.wait_on_install``.
        """
        location = Zone(zone_id)
        instance_name = make_instance_name()
        zone = ZoneLocator(project_id=project_id, zone_id=zone_id)
        log.info(
            "Creating server {name} as {instance} in {zone} ({region})",
            name=name, instance=instance_name, zone=zone_id, region=location.region_id,
        )
        operation = await self._api.create_instance(
            zone, self._instance_body(instance_name, name, zone_id),
        )
        if errors := operation_errors(operation):
            raise ServerInstallFailedError(f"Instance creation failed: {errors}")

        locator = InstanceLocator(
            project_id=project_id,
            zone_id=zone_id,
            instance_id=str(operation.get("targetId", instance_name)),
        )
        return GcpServer(
            make_server_id(locator),
            locator,
            instance_name,
            self._wait_for_creation(zone, operation),
            self._api,
            self._trust,
            self._config,
        )

    async def _wait_for_creation(
        self, zone: ZoneLocator, operation: ComputeEngineOperation,
    ) -> None:
        result = await self._api.wait_for_zone_operation(zone, operation["name"])
        if errors := operation_errors(result):
            raise ServerInstallFailedError(f"Instance creation failed: {errors}")

    async def list_servers(self, project_id: str) -> list[GcpServer]:
        """Servers created by this tool, rebuilt from their live state."""
        instances = await self._api.list_instances(
            project_id, filter=f"labels.{self._config.label}=true",
        )
        log.debug("Found {n} servers in {project}", n=len(instances), project=project_id)
        return [self._server_for(project_id, instance) for instance in instances]

    def _server_for(self, project_id: str, instance: Instance) -> GcpServer:
        locator = InstanceLocator(
            project_id=project_id,
            zone_id=_zone_from_url(instance.get("zone", self._config.zone)),
            instance_id=str(instance["id"]),
        )
        created: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        created.set_result(None)
        return GcpServer(
            make_server_id(locator),
            locator,
            instance["name"],
            created,
            self._api,
            self._trust,
            self._config,
        )

    async def list_locations(self, project_id: str) -> RegionMap:
        """Available zones grouped by region, e.g. ``{"us-central1": ["us-central1-a"]}``."""
        regions: defaultdict[str, list[str]] = defaultdict(list)
        for zone in await self._api.list_zones(project_id):
            if zone.get("status") != "UP":
                continue
            regions[Zone(zone["name"]).region_id].append(zone["name"])
        return {region: sorted(zones) for region, zones in sorted(regions.items())}
