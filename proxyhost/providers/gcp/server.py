"""Proxy server hosted on a Compute Engine VM.

``GcpServer`` tracks installation progress by polling the guest attributes
the installer publishes. ``GcpHost`` owns the VM and its static IP and
tears them down on delete.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, wait_fixed

from proxyhost.errors import (
    DeletedServerError,
    ServerInstallFailedError,
    is_not_found,
)
from proxyhost.server import DataAmount, MonetaryCost, ProgressListener, ProxyServer
from proxyhost.trust import CertificateTrust

from .api import (
    ComputeApi,
    ComputeEngineOperation,
    InstanceLocator,
    Zone,
    external_ip,
    guest_attribute_map,
    operation_errors,
)
from .config import GCP
from .install import (
    ATTR_API_URL,
    ATTR_CERT_SHA256,
    ATTR_INSTALL_ERROR,
    InstallState,
    next_state,
)

log = logger.bind(provider="gcp")


class _InstallPendingError(Exception):
    """Installation not yet in a terminal state - poll again."""


def _discard(task: asyncio.Future[object]) -> None:
    """Cancel a task nobody will await, consuming any failure it already has."""
    if not task.cancel() and not task.cancelled():
        task.exception()


class GcpServer(ProxyServer):
    """A proxy server whose installation is observed through guest attributes.

    Must be constructed inside a running event loop: instance preparation
    (static IP check and promotion) starts immediately.

    Args:
        server_id: Identifier exposed to callers.
        locator: The VM backing this server.
        instance_name: VM name. By convention the static IP shares it.
        instance_creation: Resolves once the VM insert has completed.
        api: Compute Engine client.
        trust: Receives the management certificate fingerprint.
        config: Provider configuration (poll interval, attribute namespace).
    """

    def __init__(
        self,
        server_id: str,
        locator: InstanceLocator,
        instance_name: str,
        instance_creation: Awaitable[object],
        api: ComputeApi,
        trust: CertificateTrust,
        config: GCP | None = None,
    ) -> None:
        super().__init__(server_id)
        self._locator = locator
        self._instance_name = instance_name
        self._api = api
        self._trust = trust
        self._config = config or GCP()
        self._install_state = InstallState.UNKNOWN
        self._listener: ProgressListener | None = None
        self._log = log.bind(instance=instance_name, zone=locator.zone_id)

        loop = asyncio.get_running_loop()
        # Independent of creation, so start the lookup right away.
        static_ip_check = loop.create_task(self._has_static_ip())
        self._instance_readiness: asyncio.Task[None] = loop.create_task(
            self._prepare_instance(instance_creation, static_ip_check),
        )
        self._host = GcpHost(
            locator,
            instance_name,
            self._instance_readiness,
            api,
            self.set_install_state,
        )

    async def _prepare_instance(
        self,
        instance_creation: Awaitable[object],
        static_ip_check: asyncio.Future[bool],
    ) -> None:
        try:
            await instance_creation
        except Exception as e:
            _discard(static_ip_check)
            self.set_install_state(InstallState.ERROR)
            if isinstance(e, ServerInstallFailedError):
                raise
            raise ServerInstallFailedError(f"Instance creation failed: {e}") from e

        try:
            self._advance(InstallState.INSTANCE_CREATED)
            if not await static_ip_check:
                await self._promote_ephemeral_ip()
            self._advance(InstallState.IP_ALLOCATED)
        except Exception as e:
            self.set_install_state(InstallState.ERROR)
            if isinstance(e, ServerInstallFailedError):
                raise
            raise ServerInstallFailedError(f"Static IP promotion failed: {e}") from e

    def _advance(self, new_state: InstallState) -> None:
        # A pending delete() owns the state from here on.
        if not self._install_state.is_deleted:
            self.set_install_state(new_state)

    async def _has_static_ip(self) -> bool:
        try:
            await self._api.get_static_ip(self._locator.region_locator(), self._instance_name)
            return True
        except Exception as e:
            if is_not_found(e):
                # Not reserved yet.
                return False
            raise ServerInstallFailedError(f"Static IP check failed: {e}") from e

    async def _promote_ephemeral_ip(self) -> None:
        instance = await self._api.get_instance(self._locator)
        address = external_ip(instance)
        if not address:
            raise ServerInstallFailedError(
                f"Instance {instance['name']} has no external IP to promote",
            )
        self._log.info("Promoting ephemeral IP {address} to static", address=address)
        operation = await self._api.create_static_ip(
            self._locator.region_locator(),
            {
                "name": instance["name"],
                "description": instance.get("description", ""),
                "address": address,
            },
        )
        if errors := operation_errors(operation):
            raise ServerInstallFailedError(f"Static IP creation failed: {errors}")

    def get_host(self) -> GcpHost:
        return self._host

    @property
    def install_state(self) -> InstallState:
        return self._install_state

    def is_install_completed(self) -> bool:
        return self._install_state.is_completed

    def install_progress(self) -> float:
        return self._install_state.progress

    def set_progress_listener(self, listener: ProgressListener) -> None:
        self._listener = listener
        listener(self.install_progress())

    def set_install_state(self, new_state: InstallState) -> None:
        if new_state is not self._install_state:
            self._log.debug(
                "Install state {old} -> {new}",
                old=self._install_state.name, new=new_state.name,
            )
        self._install_state = new_state
        if self._listener is not None:
            self._listener(self.install_progress())

    async def wait_on_install(self) -> None:
        """Wait until installation succeeds, fails, or the server is deleted.

        Raises:
            ServerInstallFailedError: Preparation failed or the installer
                reported an error.
            DeletedServerError: The server was deleted while waiting.
        """
        await self._instance_readiness

        # No stop condition: a server that never reports keeps being polled.
        async for attempt in AsyncRetrying(
            wait=wait_fixed(self._config.poll_interval),
            retry=retry_if_exception_type(_InstallPendingError),
            reraise=True,
        ):
            with attempt:
                await self._check_install()

        match self._install_state:
            case InstallState.ERROR:
                raise ServerInstallFailedError()
            case InstallState.DELETING | InstallState.DELETED:
                raise DeletedServerError()

    async def _check_install(self) -> None:
        if self._install_state.is_deleted or self.is_install_completed():
            return
        attributes = await self._get_guest_attributes()
        # delete() may have run while the query was in flight.
        if self._install_state.is_deleted or self.is_install_completed():
            return

        match next_state(attributes):
            case InstallState.SUCCESS:
                try:
                    self._trust.trust(attributes[ATTR_CERT_SHA256])
                except ValueError as e:
                    self.set_install_state(InstallState.ERROR)
                    raise ServerInstallFailedError(f"Invalid certificate fingerprint: {e}") from e
                self.set_management_api_url(attributes[ATTR_API_URL])
                self.set_install_state(InstallState.SUCCESS)
                self._log.info("Server installed at {url}", url=attributes[ATTR_API_URL])
                return
            case InstallState.ERROR:
                self.set_install_state(InstallState.ERROR)
                self._log.warning("Installer reported an error: {error}",
                                  error=attributes.get(ATTR_INSTALL_ERROR))
                return
            case None:
                pass
            case state:
                self.set_install_state(state)
        raise _InstallPendingError()

    async def _get_guest_attributes(self) -> dict[str, str]:
        attributes = await self._api.get_guest_attributes(
            self._locator, self._config.guest_attribute_namespace,
        )
        return guest_attribute_map(attributes)


class GcpHost:
    """The VM instance and static IP backing a ``GcpServer``."""

    def __init__(
        self,
        locator: InstanceLocator,
        instance_name: str,
        instance_readiness: Awaitable[None],
        api: ComputeApi,
        set_install_state: Callable[[InstallState], None],
    ) -> None:
        self._locator = locator
        self._instance_name = instance_name
        self._instance_readiness = instance_readiness
        self._api = api
        self._set_install_state = set_install_state
        self._log = log.bind(instance=instance_name, zone=locator.zone_id)

    async def delete(self) -> None:
        self._set_install_state(InstallState.DELETING)
        # Deleting while the insert or static IP allocation is still in
        # flight is undefined, so wait for setup to settle first.
        try:
            await self._instance_readiness
        except Exception as e:
            self._log.warning("Attempting deletion of server that failed setup: {error}", error=e)

        # By convention the static IP uses the instance's name.
        await self._wait_for_delete(
            self._api.delete_static_ip(self._locator.region_locator(), self._instance_name),
            "Deleted server did not have a static IP",
        )
        await self._wait_for_delete(
            self._api.delete_instance(self._locator),
            "No instance for deleted server",
        )
        self._set_install_state(InstallState.DELETED)
        self._log.info("Deleted server resources")

    async def _wait_for_delete(
        self, deletion: Awaitable[ComputeEngineOperation], msg_not_found: str,
    ) -> None:
        # Once queued, the operation is assumed to complete; no need to wait on it.
        try:
            await deletion
        except Exception as e:
            if is_not_found(e):
                self._log.warning(msg_not_found)
                return
            self._log.error("Deletion failed: {error}", error=e)
            self._set_install_state(InstallState.ERROR)
            raise

    def get_host_id(self) -> str:
        return self._locator.instance_id

    def get_cloud_location(self) -> Zone:
        return self._locator.zone

    def get_monthly_cost(self) -> MonetaryCost | None:
        return None

    def get_monthly_outbound_transfer_limit(self) -> DataAmount | None:
        return None
