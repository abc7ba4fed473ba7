"""Server model shared by cloud providers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

type ProgressListener = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class MonetaryCost:
    usd: float


@dataclass(frozen=True, slots=True)
class DataAmount:
    terabytes: float


@runtime_checkable
class ManagedServerHost(Protocol):
    """Cloud resources backing a managed server."""

    async def delete(self) -> None: ...
    def get_host_id(self) -> str: ...
    def get_monthly_cost(self) -> MonetaryCost | None: ...
    def get_monthly_outbound_transfer_limit(self) -> DataAmount | None: ...


@runtime_checkable
class ManagedServer(Protocol):
    """A server whose host is provisioned and owned by this process."""

    def get_id(self) -> str: ...
    def get_host(self) -> ManagedServerHost: ...
    def is_install_completed(self) -> bool: ...
    async def wait_on_install(self) -> None: ...
    def set_progress_listener(self, listener: ProgressListener) -> None: ...


class ProxyServer:
    """Base server: identity plus the management API endpoint once known."""

    def __init__(self, server_id: str) -> None:
        self._id = server_id
        self._management_api_url: str | None = None

    def get_id(self) -> str:
        return self._id

    @property
    def management_api_url(self) -> str | None:
        return self._management_api_url

    def set_management_api_url(self, api_url: str) -> None:
        self._management_api_url = api_url
