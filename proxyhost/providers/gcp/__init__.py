"""Google Compute Engine provider.

Servers run on Compute Engine VMs; installation progress is observed
through the guest attributes the installer publishes under the
``outline/`` namespace.
"""

from __future__ import annotations

from .account import GcpAccount, make_instance_name
from .api import ComputeApi, InstanceLocator, RegionLocator, Zone, ZoneLocator
from .config import GCP
from .install import InstallState
from .server import GcpHost, GcpServer

__all__ = [
    "GCP",
    "ComputeApi",
    "GcpAccount",
    "GcpHost",
    "GcpServer",
    "InstallState",
    "InstanceLocator",
    "RegionLocator",
    "Zone",
    "ZoneLocator",
    "make_instance_name",
]
