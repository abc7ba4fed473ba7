"""GCP provider configuration.

Immutable configuration dataclass for the Compute Engine provider.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_IMAGE = "projects/ubuntu-os-cloud/global/images/family/ubuntu-2204-lts"


@dataclass(frozen=True, slots=True)
class GCP:
    """Compute Engine provider configuration.

    Example:
        >>> from proxyhost.providers.gcp import GCP
        >>> config = GCP(project="my-project", zone="europe-west1-b")

    Args:
        project: GCP project ID.
        zone: Zone new servers are created in. Default: us-central1-a.
        machine_type: Machine type for new servers. Default: e2-small.
        image: Boot disk image source.
        disk_size_gb: Boot disk size in GB. Default: 10.
        poll_interval: Seconds between guest attribute polls. Default: 5.
        guest_attribute_namespace: Namespace the installer publishes to.
        install_script: Startup script that installs the proxy server.
        label: Label key marking instances managed by this tool.
    """

    project: str | None = None
    zone: str = "us-central1-a"
    machine_type: str = "e2-small"
    image: str = DEFAULT_IMAGE
    disk_size_gb: int = 10
    poll_interval: float = 5.0
    guest_attribute_namespace: str = "outline/"
    install_script: str = ""
    label: str = "outline"

    def __post_init__(self) -> None:
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")

    @property
    def type(self) -> str: return "gcp"
