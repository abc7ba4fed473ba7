"""Installation progress states for a GCP-hosted server."""

from __future__ import annotations

from enum import Enum, auto


class InstallState(Enum):
    # Server request may still be pending.
    UNKNOWN = auto()
    INSTANCE_CREATED = auto()
    IP_ALLOCATED = auto()
    # Detected by the first guest attribute.
    BOOTED = auto()
    # Management service certificate generated.
    HAS_CERTIFICATE = auto()
    # API URL and certificate fingerprint published.
    SUCCESS = auto()
    ERROR = auto()
    DELETING = auto()
    DELETED = auto()

    @property
    def is_completed(self) -> bool:
        return self in _COMPLETED

    @property
    def is_deleted(self) -> bool:
        return self in (InstallState.DELETING, InstallState.DELETED)

    @property
    def progress(self) -> float:
        return _PROGRESS.get(self, 0.0)


_COMPLETED = frozenset({InstallState.SUCCESS, InstallState.ERROR, InstallState.DELETED})

# Based on observed installation timing; a full install takes ~5 minutes.
_PROGRESS: dict[InstallState, float] = {
    InstallState.UNKNOWN: 0.005,
    InstallState.INSTANCE_CREATED: 0.03,
    InstallState.IP_ALLOCATED: 0.04,
    InstallState.BOOTED: 0.2,
    InstallState.HAS_CERTIFICATE: 0.8,
    InstallState.SUCCESS: 1.0,
}

# Guest attribute keys published by the installer.
ATTR_CERT_SHA256 = "certSha256"
ATTR_API_URL = "apiUrl"
ATTR_INSTALL_ERROR = "install-error"


def next_state(attributes: dict[str, str]) -> InstallState | None:
    """State implied by one guest attribute snapshot, highest priority first."""
    match attributes:
        case {"apiUrl": _, "certSha256": _}:
            return InstallState.SUCCESS
        case {"install-error": _}:
            return InstallState.ERROR
        case {"certSha256": _}:
            return InstallState.HAS_CERTIFICATE
        case {"outline": _}:
            return InstallState.BOOTED
        case _:
            return None
