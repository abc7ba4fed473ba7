"""Certificate trust for management API connections."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loguru import logger

log = logger.bind(component="trust")


@runtime_checkable
class CertificateTrust(Protocol):
    def trust(self, cert_sha256: str) -> None: ...


class TrustedCertificates:
    """In-memory set of trusted certificate fingerprints.

    Fingerprints are normalized to lowercase hex without separators, so
    ``AB:CD`` and ``abcd`` refer to the same certificate.
    """

    def __init__(self) -> None:
        self._fingerprints: set[str] = set()

    @staticmethod
    def normalize(cert_sha256: str) -> str:
        return cert_sha256.replace(":", "").strip().lower()

    def trust(self, cert_sha256: str) -> None:
        fingerprint = self.normalize(cert_sha256)
        if not fingerprint:
            raise ValueError("Empty certificate fingerprint")
        self._fingerprints.add(fingerprint)
        log.debug("Trusting certificate {fingerprint}", fingerprint=fingerprint)

    def is_trusted(self, cert_sha256: str) -> bool:
        return self.normalize(cert_sha256) in self._fingerprints

    def __len__(self) -> int:
        return len(self._fingerprints)
