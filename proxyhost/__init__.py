"""proxyhost - provision and monitor proxy servers on cloud VMs.

Example:

    from proxyhost.providers.gcp import GCP, GcpAccount

    account = GcpAccount(api, GCP(project="my-project"))
    server = await account.create_server("my-project", "Tokyo", "asia-northeast1-a")
    server.set_progress_listener(lambda p: print(f"{p:.0%}"))
    await server.wait_on_install()
"""

from loguru import logger

from proxyhost.errors import DeletedServerError, HttpError, ServerInstallFailedError
from proxyhost.observability.logging import LogConfig, setup_logging, teardown_logging
from proxyhost.server import DataAmount, ManagedServer, ManagedServerHost, MonetaryCost
from proxyhost.trust import CertificateTrust, TrustedCertificates

# Library: silent unless setup_logging() is called.
logger.disable("proxyhost")

__all__ = [
    "CertificateTrust",
    "DataAmount",
    "DeletedServerError",
    "HttpError",
    "LogConfig",
    "ManagedServer",
    "ManagedServerHost",
    "MonetaryCost",
    "ServerInstallFailedError",
    "TrustedCertificates",
    "setup_logging",
    "teardown_logging",
]
