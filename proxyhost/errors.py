"""Error types raised while provisioning and tearing down servers."""

from __future__ import annotations


class ServerInstallFailedError(Exception):
    """The server never reached a successful installation."""

    def __init__(self, message: str = "Server installation failed") -> None:
        super().__init__(message)


class DeletedServerError(Exception):
    """The server was deleted while its installation was being awaited."""

    def __init__(self, message: str = "Server was deleted during installation") -> None:
        super().__init__(message)


class HttpError(Exception):
    """Error response from the cloud API; status 0 means no response."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(status, body)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"


def is_not_found(error: BaseException) -> bool:
    """Whether an API error means the target resource does not exist."""
    return isinstance(error, HttpError) and error.status == 404
