"""Error types raised by the remote client and the local stores."""


class ReadLaterError(Exception):
    """Base class for readlater errors."""


class NetworkError(ReadLaterError):
    """No response was received from the remote (connectivity or timeout)."""


class RemoteError(ReadLaterError):
    """The remote answered with a non-success status."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        self.message = message or f"HTTP {status}"
        super().__init__(self.message)

    @property
    def is_permanent(self) -> bool:
        """True for 4xx replies; the same request will be refused again."""
        return 400 <= self.status < 500

    def __repr__(self) -> str:
        return f"RemoteError(status={self.status}, message={self.message!r})"


class StorageFault(ReadLaterError):
    """The local database failed. Never swallowed."""
