"""Remote API client for readlater."""

from .client import RemoteClient

__all__ = ["RemoteClient"]
