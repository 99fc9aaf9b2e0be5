"""Configuration for readlater.

Settings come from environment variables so the MCP server and the CLI can be
configured the same way:

    READLATER_DB_PATH        database file (default ~/.readlater/readlater.db)
    READLATER_SERVER_URL     default server URL (default http://localhost:8080)
    READLATER_TIMEOUT        request timeout in seconds (default 30)
    READLATER_MAX_ATTEMPTS   replay attempts before a queued save is dead-lettered
    READLATER_SYNC_INTERVAL  seconds between background queue drains (0 disables)
    READLATER_LOG_LEVEL      log level (default INFO)
    READLATER_LOG_FILE       optional log file
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

DEFAULT_SERVER_URL = "http://localhost:8080"


@dataclass
class ServerConfig:
    """Process-wide settings read at start-up."""

    name: str = "readlater"
    db_path: str = ""
    server_url: str = DEFAULT_SERVER_URL
    request_timeout: float = 30.0
    max_attempts: int = 3
    sync_interval: float = 300.0
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if not self.db_path:
            self.db_path = str(Path.home() / ".readlater" / "readlater.db")


def normalize_server_url(url: str) -> str:
    """Validate a server URL and strip trailing slashes.

    Args:
        url: URL entered by the user

    Returns:
        The normalized URL

    Raises:
        ValueError: If the URL is empty or not an http(s) URL with a host
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("Server URL is required")

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Invalid server URL: {url}")

    return url.rstrip("/")


class ServerSettings:
    """Holds the active server URL.

    The remote client reads server_url on every request, so an update applies
    to the next request only.
    """

    def __init__(self, server_url: str = DEFAULT_SERVER_URL):
        self._server_url = normalize_server_url(server_url)

    @property
    def server_url(self) -> str:
        return self._server_url

    @server_url.setter
    def server_url(self, value: str) -> None:
        self._server_url = normalize_server_url(value)

    def __repr__(self) -> str:
        return f"ServerSettings(server_url={self._server_url!r})"


def load_config() -> ServerConfig:
    """Build a ServerConfig from environment variables."""
    return ServerConfig(
        db_path=os.environ.get("READLATER_DB_PATH", ""),
        server_url=normalize_server_url(
            os.environ.get("READLATER_SERVER_URL", DEFAULT_SERVER_URL)
        ),
        request_timeout=float(os.environ.get("READLATER_TIMEOUT", "30")),
        max_attempts=int(os.environ.get("READLATER_MAX_ATTEMPTS", "3")),
        sync_interval=float(os.environ.get("READLATER_SYNC_INTERVAL", "300")),
        log_level=os.environ.get("READLATER_LOG_LEVEL", "INFO").upper(),
        log_file=os.environ.get("READLATER_LOG_FILE") or None,
    )


_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the configuration, loading it from the environment once."""
    global _config

    if _config is None:
        _config = load_config()

    return _config
