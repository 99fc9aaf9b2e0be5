"""readlater - offline-first client for a save-for-later reading service."""

__version__ = "0.1.0"
