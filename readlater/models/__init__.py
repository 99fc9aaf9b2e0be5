"""Data models for readlater."""
