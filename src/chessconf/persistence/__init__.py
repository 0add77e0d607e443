"""Persistence collaborators for the serialized settings text."""

from chessconf.persistence.backends import ConfigBackend, FileConfigBackend, MemoryConfigBackend

__all__ = ["ConfigBackend", "FileConfigBackend", "MemoryConfigBackend"]
