"""
chessconf - persistence collaborators for the settings text.

File: src/chessconf/persistence/backends.py

Purpose
- Define the async read/write/erase contract the store persists through.
- Provide a file backend and an in-memory backend.

Functional requirements
- ``read`` returns ``None`` when nothing has been persisted yet.
- Every failure surfaces as ``PersistenceError``.

Non-functional requirements
- Blocking file IO never runs on the event loop thread.
- Writes are atomic: readers see either the old or the new text.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from chessconf.errors import PersistenceError


@runtime_checkable
class ConfigBackend(Protocol):
    """Opaque storage for the serialized settings text.

    Implementations raise ``PersistenceError``; the store records any
    exception from these calls as a failure.
    """

    async def read(self) -> str | None:
        """Return the persisted text, or ``None`` when nothing is stored."""

    async def write(self, text: str) -> None:
        """Replace the persisted text."""

    async def erase(self) -> None:
        """Remove any persisted text."""


class FileConfigBackend:
    """UTF-8 file storage; blocking calls are offloaded via ``asyncio.to_thread``."""

    def __init__(self, path: str | Path, *, encoding: str = "utf-8") -> None:
        self._path = Path(path)
        self._encoding = encoding

    @property
    def path(self) -> Path:
        return self._path

    async def read(self) -> str | None:
        return await asyncio.to_thread(self.read_sync)

    async def write(self, text: str) -> None:
        await asyncio.to_thread(self.write_sync, text)

    async def erase(self) -> None:
        await asyncio.to_thread(self.erase_sync)

    def read_sync(self) -> str | None:
        try:
            return self._path.read_text(encoding=self._encoding)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"unable to read config file {self._path}: {exc}") from exc

    def write_sync(self, text: str) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding=self._encoding, newline="\n") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except (OSError, UnicodeEncodeError) as exc:
            raise PersistenceError(f"unable to write config file {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def erase_sync(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"unable to erase config file {self._path}: {exc}") from exc

    def __repr__(self) -> str:
        return f"FileConfigBackend({str(self._path)!r})"


class MemoryConfigBackend:
    """In-memory text slot that records every write."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text
        self.writes: list[str] = []
        self.erase_count = 0

    async def read(self) -> str | None:
        return self.text

    async def write(self, text: str) -> None:
        self.writes.append(text)
        self.text = text

    async def erase(self) -> None:
        self.erase_count += 1
        self.text = None


__all__ = ["ConfigBackend", "FileConfigBackend", "MemoryConfigBackend"]
