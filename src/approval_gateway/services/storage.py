"""Key-value storage adapters.

The gateway only needs a narrow async string store: one for persisted
history and one, with restrictive file permissions, for the device token.
Platform keychains plug in by implementing ``KeyValueStore``.
"""

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


class KeyValueStore(Protocol):
    """Protocol for async string storage."""

    async def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        ...

    async def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def delete_item(self, key: str) -> None:
        """Remove a value. Missing keys are ignored."""
        ...


class InMemoryStore:
    """Dict-backed store for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def delete_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStore:
    """Stores each key as a file in a directory.

    Writes go to a temporary file that is atomically renamed into place, so a
    crash never leaves a half-written value. File I/O runs in a worker thread
    via ``asyncio.to_thread``.
    """

    def __init__(self, directory: Path, file_mode: int = 0o600) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding one file per key (created on write)
            file_mode: Permission bits applied to every written file
        """
        self._directory = Path(directory).expanduser()
        self._file_mode = file_mode

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / key

    async def get_item(self, key: str) -> str | None:
        return await asyncio.to_thread(self._sync_read, self._path(key))

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._sync_write, self._path(key), value)

    async def delete_item(self, key: str) -> None:
        await asyncio.to_thread(self._sync_delete, self._path(key))

    # Private sync helpers (called via asyncio.to_thread)

    def _sync_read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _sync_write(self, path: Path, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.chmod(tmp_name, self._file_mode)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    def _sync_delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)
