"""Document Storage - Named JSON documents

Every piece of persisted state (permissions, settings, auto replies,
auto-line channels, challenge history) is a single named document.
Writes go through ``update()``, which loads the current document, applies
a mutator and persists the result while holding that document's lock, so
two concurrent edits never overwrite each other.
"""
from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import logger, DATA_DIR, STORAGE_TIMEOUT
from .errors import ConfigUnavailable

Mutator = Callable[[dict], Any]
DefaultFactory = Callable[[], dict]


class DocumentStore:
    """Base store. Subclasses implement ``_read`` and ``_write``."""

    def __init__(self, timeout: float = STORAGE_TIMEOUT):
        self.timeout = timeout
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _read(self, name: str) -> Optional[dict]:
        raise NotImplementedError

    async def _write(self, name: str, document: dict):
        raise NotImplementedError

    async def load(self, name: str, default_factory: Optional[DefaultFactory] = None) -> dict:
        """Return a fresh copy of a document.

        A missing document is created from ``default_factory`` (and
        persisted) so every reader sees the same initial state.
        """
        try:
            document = await asyncio.wait_for(self._read(name), self.timeout)
        except asyncio.TimeoutError:
            logger.error("Timed out reading document '%s'", name)
            raise ConfigUnavailable() from None

        if document is None:
            if default_factory is None:
                return {}
            return await self.update(name, lambda doc: copy.deepcopy(doc), default_factory)
        return document

    async def update(self, name: str, mutator: Mutator, default_factory: Optional[DefaultFactory] = None) -> Any:
        """Atomically apply ``mutator`` to the stored document.

        The mutator edits the document in place and returns a result for
        the caller. If it raises, nothing is written.

        The timeout covers waiting for the lock and reading. Once a write
        has started the lock is held until it lands, so a slow write is
        reported late but never overtaken by the next update.

        Raises:
            ConfigUnavailable: storage failed or exceeded the timeout

        """
        lock = self._locks[name]
        try:
            await asyncio.wait_for(lock.acquire(), self.timeout)
        except asyncio.TimeoutError:
            logger.error("Timed out waiting to update document '%s'", name)
            raise ConfigUnavailable() from None

        try:
            try:
                document = await asyncio.wait_for(self._read(name), self.timeout)
            except asyncio.TimeoutError:
                logger.error("Timed out reading document '%s' for update", name)
                raise ConfigUnavailable() from None
            if document is None:
                document = default_factory() if default_factory else {}
            result = mutator(document)

            write = asyncio.ensure_future(self._write(name, document))
            try:
                await asyncio.wait_for(asyncio.shield(write), self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Write of document '%s' is slow, waiting for it to finish", name)
                await write
            return result
        finally:
            lock.release()


class JsonDocumentStore(DocumentStore):
    """One ``<name>.json`` file per document inside ``directory``."""

    def __init__(self, directory: Path = DATA_DIR, timeout: float = STORAGE_TIMEOUT):
        super().__init__(timeout)
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    async def _read(self, name: str) -> Optional[dict]:
        return await asyncio.to_thread(self._read_file, self.path_for(name))

    async def _write(self, name: str, document: dict):
        await asyncio.to_thread(self._write_file, self.path_for(name), document)

    @staticmethod
    def _read_file(path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading {path.name}: {e}")
            raise ConfigUnavailable() from e
        if not isinstance(data, dict):
            logger.error(f"Error loading {path.name}: root must be an object")
            raise ConfigUnavailable()
        return data

    @staticmethod
    def _write_file(path: Path, document: dict):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a temp file and swap it in so readers never see half a file
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Error saving {path.name}: {e}")
            raise ConfigUnavailable() from e


class MemoryDocumentStore(DocumentStore):
    """In-process store. Documents are deep-copied in and out."""

    def __init__(self, documents: Optional[Dict[str, dict]] = None, timeout: float = STORAGE_TIMEOUT):
        super().__init__(timeout)
        self.documents = copy.deepcopy(documents) if documents else {}

    async def _read(self, name: str) -> Optional[dict]:
        await asyncio.sleep(0)
        document = self.documents.get(name)
        return copy.deepcopy(document) if document is not None else None

    async def _write(self, name: str, document: dict):
        await asyncio.sleep(0)
        self.documents[name] = copy.deepcopy(document)
