"""Filesystem-backed article store.

Every article is one markdown file under a single directory. The directory
listing is the source of truth; there is no index file. Names are
normalized to carry the `.md` extension, so `notes` and `notes.md` address
the same document.

Operations on the same name are serialized through a per-name
`asyncio.Lock`; operations on distinct names run concurrently. Locks are
held weakly and disappear once no operation holds or waits on them.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from models.document_models import Document, DocumentInfo, StoreStats
from services.errors import (
    DocumentNotFoundError,
    InvalidDocumentNameError,
    StoreReadError,
    StoreWriteError,
)

LOGGER = logging.getLogger(__name__)

CANONICAL_EXTENSION = ".md"


def normalize_name(name: str) -> str:
    """Return the canonical file name for an article.

    Normalizing an already-normalized name is a no-op.

    Raises:
        InvalidDocumentNameError: If the name is empty, hidden, or contains a
            path separator.
    """
    cleaned = (name or "").strip()
    if not cleaned or cleaned == CANONICAL_EXTENSION:
        raise InvalidDocumentNameError("Article name is required.")
    if "/" in cleaned or "\\" in cleaned or cleaned.startswith("."):
        raise InvalidDocumentNameError(f"Invalid article name: '{name}'")
    if not cleaned.endswith(CANONICAL_EXTENSION):
        cleaned = f"{cleaned}{CANONICAL_EXTENSION}"
    return cleaned


class DocumentStore:
    """Async map from article name to markdown content."""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[name] = lock
        return lock

    async def _ensure_dir(self) -> None:
        await aiofiles.os.makedirs(self.base_dir, exist_ok=True)

    async def put(self, name: str, content: str) -> Document:
        """Write an article, overwriting any previous version."""
        normalized = normalize_name(name)
        path = self.base_dir / normalized
        async with self._lock_for(normalized):
            tmp_path = path.with_name(f".{normalized}.{uuid.uuid4().hex}.tmp")
            try:
                await self._ensure_dir()
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as fh:
                    await fh.write(content)
                await aiofiles.os.replace(tmp_path, path)
            except (OSError, UnicodeEncodeError) as exc:
                LOGGER.error("Failed to save article %s: %s", normalized, exc)
                if await aiofiles.os.path.exists(tmp_path):
                    await aiofiles.os.remove(tmp_path)
                raise StoreWriteError(f"Failed to save article: {exc}") from exc
        LOGGER.info("Article saved: %s", normalized)
        return Document(name=normalized, content=content)

    async def get(self, name: str) -> str:
        """Return the content of an article.

        Raises:
            DocumentNotFoundError: If no article exists under the name.
            StoreReadError: If the file exists but cannot be read or decoded.
        """
        normalized = normalize_name(name)
        path = self.base_dir / normalized
        async with self._lock_for(normalized):
            try:
                async with aiofiles.open(path, "r", encoding="utf-8") as fh:
                    content = await fh.read()
            except FileNotFoundError as exc:
                LOGGER.warning("Article not found: %s", normalized)
                raise DocumentNotFoundError(f"Article not found: {normalized}") from exc
            except UnicodeDecodeError as exc:
                LOGGER.error("Article %s is not valid UTF-8: %s", normalized, exc)
                raise StoreReadError(f"Article is not valid UTF-8: {normalized}") from exc
            except OSError as exc:
                LOGGER.error("Failed to read article %s: %s", normalized, exc)
                raise StoreReadError(f"Failed to read article: {exc}") from exc
        return content

    async def delete(self, name: str) -> bool:
        """Delete an article; return False when it did not exist."""
        normalized = normalize_name(name)
        path = self.base_dir / normalized
        async with self._lock_for(normalized):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                LOGGER.warning("Article not found for deletion: %s", normalized)
                return False
            except OSError as exc:
                LOGGER.error("Failed to delete article %s: %s", normalized, exc)
                raise StoreWriteError(f"Failed to delete article: {exc}") from exc
        LOGGER.info("Article deleted: %s", normalized)
        return True

    async def list(self) -> List[str]:
        """Return stored article names sorted lexicographically."""
        try:
            await self._ensure_dir()
            entries = await aiofiles.os.listdir(self.base_dir)
        except OSError as exc:
            LOGGER.error("Failed to list articles: %s", exc)
            raise StoreReadError(f"Failed to list articles: {exc}") from exc
        names = [
            entry
            for entry in entries
            if entry.endswith(CANONICAL_EXTENSION) and not entry.startswith(".")
        ]
        return sorted(names)

    async def stats(self) -> StoreStats:
        """Return counts and per-article details, newest first."""
        documents: List[DocumentInfo] = []
        for name in await self.list():
            path = self.base_dir / name
            try:
                stat_result = await aiofiles.os.stat(path)
                async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as fh:
                    content = await fh.read()
            except FileNotFoundError:
                # Deleted between listing and stat.
                continue
            except OSError as exc:
                raise StoreReadError(f"Failed to read article stats: {exc}") from exc
            documents.append(
                DocumentInfo(
                    name=name,
                    bytes=stat_result.st_size,
                    line_count=len(content.split("\n")),
                    modified_at=stat_result.st_mtime,
                )
            )
        documents.sort(key=lambda info: info.modified_at, reverse=True)
        return StoreStats(
            count=len(documents),
            total_bytes=sum(info.bytes for info in documents),
            documents=documents,
        )
