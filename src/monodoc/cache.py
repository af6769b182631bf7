"""Content-addressed file cache for generation results."""

import asyncio
import hashlib
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Optional
from pydantic import ValidationError

from .errors import CacheError
from .fileio import atomic_write_text
from .models import CacheEntry

logger = logging.getLogger(__name__)


def hash_key(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


_DOC_COMMENT = re.compile(r"/\*\*.*?\*/", re.DOTALL)


def canonical_code(text: str) -> str:
    """Code text without doc comments, trailing whitespace or blank lines.

    Documenting a class's methods therefore leaves the class's key unchanged.
    """
    stripped = _DOC_COMMENT.sub("", text)
    return "\n".join(line.rstrip() for line in stripped.splitlines() if line.strip())


def generation_cache_key(code_text: str, model_id: str, prompt_version: str) -> str:
    """Key for a generated doc.

    Covers the code, the model and the prompt template, so changing any of
    them forces regeneration.
    """
    material = "\0".join((canonical_code(code_text), model_id, prompt_version))
    return f"doc:{hash_key(material)}"


def embedding_cache_key(text: str, model_id: str) -> str:
    """Key for one embedding vector, tied to the embedding model."""
    material = "\0".join((text, model_id))
    return f"embedding:{hash_key(material)}"


class CacheStore:
    """One JSON file per key under ``cache_dir``.

    Files are named by the sha256 of the key, so any key string is safe.
    Reads never raise: a missing, corrupt, expired or version-mismatched
    entry is a miss. Write failures are logged and swallowed.
    """

    def __init__(self, cache_dir: Path, version: str, max_age_hours: Optional[float] = 24.0):
        self.cache_dir = cache_dir
        self.version = version
        self.max_age_seconds = max_age_hours * 3600 if max_age_hours else None

    def _path_for(self, key: str) -> Path:
        return self.cache_dir / f"{hash_key(key)}.json"

    def _is_valid(self, entry: CacheEntry, content: Optional[str]) -> bool:
        if entry.version != self.version:
            logger.debug("Cache entry invalidated: version %s != %s", entry.version, self.version)
            return False
        if self.max_age_seconds is not None and time.time() - entry.timestamp > self.max_age_seconds:
            logger.debug("Cache entry invalidated: expired")
            return False
        if content is not None and entry.hash != hash_key(content):
            logger.debug("Cache entry invalidated: content hash mismatch")
            return False
        return True

    async def initialize(self) -> None:
        try:
            await asyncio.to_thread(self.cache_dir.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Failed to initialize cache directory %s: %s", self.cache_dir, e)

    async def get(self, key: str, content: Optional[str] = None) -> Any:
        """Return the cached value, or None on any kind of miss."""
        path = self._path_for(key)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cache read error for key %s: %s", key, e)
            return None

        try:
            entry = CacheEntry.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.debug("Corrupt cache entry for key %s: %s", key, e)
            await self.delete(key)
            return None

        if not self._is_valid(entry, content):
            await self.delete(key)
            return None

        return entry.data

    async def set(self, key: str, value: Any, content: Optional[str] = None) -> None:
        entry = CacheEntry(
            data=value,
            timestamp=time.time(),
            version=self.version,
            hash=hash_key(content if content is not None else key),
        )
        path = self._path_for(key)
        try:
            payload = entry.model_dump_json()
            await asyncio.to_thread(atomic_write_text, path, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to write cache entry for key %s: %s", key, e)

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete cache entry for key %s: %s", key, e)

    async def clear(self) -> int:
        """Remove every entry. Returns the number of files removed.

        Raises:
            CacheError: If the cache path exists but is not a directory
        """
        def _clear() -> int:
            removed = 0
            if not self.cache_dir.exists():
                return 0
            if not self.cache_dir.is_dir():
                raise CacheError(
                    f"Cache path {self.cache_dir} is not a directory",
                    {"cache_dir": str(self.cache_dir)},
                )
            for path in self.cache_dir.glob("*.json"):
                try:
                    path.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning("Failed to remove cache file %s: %s", path, e)
            return removed

        removed = await asyncio.to_thread(_clear)
        logger.info("Cleared %d cache entries from %s", removed, self.cache_dir)
        return removed
