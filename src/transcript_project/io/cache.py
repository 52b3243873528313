"""
cache.py

Namespaced key/value cache with optional TTL and an optional on-disk tier.

Layout on disk
--------------
    <base_path>/<namespace>/<sha256(key)>.json
        {"value": <json>, "expiry": <epoch millis>}   # "expiry" omitted if none

Tiers
-----
1) In-memory dict, always checked first and always written synchronously.
   It is authoritative for the running process.
2) Persisted JSON files (only when base_path is given). Read on a memory
   miss and used to rehydrate memory. Writes are best effort: a failure is
   logged and never reaches the caller.

An entry past its expiry is reported as absent and deleted from whichever
tier noticed. A persisted file that cannot be parsed is deleted and treated
as a miss.

Blocking file work runs through asyncio.to_thread(); the memory dict is only
touched on the event loop thread, so no locking is done here. Two
overlapping set() calls for the same key both write; the last os.replace()
wins.

CacheContext replaces a process-wide registry: it holds one CacheService per
namespace and is passed explicitly to the components that need one.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

from transcript_project.errors import CacheCorruptionError, MissingCacheNamespaceError
from transcript_project.io.jsonio import load_json, safe_write_json

logger = logging.getLogger(__name__)

ONE_WEEK_SECONDS = 7 * 24 * 3600
DEFAULT_CACHE_ROOT = "data/cache"
TRANSCRIPT_CACHE_NAMESPACE = "transcripts"


def _sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _reset_dir(path: str) -> None:
    if os.path.isdir(path):
        shutil.rmtree(path)
    os.makedirs(path, exist_ok=True)


@dataclass
class CacheItem:
    value: Any
    expiry: Optional[int] = None  # epoch millis

    def is_expired(self, now_ms: int) -> bool:
        return self.expiry is not None and self.expiry < now_ms

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"value": self.value}
        if self.expiry is not None:
            d["expiry"] = self.expiry
        return d

    @classmethod
    def from_dict(cls, obj: Any) -> "CacheItem":
        if not isinstance(obj, dict) or "value" not in obj:
            raise CacheCorruptionError(f"expected an object with a 'value' field, got {type(obj).__name__}")
        expiry = obj.get("expiry")
        if expiry is not None and not isinstance(expiry, (int, float)):
            raise CacheCorruptionError(f"invalid expiry: {expiry!r}")
        return cls(value=obj["value"], expiry=int(expiry) if expiry is not None else None)


class CacheService:
    """
    Cache for a single namespace.

    Args:
        namespace: Non-empty partition name; also the on-disk subdirectory.
        default_ttl_seconds: TTL applied when set() is called without one.
            None or 0 means entries never expire.
        base_path: Root directory of the persisted tier. None keeps the
            cache memory-only.
        clock: Returns the current time in seconds (time.time by default).
    """

    def __init__(
        self,
        namespace: str,
        default_ttl_seconds: Optional[float] = None,
        base_path: Optional[str] = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        if not namespace or not namespace.strip():
            raise ValueError("CacheService namespace cannot be empty.")
        self.namespace = namespace.strip()
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._store: Dict[str, CacheItem] = {}
        self.persistent_path: Optional[str] = None

        if base_path:
            path = os.path.join(base_path, self.namespace)
            try:
                os.makedirs(path, exist_ok=True)
                self.persistent_path = path
            except OSError as exc:
                logger.error("[%s] failed to create persistent cache dir %s: %s", self.namespace, path, exc)

        logger.info(
            "[%s] cache created (default ttl=%s, persistent=%s)",
            self.namespace,
            f"{default_ttl_seconds}s" if default_ttl_seconds else "none",
            self.persistent_path or "off",
        )

    @property
    def persistent_enabled(self) -> bool:
        return self.persistent_path is not None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def file_path(self, key: str) -> Optional[str]:
        if self.persistent_path is None:
            return None
        return os.path.join(self.persistent_path, _sha256(key) + ".json")

    async def _remove_file(self, path: str) -> bool:
        try:
            await asyncio.to_thread(os.remove, path)
            return True
        except FileNotFoundError:
            return False

    async def _load_file(self, key: str) -> Optional[CacheItem]:
        """
        Read the persisted entry for key.

        Returns None when the file is absent. Unreadable or malformed files
        are deleted and also reported as None.
        """
        path = self.file_path(key)
        if path is None or not await asyncio.to_thread(os.path.exists, path):
            return None
        try:
            try:
                obj = await asyncio.to_thread(load_json, path)
            except (OSError, ValueError) as exc:
                raise CacheCorruptionError(str(exc)) from exc
            return CacheItem.from_dict(obj)
        except CacheCorruptionError as exc:
            logger.warning("[%s] corrupt cache file for key %s at %s (%s); deleting", self.namespace, key, path, exc)
            try:
                await self._remove_file(path)
            except OSError as rm_exc:
                logger.warning("[%s] could not delete corrupt cache file %s: %s", self.namespace, path, rm_exc)
            return None

    async def _drop_stale_file(self, key: str) -> None:
        path = self.file_path(key)
        if path is None:
            return
        try:
            if await self._remove_file(path):
                logger.debug("[%s] deleted stale cache file for key %s", self.namespace, key)
        except OSError as exc:
            logger.warning("[%s] failed to delete stale cache file %s: %s", self.namespace, path, exc)

    async def get(self, key: str) -> Any:
        """Return the cached value, or None if absent or expired."""
        full_key = self._full_key(key)
        item = self._store.get(full_key)
        if item is not None:
            if item.is_expired(self._now_ms()):
                logger.debug("[%s] memory STALE for key %s", self.namespace, key)
                del self._store[full_key]
                await self._drop_stale_file(key)
                return None
            logger.debug("[%s] memory HIT for key %s", self.namespace, key)
            return item.value

        item = await self._load_file(key)
        if item is None:
            logger.debug("[%s] MISS for key %s", self.namespace, key)
            return None
        if item.is_expired(self._now_ms()):
            logger.debug("[%s] persistent STALE for key %s", self.namespace, key)
            await self._drop_stale_file(key)
            return None

        logger.debug("[%s] persistent HIT for key %s; hydrating memory", self.namespace, key)
        self._store[full_key] = item
        return item.value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        item = CacheItem(value=value)
        if ttl and ttl > 0:
            item.expiry = self._now_ms() + int(ttl * 1000)
        self._store[self._full_key(key)] = item
        logger.debug("[%s] SET key %s (expiry=%s)", self.namespace, key, item.expiry)

        path = self.file_path(key)
        if path is None:
            return
        try:
            await asyncio.to_thread(safe_write_json, path, item.to_dict())
        except (OSError, TypeError, ValueError) as exc:
            logger.error("[%s] failed to persist key %s at %s: %s", self.namespace, key, path, exc)

    async def has(self, key: str) -> bool:
        full_key = self._full_key(key)
        item = self._store.get(full_key)
        if item is not None:
            if item.is_expired(self._now_ms()):
                del self._store[full_key]
                await self._drop_stale_file(key)
                return False
            return True

        item = await self._load_file(key)
        if item is None:
            return False
        if item.is_expired(self._now_ms()):
            await self._drop_stale_file(key)
            return False
        return True

    async def delete(self, key: str) -> bool:
        removed = self._store.pop(self._full_key(key), None) is not None

        path = self.file_path(key)
        if path is not None:
            try:
                removed = await self._remove_file(path) or removed
            except OSError as exc:
                logger.error("[%s] failed to delete cache file %s: %s", self.namespace, path, exc)
        return removed

    async def clear_namespace(self) -> None:
        prefix = f"{self.namespace}:"
        stale = [k for k in self._store if k.startswith(prefix)]
        for k in stale:
            del self._store[k]
        logger.info("[%s] cleared %d in-memory item(s)", self.namespace, len(stale))

        if self.persistent_path is None:
            return
        try:
            await asyncio.to_thread(_reset_dir, self.persistent_path)
            logger.info("[%s] cleared persistent cache dir %s", self.namespace, self.persistent_path)
        except OSError as exc:
            logger.error("[%s] failed to clear persistent cache dir %s: %s", self.namespace, self.persistent_path, exc)


class CacheContext:
    """Holds one CacheService per namespace."""

    def __init__(self) -> None:
        self._services: Dict[str, CacheService] = {}

    def register(self, service: CacheService) -> CacheService:
        self._services[service.namespace] = service
        return service

    def get(self, namespace: str) -> Optional[CacheService]:
        return self._services.get(namespace)

    def require(self, namespace: str) -> CacheService:
        service = self._services.get(namespace)
        if service is None:
            raise MissingCacheNamespaceError(namespace)
        return service

    def __contains__(self, namespace: str) -> bool:
        return namespace in self._services

    def __iter__(self) -> Iterator[CacheService]:
        return iter(list(self._services.values()))

    async def clear_all(self) -> int:
        """Clear every registered namespace; returns how many were cleared."""
        cleared = 0
        for service in self:
            await service.clear_namespace()
            cleared += 1
        logger.info("cleared %d cache namespace(s)", cleared)
        return cleared


def init_shared_caches(
    cache_root: Optional[str] = DEFAULT_CACHE_ROOT,
    default_ttl_seconds: Optional[float] = ONE_WEEK_SECONDS,
) -> CacheContext:
    """
    Build the CacheContext used by the transcript pipeline.

    Registers the "transcripts" namespace, persisted under cache_root unless
    cache_root is None.
    """
    context = CacheContext()
    context.register(CacheService(TRANSCRIPT_CACHE_NAMESPACE, default_ttl_seconds, cache_root))
    return context
