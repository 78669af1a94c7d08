from __future__ import annotations

import bisect
import copy
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from app.errors import conflict
from app.resource_key import ResourceKey

logger = logging.getLogger(__name__)


class StorePreconditionError(RuntimeError):
    """A caller asked the store to change an entry it never checked for."""


@dataclass
class StoreEntry:
    document: dict[str, Any]
    touched_at: float


@dataclass(frozen=True)
class DomainSummary:
    domain: str
    size: int


class DocumentStore:
    """Per-domain ephemeral document cache with time based eviction.

    Every public method takes the same re-entrant lock, so compound flows
    wrapped in ``transaction()`` see a consistent view while the eviction
    sweep waits.
    """

    def __init__(self, *, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, dict[ResourceKey, StoreEntry]] = {}
        # domain -> id -> versions in key order (None first)
        self._versions: dict[str, dict[str, list[str | None]]] = {}

    @staticmethod
    def _version_sort_key(version: str | None) -> tuple[bool, str]:
        return (version is not None, version or "")

    @contextmanager
    def transaction(self) -> Iterator[DocumentStore]:
        with self._lock:
            yield self

    def _index_add(self, domain: str, key: ResourceKey) -> None:
        versions = self._versions.setdefault(domain, {}).setdefault(key.id, [])
        sort_keys = [self._version_sort_key(v) for v in versions]
        at = bisect.bisect_left(sort_keys, self._version_sort_key(key.version))
        versions.insert(at, key.version)

    def _index_remove(self, domain: str, key: ResourceKey) -> None:
        by_id = self._versions.get(domain, {})
        versions = by_id.get(key.id)
        if not versions:
            return
        if key.version in versions:
            versions.remove(key.version)
        if not versions:
            del by_id[key.id]

    def insert(self, domain: str, key: ResourceKey, document: dict[str, Any]) -> None:
        with self._lock:
            entries = self._entries.setdefault(domain, {})
            if key in entries:
                raise conflict(str(key))
            entries[key] = StoreEntry(document=copy.deepcopy(document), touched_at=self._clock())
            self._index_add(domain, key)

    def replace(self, domain: str, key: ResourceKey, document: dict[str, Any]) -> None:
        with self._lock:
            entries = self._entries.get(domain, {})
            if key not in entries:
                raise StorePreconditionError(f"cannot replace missing entry {domain}/{key}")
            entries[key] = StoreEntry(document=copy.deepcopy(document), touched_at=self._clock())

    def get(self, domain: str, key: ResourceKey) -> dict[str, Any] | None:
        with self._lock:
            entry = self._entries.get(domain, {}).get(key)
            if entry is None:
                return None
            return copy.deepcopy(entry.document)

    def latest_version(self, domain: str, ident: str) -> str | None:
        with self._lock:
            versions = self._versions.get(domain, {}).get(ident)
            if not versions:
                return None
            return versions[-1]

    def get_latest(self, domain: str, ident: str) -> dict[str, Any] | None:
        with self._lock:
            versions = self._versions.get(domain, {}).get(ident)
            if not versions:
                return None
            return self.get(domain, ResourceKey(id=ident, version=versions[-1]))

    def touch(self, domain: str, ident: str) -> None:
        with self._lock:
            versions = self._versions.get(domain, {}).get(ident)
            if not versions:
                raise StorePreconditionError(f"cannot touch missing id {domain}/{ident}")
            now = self._clock()
            entries = self._entries[domain]
            for version in versions:
                entries[ResourceKey(id=ident, version=version)].touched_at = now

    def delete(self, domain: str, key: ResourceKey) -> bool:
        with self._lock:
            entries = self._entries.get(domain, {})
            if entries.pop(key, None) is None:
                return False
            self._index_remove(domain, key)
            return True

    def list_all(self, domain: str) -> list[dict[str, Any]]:
        with self._lock:
            entries = self._entries.get(domain, {})
            return [copy.deepcopy(entries[key].document) for key in sorted(entries)]

    def has_domain(self, domain: str) -> bool:
        with self._lock:
            return domain in self._entries

    def is_empty(self, domain: str) -> bool:
        with self._lock:
            return not self._entries.get(domain)

    def remove_domain(self, domain: str) -> bool:
        with self._lock:
            self._versions.pop(domain, None)
            return self._entries.pop(domain, None) is not None

    def domains(self) -> list[DomainSummary]:
        with self._lock:
            return [DomainSummary(domain=name, size=len(entries)) for name, entries in sorted(self._entries.items())]

    def evict_expired(self) -> list[tuple[str, ResourceKey]]:
        evicted: list[tuple[str, ResourceKey]] = []
        with self._lock:
            now = self._clock()
            for domain, entries in self._entries.items():
                expired = [key for key, entry in entries.items() if now - entry.touched_at >= self.ttl_seconds]
                for key in expired:
                    del entries[key]
                    self._index_remove(domain, key)
                    evicted.append((domain, key))
        if evicted:
            logger.debug("evicted %d expired entries", len(evicted))
        return evicted
