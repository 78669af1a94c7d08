from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering

VERSION_SUFFIX_MARKER = ":(version="
DEFAULT_VERSION = "0"


@total_ordering
@dataclass(frozen=True)
class ResourceKey:
    """Composite key of a stored document.

    Keys order by id, then by version; a missing version sorts before any
    present one and present versions compare as plain strings.
    """

    id: str
    version: str | None = None

    def _sort_tuple(self) -> tuple[str, bool, str]:
        return (self.id, self.version is not None, self.version or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ResourceKey):
            return NotImplemented
        return self._sort_tuple() < other._sort_tuple()

    @property
    def href_suffix(self) -> str:
        if self.version is None:
            return self.id
        return f"{self.id}{VERSION_SUFFIX_MARKER}{self.version})"

    def with_version(self, version: str | None) -> ResourceKey:
        return ResourceKey(id=self.id, version=version)

    def __str__(self) -> str:
        return self.href_suffix


def split_version_suffix(segment: str) -> tuple[str, str | None]:
    """Split ``abc:(version=1.0)`` into ``("abc", "1.0")``."""
    marker_at = segment.find(VERSION_SUFFIX_MARKER)
    if marker_at < 0:
        return segment, None
    ident = segment[:marker_at]
    version = segment[marker_at + len(VERSION_SUFFIX_MARKER) :]
    if version.endswith(")"):
        version = version[:-1]
    return ident, version or None


def _normalize_version(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def resolve_version(
    *,
    path_version: str | None = None,
    body_version: object = None,
    query_version: object = None,
    versioned: bool,
    default_when_missing: bool = False,
) -> str | None:
    if not versioned:
        return None
    for candidate in (path_version, body_version, query_version):
        version = _normalize_version(candidate)
        if version is not None:
            return version
    if default_when_missing:
        return DEFAULT_VERSION
    return None


def is_point_query(key: ResourceKey, *, versioned: bool) -> bool:
    return not versioned or key.version is not None
