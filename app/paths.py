from __future__ import annotations

from app.resource_key import VERSION_SUFFIX_MARKER, split_version_suffix


def normalize_path(path: str) -> str:
    return "/".join(part for part in path.split("/") if part)


def split_collection_path(path: str) -> tuple[str, str | None]:
    """``/catalog:(version=1.0)`` -> ``("catalog", "1.0")``."""
    domain, version = split_version_suffix(normalize_path(path))
    return normalize_path(domain), version


def split_item_path(path: str) -> tuple[str, str]:
    """``/a/b/xyz:(version=2)`` -> ``("a/b", "xyz:(version=2)")``."""
    normalized = normalize_path(path)
    if "/" not in normalized:
        return "", normalized
    domain, segment = normalized.rsplit("/", maxsplit=1)
    return domain, segment


def has_version_suffix(path: str) -> bool:
    _, segment = split_item_path(path)
    return VERSION_SUFFIX_MARKER in segment
