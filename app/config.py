from __future__ import annotations

import os
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_TTL_MS = 2 * 60 * 60 * 1000
MIN_TTL_MS = 10
DEFAULT_TOKEN_ISSUER = "resource-mock-server"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _split_csv(raw: str) -> list[str]:
    return [x.strip() for x in raw.split(",") if x.strip()]


@dataclass(frozen=True)
class AdditionalField:
    """Synthetic field injected into every created document.

    A ``value`` of ``None`` means a fresh random identifier per document.
    """

    name: str
    value: str | None = None


def parse_additional_fields(raw: str) -> tuple[AdditionalField, ...]:
    fields: list[AdditionalField] = []
    for item in _split_csv(raw):
        parts = item.split("=")
        while parts and not parts[-1]:
            parts.pop()
        # only a single name=value pair fixes the value
        if len(parts) == 2:
            fields.append(AdditionalField(name=parts[0].strip(), value=parts[1].strip()))
        else:
            fields.append(AdditionalField(name=item))
    return tuple(fields)


@dataclass(frozen=True)
class StoreSettings:
    ttl_ms: int = DEFAULT_TTL_MS
    sweep_interval_ms: int = DEFAULT_TTL_MS // 4
    additional_fields: tuple[AdditionalField, ...] = ()
    json_patch_stamps_audit: bool = False
    log_level: str = "INFO"
    token_signing_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32), repr=False)
    token_issuer: str = DEFAULT_TOKEN_ISSUER

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_ms / 1000.0

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StoreSettings":
        env = os.environ if environ is None else environ
        ttl_ms = _env_int(env, "CACHE_DURATION_MILLIS", DEFAULT_TTL_MS, minimum=MIN_TTL_MS)
        sweep_ms = _env_int(env, "CACHE_SWEEP_MILLIS", max(1, ttl_ms // 4), minimum=1)
        return cls(
            ttl_ms=ttl_ms,
            sweep_interval_ms=sweep_ms,
            additional_fields=parse_additional_fields(env.get("ADDITIONAL_FIELDS", "")),
            json_patch_stamps_audit=_as_bool(env.get("JSON_PATCH_STAMPS_AUDIT", "false")),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            token_signing_secret=env.get("TOKEN_SIGNING_SECRET", "").strip() or secrets.token_urlsafe(32),
            token_issuer=env.get("TOKEN_ISSUER", "").strip() or DEFAULT_TOKEN_ISSUER,
        )


_DURATION_UNITS = (
    ("day", 24 * 60 * 60 * 1000),
    ("hour", 60 * 60 * 1000),
    ("minute", 60 * 1000),
    ("second", 1000),
)


def format_duration(millis: int) -> str:
    """Render a millisecond span as e.g. ``2 hours, 12 minutes and 56 seconds``."""
    if millis < 0:
        raise ValueError("duration must be greater than or equal to zero")
    parts: list[str] = []
    remaining = millis
    for unit, size in _DURATION_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count} {unit}" if count == 1 else f"{count} {unit}s")
    if not parts:
        return f"{millis} milliseconds" if millis != 1 else "1 millisecond"
    if len(parts) == 1:
        return parts[0]
    return f"{', '.join(parts[:-1])} and {parts[-1]}"
