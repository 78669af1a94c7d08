from __future__ import annotations

import secrets
import string
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from app.config import AdditionalField
from app.domain_policy import DomainPolicy
from app.resource_key import ResourceKey
from app.store import DocumentStore

CREATED_DATE = "createdDate"
CREATED_BY = "createdBy"
UPDATED_DATE = "updatedDate"
UPDATED_BY = "updatedBy"
REVISION = "revision"

_ALPHANUMERIC = string.ascii_letters + string.digits


def _utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


def random_identifier(length: int = 10) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def strip_update_fields(document: dict[str, Any]) -> None:
    document.pop(UPDATED_DATE, None)
    document.pop(UPDATED_BY, None)


def stamp_create(document: dict[str, Any]) -> None:
    strip_update_fields(document)
    document[CREATED_DATE] = _utcnow_iso()
    document[CREATED_BY] = random_identifier()
    document[REVISION] = 0


def stamp_update(document: dict[str, Any]) -> None:
    document[UPDATED_DATE] = _utcnow_iso()
    document[UPDATED_BY] = random_identifier()
    current = document.get(REVISION)
    if isinstance(current, bool) or not isinstance(current, int):
        current = -1
    document[REVISION] = current + 1


def apply_initial_state(document: dict[str, Any], policy: DomainPolicy) -> None:
    if document.get(policy.state_field) is None:
        document[policy.state_field] = policy.initial_value


def add_additional_fields(document: dict[str, Any], fields: Iterable[AdditionalField]) -> None:
    for item in fields:
        document[item.name] = item.value if item.value is not None else random_identifier()


def maybe_advance(
    document: dict[str, Any],
    policy: DomainPolicy,
    key: ResourceKey,
    store: DocumentStore,
    domain: str,
) -> bool:
    """Move a never-updated document from its initial to its terminal state.

    Only the latest version of a versioned resource advances. The caller
    writes the document back when this returns True.
    """
    if UPDATED_DATE in document or UPDATED_BY in document:
        return False
    if document.get(policy.state_field) != policy.initial_value:
        return False
    if policy.versioned and key.version != store.latest_version(domain, key.id):
        return False
    document[policy.state_field] = policy.terminal_value
    stamp_update(document)
    return True
