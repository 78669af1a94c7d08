from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Mapping
from typing import Any

from app.config import StoreSettings
from app.domain_policy import DomainPolicy, resolve_policy
from app.errors import invalid_body, not_found
from app.lifecycle import (
    REVISION,
    add_additional_fields,
    apply_initial_state,
    maybe_advance,
    stamp_create,
    stamp_update,
)
from app.patching import apply_json_patch, apply_merge_patch, ensure_identity_preserved
from app.paths import has_version_suffix, normalize_path, split_collection_path, split_item_path
from app.query import ListPage, ListQuery, project, run_list_query, split_fields
from app.resource_key import ResourceKey, is_point_query, resolve_version, split_version_suffix
from app.store import DocumentStore

logger = logging.getLogger(__name__)


class ResourceService:
    """Create, read, patch, delete and list documents of path-derived domains."""

    def __init__(self, *, store: DocumentStore, settings: StoreSettings) -> None:
        self.store = store
        self.settings = settings

    def is_collection_path(self, path: str) -> bool:
        normalized = normalize_path(path)
        if self.store.has_domain(normalized):
            return True
        domain, _ = split_item_path(normalized)
        if domain and self.store.has_domain(domain):
            return False
        return not has_version_suffix(normalized)

    def _item_key(
        self,
        segment: str,
        params: Mapping[str, str],
        policy: DomainPolicy,
    ) -> ResourceKey:
        ident, path_version = split_version_suffix(segment)
        version = resolve_version(
            path_version=path_version,
            query_version=params.get("version"),
            versioned=policy.versioned,
        )
        return ResourceKey(id=ident, version=version)

    def _lookup(
        self,
        domain: str,
        key: ResourceKey,
        policy: DomainPolicy,
    ) -> tuple[ResourceKey, dict[str, Any]]:
        if is_point_query(key, versioned=policy.versioned):
            document = self.store.get(domain, key)
        else:
            document = self.store.get_latest(domain, key.id)
        if document is None:
            raise not_found()
        if policy.versioned and key.version is None:
            key = key.with_version(resolve_version(body_version=document.get("version"), versioned=True))
        return key, document

    def create(self, path: str, body: Any, params: Mapping[str, str]) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise invalid_body("request body must be a JSON object")
        domain, path_version = split_collection_path(path)
        policy = resolve_policy(domain)
        document = copy.deepcopy(body)
        raw_id = document.get("id")
        ident = str(raw_id) if raw_id not in (None, "") else str(uuid.uuid4())
        key = ResourceKey(
            id=ident,
            version=resolve_version(
                path_version=path_version,
                body_version=document.get("version"),
                query_version=params.get("version"),
                versioned=policy.versioned,
                default_when_missing=True,
            ),
        )
        document["id"] = key.id
        if policy.versioned:
            document["version"] = key.version
        document["href"] = f"/{domain}/{key.href_suffix}"
        apply_initial_state(document, policy)
        stamp_create(document)
        add_additional_fields(document, self.settings.additional_fields)
        self.store.insert(domain, key, document)
        logger.info("document_created domain=%s key=%s", domain, key)
        return document

    def read(self, path: str, params: Mapping[str, str]) -> dict[str, Any]:
        domain, segment = split_item_path(path)
        policy = resolve_policy(domain)
        requested = self._item_key(segment, params, policy)
        with self.store.transaction():
            key, document = self._lookup(domain, requested, policy)
            if maybe_advance(document, policy, key, self.store, domain):
                self.store.replace(domain, key, document)
                logger.info(
                    "document_advanced domain=%s key=%s %s=%s",
                    domain,
                    key,
                    policy.state_field,
                    policy.terminal_value,
                )
            self.store.touch(domain, key.id)
        return project(document, split_fields(params.get("fields")))

    def _identity_fields(self, policy: DomainPolicy) -> tuple[str, ...]:
        return ("id", "version") if policy.versioned else ("id",)

    @staticmethod
    def _keep_revision(stored: dict[str, Any], patched: dict[str, Any]) -> None:
        # revision only moves through stamp_update
        if REVISION in stored:
            patched[REVISION] = stored[REVISION]
        else:
            patched.pop(REVISION, None)

    def json_patch(self, path: str, operations: Any, params: Mapping[str, str]) -> dict[str, Any]:
        domain, segment = split_item_path(path)
        policy = resolve_policy(domain)
        requested = self._item_key(segment, params, policy)
        with self.store.transaction():
            key, document = self._lookup(domain, requested, policy)
            patched = apply_json_patch(document, operations)
            ensure_identity_preserved(document, patched, self._identity_fields(policy))
            self._keep_revision(document, patched)
            if self.settings.json_patch_stamps_audit:
                stamp_update(patched)
            self.store.replace(domain, key, patched)
        logger.info("document_json_patched domain=%s key=%s", domain, key)
        return patched

    def merge_patch(self, path: str, patch: Any, params: Mapping[str, str]) -> dict[str, Any]:
        domain, segment = split_item_path(path)
        policy = resolve_policy(domain)
        requested = self._item_key(segment, params, policy)
        with self.store.transaction():
            key, document = self._lookup(domain, requested, policy)
            patched = apply_merge_patch(document, patch)
            ensure_identity_preserved(document, patched, self._identity_fields(policy))
            self._keep_revision(document, patched)
            stamp_update(patched)
            self.store.replace(domain, key, patched)
        logger.info("document_merge_patched domain=%s key=%s", domain, key)
        return patched

    def delete(self, path: str, params: Mapping[str, str]) -> None:
        domain, segment = split_item_path(path)
        policy = resolve_policy(domain)
        requested = self._item_key(segment, params, policy)
        with self.store.transaction():
            key, _ = self._lookup(domain, requested, policy)
            self.store.delete(domain, key)
        logger.info("document_deleted domain=%s key=%s", domain, key)

    def list_documents(self, path: str, params: Mapping[str, str]) -> ListPage:
        domain = normalize_path(path)
        query = ListQuery.from_params(params)
        return run_list_query(self.store.list_all(domain), query)
