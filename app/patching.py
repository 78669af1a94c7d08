from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any

import jsonpatch
from jsonpointer import JsonPointerException
from jsonschema import ValidationError, validate

from app.errors import invalid_patch

JSON_PATCH_MEDIA_TYPE = "application/json-patch+json"

JSON_PATCH_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["op", "path"],
        "properties": {
            "op": {"enum": ["add", "remove", "replace", "move", "copy", "test"]},
            "path": {"type": "string"},
            "from": {"type": "string"},
        },
        "allOf": [
            {
                "if": {"properties": {"op": {"enum": ["add", "replace", "test"]}}},
                "then": {"required": ["value"]},
            },
            {
                "if": {"properties": {"op": {"enum": ["move", "copy"]}}},
                "then": {"required": ["from"]},
            },
        ],
    },
}


def is_json_patch_request(content_type: str | None, body: Any) -> bool:
    if isinstance(body, list):
        return True
    media_type = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    return media_type == JSON_PATCH_MEDIA_TYPE


def apply_json_patch(document: dict[str, Any], operations: Any) -> dict[str, Any]:
    """Apply an RFC 6902 patch to a copy of ``document``.

    Operations run strictly in order and the whole patch fails on the first
    failing operation, leaving ``document`` untouched.
    """
    try:
        validate(instance=operations, schema=JSON_PATCH_SCHEMA)
    except ValidationError as exc:
        raise invalid_patch(f"invalid json patch: {exc.message}") from exc
    try:
        patched = jsonpatch.JsonPatch(operations).apply(document, in_place=False)
    except (jsonpatch.JsonPatchException, JsonPointerException) as exc:
        raise invalid_patch(str(exc)) from exc
    if not isinstance(patched, dict):
        raise invalid_patch("json patch must leave the document a JSON object")
    return patched


def _merge(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for name, value in patch.items():
        if value is None:
            result.pop(name, None)
        else:
            result[name] = _merge(result.get(name), value)
    return result


def apply_merge_patch(document: dict[str, Any], patch: Any) -> dict[str, Any]:
    """Apply an RFC 7396 merge patch to a copy of ``document``."""
    if not isinstance(patch, dict):
        raise invalid_patch("merge patch must be a JSON object")
    return _merge(document, patch)


def ensure_identity_preserved(
    before: dict[str, Any],
    after: dict[str, Any],
    fields: Iterable[str],
) -> None:
    for name in fields:
        if before.get(name) != after.get(name):
            raise invalid_patch(f"patch must not change '{name}'")
