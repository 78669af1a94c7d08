from __future__ import annotations

import enum
import functools
import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import jmespath
from jmespath.exceptions import JMESPathError

from app.errors import invalid_query

DEFAULT_LIMIT = 10
MAX_LIMIT = 10
DEFAULT_SORT = "createdDate"
ALWAYS_PROJECTED = ("id", "href")

_DIGITS = re.compile(r"^\d+$")


def _parse_count(raw: str | None, default: int) -> int:
    text = (raw or "").strip()
    if not _DIGITS.match(text):
        return default
    return int(text)


def split_fields(raw: str | None) -> tuple[str, ...]:
    return tuple(x.strip() for x in (raw or "").split(",") if x.strip())


@dataclass(frozen=True)
class SortField:
    name: str
    descending: bool = False

    @classmethod
    def parse(cls, token: str) -> SortField:
        if token.startswith("-"):
            return cls(name=token[1:].strip(), descending=True)
        if token.startswith("+"):
            return cls(name=token[1:].strip())
        return cls(name=token)


@dataclass(frozen=True)
class ListQuery:
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    sort: tuple[SortField, ...] = (SortField(DEFAULT_SORT),)
    filter: str | None = None
    fields: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> ListQuery:
        limit = min(_parse_count(params.get("limit"), DEFAULT_LIMIT), MAX_LIMIT)
        offset = _parse_count(params.get("offset"), 0)
        sort_fields: list[SortField] = []
        seen: set[str] = set()
        for token in split_fields(params.get("sort") or DEFAULT_SORT):
            parsed = SortField.parse(token)
            if parsed.name and parsed.name not in seen:
                seen.add(parsed.name)
                sort_fields.append(parsed)
        filter_expr = (params.get("filter") or "").strip() or None
        return cls(
            limit=limit,
            offset=offset,
            sort=tuple(sort_fields),
            filter=filter_expr,
            fields=split_fields(params.get("fields")),
        )


@dataclass(frozen=True)
class ListPage:
    items: list[dict[str, Any]]
    total_count: int
    offset: int

    @property
    def content_range(self) -> str:
        return f"items {self.offset + 1}-{self.offset + len(self.items)}/{self.total_count}"


class SortRank(enum.IntEnum):
    BOOLEAN = 0
    NUMBER = 1
    TEXT = 2
    OTHER = 3
    MISSING = 4


def sort_value(document: Mapping[str, Any], name: str) -> tuple[SortRank, Any]:
    value = document.get(name)
    if value is None:
        return (SortRank.MISSING, None)
    if isinstance(value, bool):
        return (SortRank.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return (SortRank.NUMBER, value)
    if isinstance(value, str):
        return (SortRank.TEXT, value)
    return (SortRank.OTHER, json.dumps(value, sort_keys=True))


def _compare_values(left: tuple[SortRank, Any], right: tuple[SortRank, Any], *, descending: bool) -> int:
    left_missing = left[0] is SortRank.MISSING
    right_missing = right[0] is SortRank.MISSING
    if left_missing or right_missing:
        # missing values stay last in both directions
        return int(left_missing) - int(right_missing)
    result = (left > right) - (left < right)
    return -result if descending else result


def sort_documents(documents: Sequence[dict[str, Any]], fields: Sequence[SortField]) -> list[dict[str, Any]]:
    def compare(left: dict[str, Any], right: dict[str, Any]) -> int:
        for sort_field in fields:
            result = _compare_values(
                sort_value(left, sort_field.name),
                sort_value(right, sort_field.name),
                descending=sort_field.descending,
            )
            if result:
                return result
        return 0

    return sorted(documents, key=functools.cmp_to_key(compare))


_FILTER_TOKEN = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*")
    |(?P<squote>'(?:[^'\\]|\\.)*')
    |(?P<literal>`(?:[^`\\]|\\.)*`)
    |(?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<word>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<compare>==|!=|<=|>=|<|>)
    |(?P<space>\s+)
    |(?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)
_JSON_WORDS = {"true", "false", "null"}


def _as_literal(text: str) -> str:
    try:
        value = json.loads(text)
    except ValueError as exc:
        raise invalid_query(f"invalid filter literal: {text}") from exc
    return "`" + json.dumps(value).replace("`", "\\`") + "`"


def translate_filter(expression: str) -> str:
    """Rewrite a JSONPath style filter into the equivalent JMESPath text.

    The ``$`` root marker is dropped. Double quoted strings, bare numbers
    and ``true``/``false``/``null`` next to a comparison operator become
    JSON literals, since JMESPath reads them as field names or rejects
    them. Single quoted strings already mean the same thing in both.
    """
    text = expression.strip()
    if text.startswith("$"):
        text = text[1:].lstrip(".")
    tokens = [(match.lastgroup, match.group()) for match in _FILTER_TOKEN.finditer(text)]
    significant = [i for i, (kind, _) in enumerate(tokens) if kind != "space"]
    for position, index in enumerate(significant):
        kind, value = tokens[index]
        if kind == "word" and value not in _JSON_WORDS:
            continue
        if kind not in {"dquote", "number", "word"}:
            continue
        before = tokens[significant[position - 1]][0] if position > 0 else None
        after = tokens[significant[position + 1]][0] if position + 1 < len(significant) else None
        if before == "compare" or after == "compare":
            tokens[index] = ("literal", _as_literal(value))
    return "".join(value for _, value in tokens)


def filter_documents(documents: Sequence[dict[str, Any]], expression: str) -> list[dict[str, Any]]:
    """Evaluate a filter expression over the whole collection.

    Both JSONPath style filters such as ``$[?(@.state == "completed")]`` or
    ``$[?(@.n > 1)]`` and plain JMESPath such as ``[?kind == 'y']`` are
    accepted. Only matched objects survive.
    """
    text = translate_filter(expression)
    try:
        compiled = jmespath.compile(text)
        result = compiled.search(list(documents))
    except JMESPathError as exc:
        raise invalid_query(f"invalid filter expression: {exc}") from exc
    if isinstance(result, dict):
        result = [result]
    if not isinstance(result, list):
        return []
    return [item for item in result if isinstance(item, dict)]


def project(document: dict[str, Any], fields: Sequence[str]) -> dict[str, Any]:
    if not fields:
        return document
    keep = set(fields).union(ALWAYS_PROJECTED)
    return {name: value for name, value in document.items() if name in keep}


def run_list_query(documents: Sequence[dict[str, Any]], query: ListQuery) -> ListPage:
    selected = filter_documents(documents, query.filter) if query.filter else list(documents)
    total_count = len(selected)
    ordered = sort_documents(selected, query.sort)
    page = ordered[query.offset : query.offset + query.limit]
    return ListPage(
        items=[project(doc, query.fields) for doc in page],
        total_count=total_count,
        offset=query.offset,
    )
