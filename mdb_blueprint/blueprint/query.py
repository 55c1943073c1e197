"""
Request-to-query translation.

Turns the query string of a List request into a filter document, a
pagination window and a sort directive, and a Patch body into a $set
document:

    GET /articles/?tag=go&tag=python&_sort=-title&_limit=10&_offset=20

    filter = {"tag": {"$in": ["go", "python"]}}
    skip = 20, limit = 10, sort = [("title", DESCENDING)]
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from ..constants import (IMMUTABLE_FIELDS, LIMIT_PARAM, OFFSET_PARAM,
                         RESERVED_QUERY_PARAMS, SORT_PARAM)
from ..exceptions import ClientInputError, InvalidParameterError
from ..utils.mongo import parse_object_id


@dataclass
class QuerySpec:
    """
    A translated List query.

    Attributes:
        filter: Filter document for find()
        skip: Documents to skip (0 for none)
        limit: Maximum documents to return (0 for unbounded)
        sort: (field, direction) pairs, or None for the store's natural order
    """

    filter: dict[str, Any] = field(default_factory=dict)
    skip: int = 0
    limit: int = 0
    sort: list[tuple[str, int]] | None = None


def _values(params: Mapping[str, Any], key: str) -> list[str]:
    # Starlette QueryParams / MultiDict expose getlist(); plain dicts may hold lists
    if hasattr(params, "getlist"):
        return list(params.getlist(key))
    value = params[key]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _first(params: Mapping[str, Any], key: str) -> str:
    if key not in params:
        return ""
    values = _values(params, key)
    return values[0].strip() if values else ""


def parse_non_negative_int(params: Mapping[str, Any], key: str) -> int:
    """
    Parse a pagination parameter.

    Missing or empty values mean 0.

    Raises:
        InvalidParameterError: If the value is not an integer or is negative
    """
    raw = _first(params, key)
    if raw == "":
        return 0
    try:
        value = int(raw)
    except ValueError as e:
        raise InvalidParameterError(
            f"{key} must be an integer", parameter=key, value=raw
        ) from e
    if value < 0:
        raise InvalidParameterError(f"{key} must be >= 0", parameter=key, value=raw)
    return value


def parse_sort(raw: str) -> list[tuple[str, int]] | None:
    """
    Parse a sort directive: comma-separated fields, '-' prefix for descending.

        "-created,title" -> [("created", DESCENDING), ("title", ASCENDING)]
    """
    sort: list[tuple[str, int]] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        direction = ASCENDING
        if part[0] in "+-":
            direction = DESCENDING if part[0] == "-" else ASCENDING
            part = part[1:].strip()
        if not part:
            raise InvalidParameterError(
                "sort field name missing", parameter=SORT_PARAM, value=raw
            )
        if part.startswith("$"):
            raise InvalidParameterError(
                "sort field must not start with '$'", parameter=SORT_PARAM, value=raw
            )
        sort.append((part, direction))
    return sort or None


def _filter_id(key: str, value: str) -> ObjectId:
    try:
        return parse_object_id(value)
    except ClientInputError as e:
        raise InvalidParameterError(
            f"{key} must be a 24-character hex ObjectId", parameter=key, value=value
        ) from e


def build_filter(params: Mapping[str, Any]) -> dict[str, Any]:
    """
    Build the filter document from every non-reserved parameter.

    One value becomes an equality match; several values become an any-of
    ($in) match. ``id`` and ``_id`` both filter on the stored identifier,
    their values decoded to ObjectIds.

        ?id=507f...&id=65ab...  ->  {"_id": {"$in": [ObjectId(...), ObjectId(...)]}}
    """
    query: dict[str, Any] = {}
    ids: list[ObjectId] = []
    for key in params.keys():
        if key in RESERVED_QUERY_PARAMS or key in query:
            continue
        if key.startswith("$"):
            raise InvalidParameterError(
                "filter field must not start with '$'", parameter=key
            )
        values = _values(params, key)
        if key in IMMUTABLE_FIELDS:
            for value in values:
                oid = _filter_id(key, value)
                if oid not in ids:
                    ids.append(oid)
            continue
        if len(values) == 1:
            query[key] = values[0]
        else:
            query[key] = {"$in": values}
    if ids:
        query["_id"] = ids[0] if len(ids) == 1 else {"$in": ids}
    return query


def build_patch(payload: Any) -> dict[str, Any]:
    """
    Validate a partial-update body and return it as a $set document.

    Keys are field paths ("title", "author.name", "tag.1"). Values are not
    checked here; patch_record validates the patched record as a whole.
    The identifier can never be patched.

    Raises:
        ClientInputError: If the body is not a non-empty object, or a key is
            empty, operator-like, or names the identifier
    """
    if not isinstance(payload, dict):
        raise ClientInputError("Patch body must be a JSON object")
    if not payload:
        raise ClientInputError("Patch body must contain at least one field")
    for key in payload:
        segments = key.split(".")
        root = segments[0]
        if "" in segments:
            raise ClientInputError("Patch field names must not be empty", context={"field": key})
        if root.startswith("$"):
            raise ClientInputError(
                "Patch field names must not start with '$'", context={"field": key}
            )
        if root in IMMUTABLE_FIELDS:
            raise ClientInputError("The record id cannot be changed", context={"field": key})
    return dict(payload)


def build_query(params: Mapping[str, Any], max_limit: int = 0) -> QuerySpec:
    """
    Translate List query parameters into a QuerySpec.

    Args:
        params: Query parameters (Starlette QueryParams, MultiDict, or a
            mapping of key -> str | list[str])
        max_limit: Upper bound for the limit; 0 disables clamping

    Raises:
        InvalidParameterError: On non-integer or negative _limit/_offset,
            or operator-like field names
    """
    limit = parse_non_negative_int(params, LIMIT_PARAM)
    if max_limit > 0 and (limit == 0 or limit > max_limit):
        limit = max_limit

    return QuerySpec(
        filter=build_filter(params),
        skip=parse_non_negative_int(params, OFFSET_PARAM),
        limit=limit,
        sort=parse_sort(_first(params, SORT_PARAM)),
    )
