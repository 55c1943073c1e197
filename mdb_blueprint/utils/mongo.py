"""
MongoDB utility functions for MDB_BLUEPRINT.

Helpers for moving documents between BSON and JSON and for decoding the
identifiers that arrive in request paths. apply_set replays a patch field
path on a document held in memory.
"""

from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from ..exceptions import ClientInputError


def parse_object_id(value: Any) -> ObjectId:
    """
    Decode a record identifier into the store's native ObjectId.

    Args:
        value: ObjectId or its 24-character hex string

    Returns:
        ObjectId instance

    Raises:
        ClientInputError: If the value is not a valid ObjectId encoding
    """
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        raise ClientInputError(f"Malformed id: {value!r}", context={"id": value})
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise ClientInputError(f"Malformed id: {value!r}", context={"id": value}) from e


def _clean_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return clean_mongo_doc(value)
    if isinstance(value, list):
        return [_clean_value(item) for item in value]
    return value


def clean_mongo_doc(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Convert MongoDB document to JSON-serializable format.

    Recursively converts MongoDB-specific types to JSON-compatible types:
    - ObjectId -> str
    - datetime -> ISO format string
    - Nested dictionaries and lists are processed recursively

    Args:
        doc: MongoDB document (dict) or None

    Returns:
        Cleaned document, or None if input was None

    Example:
        ```python
        doc = {"_id": ObjectId("507f1f77bcf86cd799439011"), "title": "t"}
        clean_mongo_doc(doc)
        # {"_id": "507f1f77bcf86cd799439011", "title": "t"}
        ```
    """
    if doc is None:
        return None
    return {key: _clean_value(value) for key, value in doc.items()}


def _array_index(path: str, segment: str) -> int:
    if not segment.isdigit():
        raise ClientInputError(
            f"Cannot set '{path}': '{segment}' is not an array index", context={"field": path}
        )
    return int(segment)


def apply_set(doc: dict[str, Any], path: str, value: Any) -> None:
    """
    Apply one ``$set`` field path to a plain document, in place.

    Follows the server's rules: missing objects along the path are created,
    and a numeric segment indexes into an array, padding it with None.

    Example:
        ```python
        doc = {"tag": ["a"], "author": {"name": "n"}}
        apply_set(doc, "tag.2", "c")
        apply_set(doc, "author.email", "e")
        # {"tag": ["a", None, "c"], "author": {"name": "n", "email": "e"}}
        ```

    Raises:
        ClientInputError: If the path runs through a scalar, or names a
            non-numeric field inside an array
    """
    segments = path.split(".")
    target: Any = doc
    for depth, segment in enumerate(segments):
        last = depth == len(segments) - 1
        if isinstance(target, dict):
            if last:
                target[segment] = value
            else:
                target = target.setdefault(segment, {})
        elif isinstance(target, list):
            index = _array_index(path, segment)
            if index >= len(target):
                target.extend([None] * (index + 1 - len(target)))
                if not last:
                    target[index] = {}
            if last:
                target[index] = value
            else:
                target = target[index]
        else:
            parent = ".".join(segments[:depth])
            raise ClientInputError(
                f"Cannot set '{path}': '{parent}' holds a {type(target).__name__}",
                context={"field": path},
            )
