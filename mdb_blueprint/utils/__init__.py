"""
Utility functions for MDB_BLUEPRINT.
"""

from .mongo import apply_set, clean_mongo_doc, parse_object_id

__all__ = [
    "apply_set",
    "clean_mongo_doc",
    "parse_object_id",
]
