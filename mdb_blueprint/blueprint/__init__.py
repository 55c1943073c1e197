"""
Resource blueprints.

Register a Document subclass against a database and collection, then bind
its CRUD routes to a FastAPI application or router.

Usage:
    from mdb_blueprint.blueprint import Blueprint, Document, Route

    class Article(Document):
        title: str
        tag: list[str] = []

    Blueprint(Article, "blog", "article").routes(app)
"""

from .descriptor import ResourceDescriptor, default_group, register
from .document import Document
from .handlers import (create, delete_record, get_record, list_records,
                       patch_record, replace_record)
from .hooks import (HookCapabilities, PostCreate, PostDelete, PostUpdate,
                    PreCreate, PreDelete, PreUpdate)
from .query import QuerySpec, build_filter, build_patch, build_query
from .routes import Blueprint, Route, bind_routes

__all__ = [
    # Registration
    "Blueprint",
    "Document",
    "ResourceDescriptor",
    "Route",
    "bind_routes",
    "default_group",
    "register",
    # Query translation
    "QuerySpec",
    "build_filter",
    "build_patch",
    "build_query",
    # Hooks
    "HookCapabilities",
    "PreCreate",
    "PostCreate",
    "PreUpdate",
    "PostUpdate",
    "PreDelete",
    "PostDelete",
    # Handlers
    "create",
    "list_records",
    "get_record",
    "replace_record",
    "patch_record",
    "delete_record",
]
