"""
Pytest configuration and shared fixtures for MDB_BLUEPRINT tests.

This module provides:
- An in-memory stand-in for the Motor client (collections, cursors, sessions)
- Sample record types
- FastAPI applications with blueprints bound
- Testcontainers fixtures for integration tests
"""

import copy
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from mdb_blueprint.blueprint import Blueprint, Document
from mdb_blueprint.database import StoreSessionMiddleware
from mdb_blueprint.observability import get_metrics_collector

TEST_DB = "blueprint_test"
TEST_COLLECTION = "article"

_MISSING = object()


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that need a real MongoDB (testcontainers)")


# ============================================================================
# IN-MEMORY MOTOR STAND-IN
# ============================================================================


def _get_path(doc: Any, path: str) -> Any:
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current: Any = doc
    for part in parts[:-1]:
        if isinstance(current, list):
            current = current[int(part)]
        else:
            current = current.setdefault(part, {})
    last = parts[-1]
    if isinstance(current, list):
        index = int(last)
        while len(current) <= index:
            current.append(None)
        current[index] = value
    else:
        current[last] = value


def _equals(value: Any, expected: Any) -> bool:
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _sort_key(doc: Dict[str, Any], field: str) -> tuple:
    value = _get_path(doc, field)
    if value is _MISSING or value is None:
        return (0, None)
    return (1, value)


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        value = _get_path(doc, key)
        if isinstance(condition, dict) and "$in" in condition:
            if value is _MISSING or not any(_equals(value, c) for c in condition["$in"]):
                return False
        elif value is _MISSING or not _equals(value, condition):
            return False
    return True


class FakeSession:
    """Client session stand-in; counts how often it is ended."""

    _ids = itertools.count(1)

    def __init__(self, client: "FakeMongoClient"):
        self.client = client
        self.session_id = next(self._ids)
        self.ended = False
        self.end_count = 0

    async def end_session(self) -> None:
        self.ended = True
        self.end_count += 1

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end_session()


class FakeCursor:
    def __init__(self, collection: "FakeCollection", query: Dict[str, Any], session: Any):
        self._collection = collection
        self._query = query
        self._session = session
        self._skip = 0
        self._limit = 0
        self._sort: Optional[List[tuple]] = None

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    def sort(self, keys: List[tuple]) -> "FakeCursor":
        self._sort = keys
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        docs = [d for d in self._collection.docs if _matches(d, self._query)]
        if self._sort:
            for field, direction in reversed(self._sort):
                docs.sort(key=lambda d: _sort_key(d, field), reverse=direction < 0)
        docs = docs[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        if length is not None:
            docs = docs[:length]
        return copy.deepcopy(docs)


class FakeCollection:
    """Collection stand-in supporting the operations blueprints use."""

    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    def _record(self, operation: str, session: Any) -> None:
        self.calls.append((operation, session))
        if self.fail_with is not None:
            raise self.fail_with

    def _index_of(self, query: Dict[str, Any]) -> Optional[int]:
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                return i
        return None

    def find(self, filter: Optional[Dict[str, Any]] = None, session: Any = None) -> FakeCursor:
        self._record("find", session)
        return FakeCursor(self, filter or {}, session)

    async def find_one(self, filter: Dict[str, Any], session: Any = None):
        self._record("find_one", session)
        index = self._index_of(filter)
        return None if index is None else copy.deepcopy(self.docs[index])

    async def insert_one(self, document: Dict[str, Any], session: Any = None):
        self._record("insert_one", session)
        if "_id" not in document:
            document["_id"] = ObjectId()
        if self._index_of({"_id": document["_id"]}) is not None:
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def replace_one(self, filter: Dict[str, Any], replacement: Dict[str, Any], session=None):
        self._record("replace_one", session)
        index = self._index_of(filter)
        if index is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        doc_id = self.docs[index]["_id"]
        self.docs[index] = {"_id": doc_id, **copy.deepcopy(replacement)}
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def update_one(self, filter: Dict[str, Any], update: Dict[str, Any], session=None):
        self._record("update_one", session)
        index = self._index_of(filter)
        if index is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        for path, value in update.get("$set", {}).items():
            _set_path(self.docs[index], path, copy.deepcopy(value))
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def delete_one(self, filter: Dict[str, Any], session: Any = None):
        self._record("delete_one", session)
        index = self._index_of(filter)
        if index is None:
            return SimpleNamespace(deleted_count=0)
        del self.docs[index]
        return SimpleNamespace(deleted_count=1)


class FakeDatabase:
    def __init__(self, name: str):
        self.name = name
        self._collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection(name))


class FakeMongoClient:
    """Motor client stand-in handing out sessions and shared collections."""

    def __init__(self):
        self._databases: Dict[str, FakeDatabase] = {}
        self.sessions: List[FakeSession] = []

    def __getitem__(self, name: str) -> FakeDatabase:
        return self._databases.setdefault(name, FakeDatabase(name))

    async def start_session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session


# ============================================================================
# SAMPLE RECORD TYPES
# ============================================================================


class Author(BaseModel):
    name: str = ""
    email: str = ""


class Article(Document):
    title: str = ""
    content: str = ""
    tag: List[str] = []
    author: Author = Field(default_factory=Author)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_mongo_client() -> FakeMongoClient:
    """Create an empty in-memory Motor client."""
    return FakeMongoClient()


@pytest.fixture
def article_collection(fake_mongo_client: FakeMongoClient) -> FakeCollection:
    """The collection backing the Article blueprint."""
    return fake_mongo_client[TEST_DB][TEST_COLLECTION]


@pytest.fixture
def article_blueprint() -> Blueprint:
    return Blueprint(Article, TEST_DB, TEST_COLLECTION)


@pytest.fixture
def article_app(fake_mongo_client: FakeMongoClient, article_blueprint: Blueprint) -> FastAPI:
    """FastAPI app exposing all Article routes over the in-memory client."""
    app = FastAPI()
    app.add_middleware(StoreSessionMiddleware, client=fake_mongo_client)
    article_blueprint.routes(app)
    return app


@pytest.fixture
def client(article_app: FastAPI):
    with TestClient(article_app) as test_client:
        yield test_client


@pytest.fixture
def sample_article() -> Dict[str, Any]:
    return {
        "title": "title",
        "content": "content",
        "tag": ["tag1", "tag2"],
        "author": {"name": "name", "email": "name@example.com"},
    }


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Keep configuration tests independent of the caller's environment."""
    for name in (
        "MONGO_URI",
        "DB_NAME",
        "MONGO_MAX_POOL_SIZE",
        "MONGO_MIN_POOL_SIZE",
        "MONGO_SERVER_SELECTION_TIMEOUT_MS",
        "BLUEPRINT_MAX_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: container starts once and is reused for all integration tests.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    with MongoDbContainer(image="mongo:7.0") as container:
        yield container


@pytest.fixture
def mongodb_connection_string(mongodb_container) -> str:
    return mongodb_container.get_connection_url()
