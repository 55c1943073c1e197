"""
Integration tests for blueprints against a real MongoDB.

Uses testcontainers to start MongoDB; the application is built with
create_app so the shared client, lifespan and per-request sessions are
all real.
"""

import uuid

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from conftest import Article
from mdb_blueprint import Blueprint, BlueprintConfig, Route, create_app
from mdb_blueprint.blueprint.document import Document


class Counter(Document):
    name: str = ""
    value: int = 0

    def pre_delete(self):
        if self.name == "pinned":
            raise ValueError("pinned counters cannot be deleted")


@pytest.fixture
def blog_app(mongodb_connection_string):
    db_name = f"blueprint_it_{uuid.uuid4().hex[:8]}"
    app = create_app(BlueprintConfig(mongo_uri=mongodb_connection_string, db_name=db_name))
    Blueprint(Article, db_name, "article").routes(app)
    Blueprint(Counter, db_name, "counter").routes(app, Route.ALL)
    return app


@pytest.fixture
def http(blog_app):
    with TestClient(blog_app) as client:
        yield client


@pytest.mark.integration
class TestBlueprintIntegration:
    """Full CRUD cycle over HTTP against MongoDB."""

    def test_full_cycle(self, http):
        created = http.post("/articles/", json={"title": "t", "tag": ["a", "b"]})
        assert created.status_code == 201
        location = created.headers["Location"]

        listed = http.get("/articles/").json()
        assert len(listed) == 1
        assert listed[0]["title"] == "t"

        patched = http.patch(location, json={"title": "t2"})
        assert patched.status_code == 200
        assert patched.json()["title"] == "t2"
        assert patched.json()["tag"] == ["a", "b"]

        replaced = http.put(location, json={"title": "t3", "tag": ["c"]})
        assert replaced.status_code == 200
        assert replaced.json()["tag"] == ["c"]

        assert http.delete(location).status_code == 204
        assert http.get(location).status_code == 404
        assert http.get("/articles/").json() == []

    def test_nested_patch(self, http):
        location = http.post(
            "/articles/",
            json={"title": "t", "tag": ["x", "y"], "author": {"name": "n", "email": "e"}},
        ).headers["Location"]

        response = http.patch(location, json={"tag.1": "z", "author.name": "ada"})

        assert response.status_code == 200
        body = response.json()
        assert body["tag"] == ["x", "z"]
        assert body["author"] == {"name": "ada", "email": "e"}

    def test_query_window(self, http):
        for title in ["e", "b", "d", "a", "c"]:
            http.post("/articles/", json={"title": title, "tag": ["go"]})
        http.post("/articles/", json={"title": "z", "tag": ["rust"]})

        page = http.get(
            "/articles/", params={"tag": "go", "_sort": "title", "_limit": 2, "_offset": 1}
        ).json()
        assert [r["title"] for r in page] == ["b", "c"]

        any_of = http.get("/articles/", params=[("tag", "go"), ("tag", "rust")]).json()
        assert len(any_of) == 6

    def test_identifier_errors(self, http):
        assert http.get("/articles/not-an-id").status_code == 400
        assert http.get(f"/articles/{ObjectId()}").status_code == 404
        assert http.get("/articles/%20").status_code == 404

    def test_pre_delete_abort(self, http):
        location = http.post("/counters/", json={"name": "pinned", "value": 3}).headers[
            "Location"
        ]

        response = http.delete(location)

        assert response.status_code == 400
        assert http.get(location).json()["value"] == 3

    def test_empty_id_on_group_root(self, http):
        assert http.put("/articles/", json={"title": "t"}).status_code == 404
        assert http.patch("/articles/", json={"title": "t"}).status_code == 404
        assert http.delete("/articles/").status_code == 404

    def test_patch_value_must_fit_model(self, http):
        location = http.post("/counters/", json={"name": "c", "value": 1}).headers["Location"]

        assert http.patch(location, json={"value": "many"}).status_code == 400

        assert http.get(location).json()["value"] == 1
        assert http.get("/counters/").status_code == 200

    def test_filter_by_id(self, http):
        location = http.post("/counters/", json={"name": "a"}).headers["Location"]
        http.post("/counters/", json={"name": "b"})
        record_id = location.rsplit("/", 1)[-1]

        found = http.get("/counters/", params={"id": record_id}).json()

        assert [r["name"] for r in found] == ["a"]
