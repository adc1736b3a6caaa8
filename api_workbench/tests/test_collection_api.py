"""
Tests for collections: the tree builder, cycle detection and the
collection API including cascade deletes and secret masking.
"""

import uuid
from contextlib import contextmanager

from fastapi.testclient import TestClient
from hypothesis import given, strategies as st, settings
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from api_workbench.database import Base, get_db
from api_workbench.main import app
from api_workbench.models.secret import Secret
from api_workbench.schemas.collection import Collection
from api_workbench.schemas.request import RestRequest, WebSocketRequest
from api_workbench.services.collection_tree import (
    build_collection_tree,
    descendant_ids,
    detect_circular_reference,
)


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_collection_api.db"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)


@event.listens_for(test_engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_test_client():
    """Context manager to create a test client with fresh database."""
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        Base.metadata.drop_all(bind=test_engine)
        app.dependency_overrides.clear()


def _chain(depth: int) -> list[Collection]:
    """A single line of nested collections, root first."""
    collections = []
    parent_id = None
    for level in range(depth):
        collection = Collection(name=f"level-{level}", parent_id=parent_id)
        collections.append(collection)
        parent_id = collection.id
    return collections


class TestCollectionTree:
    def test_nesting_and_ordering(self):
        root_b = Collection(name="b", sort_order=1)
        root_a = Collection(name="a", sort_order=1)
        root_first = Collection(name="z", sort_order=0)
        child = Collection(name="child", parent_id=root_a.id)
        requests = [
            RestRequest(name="second", url="http://x/2", collection_id=root_a.id, sort_order=2),
            WebSocketRequest(name="first", url="ws://x", collection_id=root_a.id, sort_order=1),
            RestRequest(name="loose", url="http://x/3"),
        ]

        tree = build_collection_tree([root_b, child, root_a, root_first], requests)

        assert [node.name for node in tree] == ["z", "a", "b"]
        node_a = tree[1]
        assert [c.name for c in node_a.children] == ["child"]
        assert [r.name for r in node_a.requests] == ["first", "second"]
        assert node_a.requests[0].request_type == "websocket"
        assert tree[0].requests == []

    def test_empty(self):
        assert build_collection_tree([], []) == []

    @given(depth=st.integers(min_value=1, max_value=8))
    @settings(max_examples=20)
    def test_deep_chain(self, depth: int):
        collections = _chain(depth)
        tree = build_collection_tree(list(reversed(collections)), [])

        node = tree[0]
        for expected in collections[1:]:
            assert len(node.children) == 1
            node = node.children[0]
            assert node.id == expected.id
        assert node.children == []

    @given(depth=st.integers(min_value=2, max_value=8), data=st.data())
    @settings(max_examples=30)
    def test_moving_under_a_descendant_is_a_cycle(self, depth: int, data):
        collections = _chain(depth)
        index = data.draw(st.integers(min_value=0, max_value=depth - 1))
        assert detect_circular_reference(collections[0].id, collections[index].id, collections)

    def test_moving_elsewhere_is_not_a_cycle(self):
        collections = _chain(3)
        other = Collection(name="other")
        assert not detect_circular_reference(collections[1].id, other.id, collections + [other])
        assert not detect_circular_reference(collections[2].id, collections[0].id, collections)

    def test_descendants_are_depth_first(self):
        collections = _chain(3)
        sibling = Collection(name="sibling", parent_id=collections[0].id)
        all_collections = collections + [sibling]

        found = descendant_ids(collections[0].id, all_collections)
        assert set(found) == {collections[1].id, collections[2].id, sibling.id}
        assert found.index(collections[1].id) < found.index(collections[2].id)
        assert descendant_ids(collections[2].id, all_collections) == []


class TestCollectionApi:
    def test_create_assigns_sibling_sort_order(self):
        with get_test_client() as client:
            first = client.post("/api/collections", json={"name": "first"})
            second = client.post("/api/collections", json={"name": "second"})
            child = client.post("/api/collections", json={"name": "child", "parent_id": first.json()["id"]})

            assert first.status_code == 201
            assert first.json()["sort_order"] == 0
            assert second.json()["sort_order"] == 1
            assert child.json()["sort_order"] == 0

    def test_unknown_parent(self):
        with get_test_client() as client:
            response = client.post("/api/collections", json={"name": "x", "parent_id": str(uuid.uuid4())})
            assert response.status_code == 404

    def test_tree_endpoint(self):
        with get_test_client() as client:
            parent_id = client.post("/api/collections", json={"name": "parent"}).json()["id"]
            child_id = client.post("/api/collections", json={"name": "child", "parent_id": parent_id}).json()["id"]
            client.post("/api/requests", json={
                "request_type": "rest", "name": "ping", "url": "http://x/ping", "collection_id": child_id
            })

            tree = client.get("/api/collections/tree").json()
            assert len(tree) == 1
            assert tree[0]["name"] == "parent"
            assert tree[0]["children"][0]["id"] == child_id
            assert tree[0]["children"][0]["requests"][0]["name"] == "ping"

    def test_move_into_descendant_is_rejected(self):
        with get_test_client() as client:
            parent_id = client.post("/api/collections", json={"name": "parent"}).json()["id"]
            child_id = client.post("/api/collections", json={"name": "child", "parent_id": parent_id}).json()["id"]

            response = client.put(f"/api/collections/{parent_id}", json={"parent_id": child_id})
            assert response.status_code == 400
            assert response.json()["error_code"] == "BAD_REQUEST"

            itself = client.put(f"/api/collections/{parent_id}", json={"parent_id": parent_id})
            assert itself.status_code == 400

    def test_move_to_root(self):
        with get_test_client() as client:
            parent_id = client.post("/api/collections", json={"name": "parent"}).json()["id"]
            child_id = client.post("/api/collections", json={"name": "child", "parent_id": parent_id}).json()["id"]

            moved = client.put(f"/api/collections/{child_id}", json={"parent_id": None})
            assert moved.status_code == 200
            assert moved.json()["parent_id"] is None
            assert len(client.get("/api/collections/tree").json()) == 2

    def test_delete_cascades(self):
        with get_test_client() as client:
            parent_id = client.post("/api/collections", json={"name": "parent"}).json()["id"]
            child_id = client.post("/api/collections", json={
                "name": "child",
                "parent_id": parent_id,
                "variables": {"key": "k"},
                "secret_variable_names": ["key"],
            }).json()["id"]
            request_id = client.post("/api/requests", json={
                "request_type": "rest", "name": "r", "url": "http://x", "collection_id": child_id
            }).json()["id"]

            assert client.delete(f"/api/collections/{parent_id}").status_code == 204

            assert client.get(f"/api/collections/{child_id}").status_code == 404
            assert client.get(f"/api/requests/{request_id}").status_code == 404
            db = TestSessionLocal()
            try:
                assert db.query(Secret).count() == 0
            finally:
                db.close()

    def test_collection_variables_are_masked(self):
        with get_test_client() as client:
            collection_id = client.post("/api/collections", json={"name": "api"}).json()["id"]

            response = client.put(
                f"/api/collections/{collection_id}/variables/api_key",
                json={"value": "k", "is_secret": True},
            )
            assert response.status_code == 200
            assert response.json()["variables"] == {"api_key": "********"}

            plain = client.put(f"/api/collections/{collection_id}/variables/base", json={"value": "http://x"})
            assert plain.json()["variables"] == {"api_key": "********", "base": "http://x"}

    def test_masked_mapping_sent_back_keeps_secret(self):
        with get_test_client() as client:
            collection_id = client.post("/api/collections", json={
                "name": "api",
                "variables": {"api_key": "k-123", "base": "http://x"},
                "secret_variable_names": ["api_key"],
            }).json()["id"]

            fetched = client.get(f"/api/collections/{collection_id}").json()
            response = client.put(f"/api/collections/{collection_id}", json={
                "name": "renamed",
                "variables": fetched["variables"],
            })
            assert response.status_code == 200
            assert response.json()["variables"] == {"api_key": "********", "base": "http://x"}

            db = TestSessionLocal()
            try:
                secret = db.query(Secret).filter(Secret.entity_id == uuid.UUID(collection_id)).one()
                assert secret.value == "k-123"
            finally:
                db.close()
