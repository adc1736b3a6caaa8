"""
API tests for request templates: CRUD over every variant, reordering,
cloning and conversion.
"""

import json
import uuid
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from hypothesis import given, strategies as st, settings
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from api_workbench.database import Base, get_db
from api_workbench.main import app


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_request_api.db"
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


http_method_strategy = st.sampled_from(["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])

url_strategy = st.builds(
    lambda host, path: f"https://{host}.example.com/{path}",
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=12),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789/{}_", max_size=30),
)

REST_PAYLOAD = {
    "request_type": "rest",
    "name": "Create user",
    "url": "{{base_url}}/users",
    "method": "POST",
    "headers": {"X-Trace": "1", "X-Off": "0"},
    "disabled_headers": ["X-Off"],
    "body": '{"name": "{{$full_name}}"}',
    "auth_type": "bearer",
    "bearer_token": "{{token}}",
    "response_extractions": [{"pattern": "$.id", "variable_name": "user_id"}],
}

GRAPHQL_PAYLOAD = {
    "request_type": "graphql",
    "name": "Users",
    "url": "https://api.example.com/graphql",
    "query": "query Users($n: Int) { users(first: $n) { id } }",
    "variables": '{"n": 5}',
    "operation_name": "Users",
}

WEBSOCKET_PAYLOAD = {
    "request_type": "websocket",
    "name": "Chat",
    "url": "wss://chat.example.com/socket",
    "message": "hello",
    "protocols": ["chat"],
}


class TestRequestCrud:
    @given(method=http_method_strategy, url=url_strategy)
    @settings(max_examples=25, deadline=None)
    def test_rest_roundtrip(self, method: str, url: str):
        with get_test_client() as client:
            created = client.post("/api/requests", json={"request_type": "rest", "method": method, "url": url})
            assert created.status_code == 201

            fetched = client.get(f"/api/requests/{created.json()['id']}").json()
            assert fetched["method"] == method
            assert fetched["url"] == url
            assert fetched["request_type"] == "rest"

    @pytest.mark.parametrize("payload", [REST_PAYLOAD, GRAPHQL_PAYLOAD, WEBSOCKET_PAYLOAD])
    def test_every_variant_is_stored(self, payload: dict):
        with get_test_client() as client:
            created = client.post("/api/requests", json=payload)
            assert created.status_code == 201

            fetched = client.get(f"/api/requests/{created.json()['id']}").json()
            for key, value in payload.items():
                if key == "response_extractions":
                    assert fetched[key][0]["pattern"] == value[0]["pattern"]
                else:
                    assert fetched[key] == value

    def test_client_chosen_id_is_replaced(self):
        with get_test_client() as client:
            chosen = str(uuid.uuid4())
            created = client.post("/api/requests", json={**REST_PAYLOAD, "id": chosen})
            assert created.json()["id"] != chosen

    def test_unknown_variant_is_rejected(self):
        with get_test_client() as client:
            response = client.post("/api/requests", json={"request_type": "soap", "url": "http://x"})
            assert response.status_code == 422
            assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unknown_collection(self):
        with get_test_client() as client:
            response = client.post("/api/requests", json={**REST_PAYLOAD, "collection_id": str(uuid.uuid4())})
            assert response.status_code == 404

    def test_update_may_change_variant(self):
        with get_test_client() as client:
            created = client.post("/api/requests", json=REST_PAYLOAD).json()

            updated = client.put(f"/api/requests/{created['id']}", json=WEBSOCKET_PAYLOAD)
            assert updated.status_code == 200
            assert updated.json()["id"] == created["id"]
            assert updated.json()["created_at"] == created["created_at"]
            assert updated.json()["request_type"] == "websocket"

    def test_list_by_collection_in_sort_order(self):
        with get_test_client() as client:
            collection_id = client.post("/api/collections", json={"name": "c"}).json()["id"]
            ids = [
                client.post("/api/requests", json={**REST_PAYLOAD, "name": name, "collection_id": collection_id}).json()["id"]
                for name in ("a", "b", "c")
            ]
            client.post("/api/requests", json=REST_PAYLOAD)

            reorder = client.post("/api/requests/reorder", json={"request_ids": list(reversed(ids))})
            assert reorder.status_code == 200

            listed = client.get("/api/requests", params={"collection_id": collection_id}).json()
            assert [r["name"] for r in listed] == ["c", "b", "a"]
            assert len(client.get("/api/requests").json()) == 4

    def test_delete(self):
        with get_test_client() as client:
            request_id = client.post("/api/requests", json=REST_PAYLOAD).json()["id"]
            assert client.delete(f"/api/requests/{request_id}").status_code == 204
            assert client.get(f"/api/requests/{request_id}").status_code == 404
            assert client.delete(f"/api/requests/{request_id}").status_code == 404


class TestCloneAndConvert:
    def test_clone(self):
        with get_test_client() as client:
            original = client.post("/api/requests", json=REST_PAYLOAD).json()

            copy = client.post(f"/api/requests/{original['id']}/clone")
            assert copy.status_code == 201
            body = copy.json()
            assert body["id"] != original["id"]
            assert body["name"] == "Create user (copy)"
            assert body["headers"] == original["headers"]
            assert body["response_extractions"][0]["pattern"] == "$.id"
            assert len(client.get("/api/requests").json()) == 2

    def test_convert_rest_to_graphql_without_saving(self):
        with get_test_client() as client:
            original = client.post("/api/requests", json={
                "request_type": "rest",
                "name": "q",
                "url": "https://api.example.com/graphql",
                "method": "POST",
                "body": json.dumps({"query": "{ me { id } }", "variables": {"a": 1}, "operationName": "Me"}),
            }).json()

            converted = client.post(f"/api/requests/{original['id']}/convert/graphql")
            assert converted.status_code == 200
            body = converted.json()
            assert body["request_type"] == "graphql"
            assert body["query"] == "{ me { id } }"
            assert json.loads(body["variables"]) == {"a": 1}
            assert body["operation_name"] == "Me"
            assert len(client.get("/api/requests").json()) == 1

    def test_convert_and_save(self):
        with get_test_client() as client:
            original = client.post("/api/requests", json=GRAPHQL_PAYLOAD).json()

            converted = client.post(f"/api/requests/{original['id']}/convert/websocket", json={"save": True})
            assert converted.status_code == 200
            body = converted.json()
            assert body["request_type"] == "websocket"
            assert body["url"] == "wss://api.example.com/graphql"
            assert body["id"] != original["id"]
            assert client.get(f"/api/requests/{body['id']}").status_code == 200

    def test_convert_to_unknown_type(self):
        with get_test_client() as client:
            original = client.post("/api/requests", json=REST_PAYLOAD).json()
            response = client.post(f"/api/requests/{original['id']}/convert/soap")
            assert response.status_code == 422
