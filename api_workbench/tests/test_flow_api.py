"""
API tests for flows: CRUD, running a flow end to end against a mock
upstream, and run cancellation by id.
"""

import uuid
from contextlib import contextmanager

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from api_workbench.config import Settings
from api_workbench.database import Base, get_db
from api_workbench.dependencies import get_executor_factory
from api_workbench.main import app
from api_workbench.services.executors import create_default_factory


# Test database setup
TEST_DATABASE_URL = "sqlite:///./test_flow_api.db"
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


def upstream(request: httpx.Request) -> httpx.Response:
    """A login endpoint issuing a token and a profile endpoint requiring it."""
    if request.url.path == "/login":
        return httpx.Response(200, json={"token": "tok-123"})
    if request.url.path == "/profile":
        if request.headers.get("Authorization") != "Bearer tok-123":
            return httpx.Response(401, json={"error": "unauthorized"})
        return httpx.Response(200, json={"name": "Ada"})
    return httpx.Response(500, text="boom")


@contextmanager
def get_test_client():
    """Context manager to create a test client with fresh database and mock upstream."""
    settings = Settings(user_agent="ApiWorkbench/Test", request_timeout=5.0)
    factory = create_default_factory(settings, httpx.MockTransport(upstream))

    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_executor_factory] = lambda: factory

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        Base.metadata.drop_all(bind=test_engine)
        app.dependency_overrides.clear()


def _request(client, path: str, **fields) -> str:
    payload = {"request_type": "rest", "name": path.strip("/") or "root", "url": f"http://api.test{path}", **fields}
    return client.post("/api/requests", json=payload).json()["id"]


def _login_flow(client) -> tuple[str, str, str]:
    login = _request(client, "/login", method="POST", response_extractions=[
        {"pattern": "$.token", "variable_name": "token"},
    ])
    profile = _request(client, "/profile", auth_type="bearer", bearer_token="{{token}}")
    flow = client.post("/api/flows", json={
        "name": "login then profile",
        "steps": [{"request_id": login}, {"request_id": profile}],
    })
    assert flow.status_code == 201
    return flow.json()["id"], login, profile


class TestFlowCrud:
    def test_steps_take_list_position(self):
        with get_test_client() as client:
            first = _request(client, "/login")
            second = _request(client, "/profile")

            flow = client.post("/api/flows", json={
                "name": "f",
                "steps": [{"request_id": first}, {"request_id": second, "delay_ms": 10}],
            }).json()
            assert [s["order"] for s in flow["steps"]] == [0, 1]
            assert flow["steps"][1]["delay_ms"] == 10

            fetched = client.get(f"/api/flows/{flow['id']}").json()
            assert [s["request_id"] for s in fetched["steps"]] == [first, second]

    def test_explicit_order_sorts_steps(self):
        with get_test_client() as client:
            first = _request(client, "/login")
            second = _request(client, "/profile")
            flow = client.post("/api/flows", json={
                "name": "f",
                "steps": [{"request_id": first, "order": 5}, {"request_id": second, "order": 1}],
            }).json()
            assert [s["request_id"] for s in flow["steps"]] == [second, first]

    def test_step_with_unknown_request_is_rejected(self):
        with get_test_client() as client:
            response = client.post("/api/flows", json={"name": "f", "steps": [{"request_id": str(uuid.uuid4())}]})
            assert response.status_code == 404

    def test_update_replaces_steps(self):
        with get_test_client() as client:
            flow_id, login, profile = _login_flow(client)

            renamed = client.put(f"/api/flows/{flow_id}", json={"name": "renamed"})
            assert renamed.json()["name"] == "renamed"
            assert len(renamed.json()["steps"]) == 2

            replaced = client.put(f"/api/flows/{flow_id}", json={"steps": [{"request_id": profile}]})
            assert [s["request_id"] for s in replaced.json()["steps"]] == [profile]
            assert replaced.json()["name"] == "renamed"

    def test_list_by_collection_and_delete(self):
        with get_test_client() as client:
            collection_id = client.post("/api/collections", json={"name": "c"}).json()["id"]
            in_collection = client.post("/api/flows", json={"name": "a", "collection_id": collection_id}).json()["id"]
            client.post("/api/flows", json={"name": "b"})

            listed = client.get("/api/flows", params={"collection_id": collection_id}).json()
            assert [f["id"] for f in listed] == [in_collection]
            assert len(client.get("/api/flows").json()) == 2

            assert client.delete(f"/api/flows/{in_collection}").status_code == 204
            assert client.get(f"/api/flows/{in_collection}").status_code == 404


class TestFlowExecution:
    def test_extracted_token_reaches_next_step(self):
        with get_test_client() as client:
            client.post("/api/environments", json={"name": "dev", "is_active": True})
            flow_id, login, profile = _login_flow(client)

            response = client.post(f"/api/flows/{flow_id}/execute")
            assert response.status_code == 200
            result = response.json()
            assert result["status"] == "completed"
            assert [s["status"] for s in result["step_results"]] == ["success", "success"]
            assert result["step_results"][0]["extracted_variables"] == {"token": "tok-123"}
            assert result["step_results"][1]["response"]["status_code"] == 200
            assert result["total_duration_ms"] >= 0

    def test_token_threads_without_active_environment(self):
        with get_test_client() as client:
            flow_id, _, _ = _login_flow(client)

            result = client.post(f"/api/flows/{flow_id}/execute").json()
            assert result["status"] == "completed"

    def test_failure_halts_and_is_reported(self):
        with get_test_client() as client:
            broken = _request(client, "/broken")
            after = _request(client, "/login")
            flow_id = client.post("/api/flows", json={
                "name": "f",
                "steps": [{"request_id": broken}, {"request_id": after}],
            }).json()["id"]

            result = client.post(f"/api/flows/{flow_id}/execute").json()
            assert result["status"] == "failed"
            assert [s["status"] for s in result["step_results"]] == ["failed", "skipped"]
            assert "HTTP 500" in result["error_message"]

    def test_every_step_is_recorded_in_history(self):
        with get_test_client() as client:
            flow_id, login, profile = _login_flow(client)
            client.post(f"/api/flows/{flow_id}/execute")

            history = client.get("/api/history").json()
            assert history["total"] == 2
            assert {item["request_id"] for item in history["items"]} == {login, profile}

    def test_deleted_step_request_is_a_configuration_error(self):
        with get_test_client() as client:
            flow_id, login, _ = _login_flow(client)
            client.delete(f"/api/requests/{login}")

            response = client.post(f"/api/flows/{flow_id}/execute")
            assert response.status_code == 422
            assert response.json()["error_code"] == "INVALID_FLOW_STEP"
            assert client.get("/api/history").json()["total"] == 0

    def test_unknown_flow(self):
        with get_test_client() as client:
            assert client.post(f"/api/flows/{uuid.uuid4()}/execute").status_code == 404

    def test_run_id_is_echoed_and_released(self):
        with get_test_client() as client:
            flow_id, _, _ = _login_flow(client)

            result = client.post(f"/api/flows/{flow_id}/execute", json={"run_id": "run-1"}).json()
            assert result["run_id"] == "run-1"

            cancel = client.post("/api/flows/runs/run-1/cancel")
            assert cancel.status_code == 404

    def test_cancel_unknown_run(self):
        with get_test_client() as client:
            response = client.post("/api/flows/runs/nope/cancel")
            assert response.status_code == 404
            assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"
