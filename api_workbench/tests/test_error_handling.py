"""
Tests for global error handling and response format consistency.

Every error leaves the API as JSON with a ``detail`` message and an
``error_code``.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from hypothesis import given, strategies as st, settings
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from api_workbench.database import Base, get_db
from api_workbench.exceptions import (
    ConfigurationError,
    ExecutorNotFoundError,
    FlowStepReferenceError,
    ResourceNotFoundError,
    format_validation_errors,
)
from api_workbench.main import app

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_error_handling.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)

@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture(scope="module")
def client():
    """Create test client with test database."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()

# Strategies for generating test data
resource_type_strategy = st.sampled_from([
    ("requests", "Request"),
    ("collections", "Collection"),
    ("environments", "Environment"),
    ("flows", "Flow"),
    ("history", "History record"),
])

invalid_http_method_strategy = st.text(
    alphabet=st.sampled_from("ABCDEFGHIJKLMNOPQRSTUVWXYZ"),
    min_size=1,
    max_size=10
).filter(lambda m: m not in ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])

class TestErrorResponseFormat:
    """Tests for consistent error response format."""

    @pytest.mark.parametrize("endpoint,resource_name", [
        ("requests", "Request"),
        ("collections", "Collection"),
        ("environments", "Environment"),
        ("flows", "Flow"),
    ])
    def test_404_error_format(self, client, endpoint: str, resource_name: str):
        missing = uuid.uuid4()
        response = client.get(f"/api/{endpoint}/{missing}")
        assert response.status_code == 404
        data = response.json()
        assert data["detail"] == f"{resource_name} with id {missing} not found"
        assert data["error_code"] == "RESOURCE_NOT_FOUND"

    def test_malformed_id_is_a_validation_error(self, client):
        response = client.get("/api/requests/99999")
        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert "request_id" in data["detail"]

    def test_422_validation_error_missing_fields(self, client):
        response = client.post("/api/environments", json={})
        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert "name" in data["detail"]

    def test_400_bad_request_circular_collection(self, client):
        collection_id = client.post("/api/collections", json={"name": "Test Collection"}).json()["id"]

        response = client.put(f"/api/collections/{collection_id}", json={"parent_id": collection_id})
        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "BAD_REQUEST"
        assert "descendants" in data["detail"]

class TestExceptionClasses:
    """Tests for custom exception classes."""

    def test_resource_not_found_message(self):
        error = ResourceNotFoundError("Flow", 7)
        assert error.status_code == 404
        assert error.detail == "Flow with id 7 not found"

    def test_configuration_errors_are_unprocessable(self):
        executor_error = ExecutorNotFoundError("soap")
        step_error = FlowStepReferenceError(3, "abc")

        for error in (executor_error, step_error):
            assert isinstance(error, ConfigurationError)
            assert error.status_code == 422

        assert executor_error.error_code == "EXECUTOR_NOT_FOUND"
        assert "soap" in executor_error.detail
        assert step_error.error_code == "INVALID_FLOW_STEP"
        assert "abc" in step_error.detail

class TestValidationMessages:
    def test_locations_are_joined(self):
        message = format_validation_errors([
            {"loc": ("body", "name"), "msg": "Field required"},
            {"loc": ("path", "flow_id"), "msg": "Input should be a valid UUID"},
        ])
        assert message == "body -> name: Field required; path -> flow_id: Input should be a valid UUID"

    def test_no_errors(self):
        assert format_validation_errors([]) == "Validation error"

class TestErrorResponseFormatConsistency:
    @given(resource_info=resource_type_strategy, resource_id=st.uuids())
    @settings(max_examples=50, deadline=None)
    def test_404_error_response_format_consistency(self, client, resource_info: tuple[str, str], resource_id: uuid.UUID):
        """
        For any missing resource, the error names the resource and its id.
        """
        endpoint, resource_name = resource_info

        response = client.get(f"/api/{endpoint}/{resource_id}")

        assert response.status_code == 404
        data = response.json()
        assert data["detail"] == f"{resource_name} with id {resource_id} not found"
        assert data["error_code"] == "RESOURCE_NOT_FOUND"

    @given(invalid_method=invalid_http_method_strategy)
    @settings(max_examples=50, deadline=None)
    def test_422_validation_error_format_consistency(self, client, invalid_method: str):
        """
        For any invalid HTTP method, the validation error points at the method.
        """
        response = client.post("/api/requests", json={
            "request_type": "rest",
            "name": "Test Request",
            "method": invalid_method,
            "url": "https://api.example.com/test"
        })

        assert response.status_code == 422
        data = response.json()
        assert "method" in data["detail"]
        assert data["error_code"] == "VALIDATION_ERROR"
