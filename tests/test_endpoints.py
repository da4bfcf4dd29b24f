"""
Integration tests for the /api/users endpoints using a SQLite database.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from app.core.dependencies import get_engine
from app.services.validation import AT_LEAST_ONE_FIELD


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"

    def test_health_db_unreachable(self, app, tmp_path):
        broken = create_engine(f"sqlite:///{tmp_path / 'missing' / 'users.db'}")
        app.dependency_overrides[get_engine] = lambda: broken
        with TestClient(app) as c:
            r = c.get("/health")
        app.dependency_overrides.clear()
        broken.dispose()
        assert r.status_code == 503
        assert r.json() == {"status": "error", "db": "unreachable"}

    def test_root_banner(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.json()["message"] == "Users API is running"


class TestCreate:
    def test_create_user(self, client):
        r = client.post("/api/users", json={"name": "Ann", "email": "ann@x.com", "age": 30})
        assert r.status_code == 201
        body = r.json()
        assert body["status"] == 201
        assert body["message"] == "User Created"
        assert body["data"]["id"] > 0
        assert body["data"]["name"] == "Ann"

    def test_invalid_body_rejected_and_nothing_stored(self, client):
        r = client.post("/api/users", json={"name": "A", "email": "bad", "age": 30})
        assert r.status_code == 400
        body = r.json()
        assert body == {
            "status": 400,
            "message": "Validation failed",
            "errors": [
                "Name must be at least 2 characters long",
                "Please provide a valid email address",
            ],
        }
        assert client.get("/api/users").json()["data"] == []

    def test_missing_body_reports_every_field(self, client):
        r = client.post("/api/users")
        assert r.status_code == 400
        assert r.json()["errors"] == ["Name is required", "Email is required", "Age is required"]

    def test_malformed_json_is_a_validation_failure(self, client):
        r = client.post(
            "/api/users",
            content=b'{"name": "Ann",',
            headers={"Content-Type": "application/json"},
        )
        assert r.status_code == 400
        body = r.json()
        assert body["message"] == "Validation failed"
        assert body["errors"]


class TestRead:
    def test_list_users(self, client, ann):
        r = client.get("/api/users")
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "Users Retrieved"
        assert body["data"] == [ann]

    def test_get_user(self, client, ann):
        r = client.get(f"/api/users/{ann['id']}")
        assert r.status_code == 200
        assert r.json() == {"status": 200, "message": "User Retrieved", "data": ann}

    def test_get_missing_user_is_404(self, client):
        r = client.get("/api/users/999")
        assert r.status_code == 404
        body = r.json()
        assert body["status"] == 404
        assert body["message"] == "User not found"
        assert body["errors"] == ["No user found with ID 999"]

    @pytest.mark.parametrize("raw, message", [
        ("abc", "ID must be a number"),
        ("0", "ID must be a positive number"),
        ("-1", "ID must be a positive number"),
        ("2.5", "ID must be a whole number"),
        ("99999999999999999999", "ID must not exceed 2147483647"),
        ("%D9%A1", "ID must be a number"),
        ("1_0", "ID must be a number"),
    ])
    def test_invalid_id(self, client, raw, message):
        r = client.get(f"/api/users/{raw}")
        assert r.status_code == 400
        assert r.json() == {"status": 400, "message": "Invalid user ID", "errors": [message]}


class TestUpdate:
    def test_partial_update(self, client, ann):
        r = client.put(f"/api/users/{ann['id']}", json={"age": 31})
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "User Updated"
        assert body["data"] == {**ann, "age": 31}

        stored = client.get(f"/api/users/{ann['id']}").json()["data"]
        assert stored["name"] == ann["name"]
        assert stored["email"] == ann["email"]
        assert stored["age"] == 31

    def test_empty_body_rejected(self, client, ann):
        r = client.put(f"/api/users/{ann['id']}", json={})
        assert r.status_code == 400
        assert r.json()["errors"] == [AT_LEAST_ONE_FIELD]

    def test_invalid_fields_rejected(self, client, ann):
        r = client.put(f"/api/users/{ann['id']}", json={"email": "", "age": 0})
        assert r.status_code == 400
        assert r.json()["errors"] == ["Email cannot be empty", "Age must be at least 1"]
        assert client.get(f"/api/users/{ann['id']}").json()["data"] == ann

    def test_update_missing_user_is_404(self, client):
        r = client.put("/api/users/999", json={"name": "Ghost"})
        assert r.status_code == 404

    def test_unknown_keys_only(self, client, ann):
        r = client.put(f"/api/users/{ann['id']}", json={"nickname": "Annie"})
        assert r.status_code == 400
        assert r.json()["errors"] == ['"nickname" is not allowed']

    def test_invalid_id_checked_before_body(self, client):
        r = client.put("/api/users/abc", json={})
        assert r.status_code == 400
        assert r.json() == {
            "status": 400,
            "message": "Invalid user ID",
            "errors": ["ID must be a number"],
        }


class TestDelete:
    def test_delete_returns_prior_row(self, client, ann):
        r = client.delete(f"/api/users/{ann['id']}")
        assert r.status_code == 200
        assert r.json() == {"status": 200, "message": "User Deleted", "data": ann}

    def test_delete_then_get_is_404(self, client, ann):
        client.delete(f"/api/users/{ann['id']}")
        assert client.get(f"/api/users/{ann['id']}").status_code == 404

    def test_delete_missing_user_is_404(self, client):
        r = client.delete("/api/users/999")
        assert r.status_code == 404

    def test_delete_invalid_id(self, client):
        r = client.delete("/api/users/-3")
        assert r.status_code == 400


class TestRepositoryUntouchedOnRejection:
    """Rejected requests never reach the repository."""

    def test_bad_create(self, spy_client, spy):
        r = spy_client.post("/api/users", json={"name": "A", "email": "bad", "age": 30})
        assert r.status_code == 400
        assert spy.calls == []

    def test_non_positive_id(self, spy_client, spy):
        r = spy_client.get("/api/users/0")
        assert r.status_code == 400
        assert spy.calls == []

    def test_empty_update(self, spy_client, spy):
        r = spy_client.put("/api/users/5", json={})
        assert r.status_code == 400
        assert r.json()["errors"] == [AT_LEAST_ONE_FIELD]
        assert spy.calls == []

    def test_bad_delete(self, spy_client, spy):
        r = spy_client.delete("/api/users/abc")
        assert r.status_code == 400
        assert spy.calls == []

    def test_out_of_range_id(self, spy_client, spy):
        r = spy_client.get("/api/users/99999999999999999999")
        assert r.status_code == 400
        assert spy.calls == []

    def test_valid_request_reaches_repository(self, spy_client, spy):
        r = spy_client.get("/api/users/5")
        assert r.status_code == 404
        assert spy.calls == [("get_by_id", (5,))]
