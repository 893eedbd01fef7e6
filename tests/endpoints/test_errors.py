import pytest
from fastapi.testclient import TestClient

import main
from courseflow.core.config import settings
from courseflow.services.course import CourseService
from tests.helpers.asserts import assert_error, auth_headers


def test_http_errors_use_the_envelope(client: TestClient, tutor):
    body = assert_error(client.get("/courses/424242", headers=auth_headers(tutor)), 404, "NOT_FOUND")
    assert body["error"]["message"] == "Course not found."
    assert body["path"] == "/courses/424242"
    assert body["timestamp"]
    assert "details" not in body["error"]


def test_validation_errors_carry_details(client: TestClient, tutor):
    body = assert_error(client.post("/courses/", headers=auth_headers(tutor), json={}), 422, "VALIDATION_FAILED")
    fields = [tuple(e["loc"]) for e in body["error"]["details"]["validation_errors"]]
    assert ("body", "title") in fields


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.parametrize("expose", [False, True])
def test_unhandled_errors_hide_details_unless_enabled(client: TestClient, tutor, monkeypatch, expose):
    async def explode(self, db, skip=0, limit=100):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(CourseService, "list_catalog", explode)
    monkeypatch.setattr(settings, "EXPOSE_ERROR_DETAILS", expose)

    with TestClient(main.app, raise_server_exceptions=False) as raw_client:
        body = assert_error(raw_client.get("/courses/", headers=auth_headers(tutor)), 500, "INTERNAL_SERVER_ERROR")

    assert body["error"]["message"] == "An unexpected error occurred"
    if expose:
        assert body["error"]["details"] == {"error_type": "RuntimeError", "error": "database on fire"}
    else:
        assert "details" not in body["error"]
