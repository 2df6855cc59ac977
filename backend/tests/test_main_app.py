# ruff: noqa: INP001
"""Application wiring and OpenAPI surface tests."""

from __future__ import annotations

from fastapi.testclient import TestClient

from intake_board.core.error_handling import REQUEST_ID_HEADER
from intake_board.main import app


def test_health_probes() -> None:
    client = TestClient(app)

    for path in ("/health", "/healthz", "/readyz"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        assert resp.headers.get(REQUEST_ID_HEADER)


def test_workflow_routes_document_error_envelope() -> None:
    schema = app.openapi()
    submit = schema["paths"]["/api/v1/applications/{application_id}/submit"]["post"]

    assert {"403", "404", "409"} <= set(submit["responses"])
    conflict = submit["responses"]["409"]["content"]["application/json"]["schema"]
    assert conflict["$ref"].endswith("/WorkflowErrorResponse")
    assert "WorkflowErrorDetail" in schema["components"]["schemas"]


def test_every_router_is_mounted() -> None:
    tags = {tag for route in app.routes for tag in getattr(route, "tags", [])}

    assert {
        "health",
        "applications",
        "votes",
        "comments",
        "notifications",
        "statistics",
        "users",
    } <= tags
