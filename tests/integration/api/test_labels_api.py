"""Integration tests for the label endpoints."""

import re

from fastapi.testclient import TestClient
from pytest_httpx import HTTPXMock

from cratedigger.domain.value_objects import to_stored_id


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


# Hey future me - the tenant header is mandatory on every tenant-scoped route.
def test_missing_user_header_is_rejected(client: TestClient) -> None:
    response = client.get("/api/labels")
    assert response.status_code == 422


def test_list_labels_empty(client: TestClient, headers: dict[str, str]) -> None:
    response = client.get("/api/labels", headers=headers)
    assert response.status_code == 200
    assert response.json() == []


# Without a Discogs token the metadata refresh is skipped, the label is still added.
def test_add_label_without_discogs_connection(client: TestClient, headers: dict[str, str]) -> None:
    response = client.post("/api/labels", json={"label": "100"}, headers=headers)

    assert response.status_code == 201
    label = response.json()
    assert label["id"] == to_stored_id("alice", 100, "label")
    assert label["name"] == "Label 100"
    assert label["active"] is False
    assert label["status"] == "queued"


def test_add_label_blank_input(client: TestClient, headers: dict[str, str]) -> None:
    response = client.post("/api/labels", json={"label": "   "}, headers=headers)
    assert response.status_code == 422


# Search needs Discogs; without a token that's a configuration problem, not a 500.
def test_add_label_by_name_needs_discogs(client: TestClient, headers: dict[str, str]) -> None:
    response = client.post("/api/labels", json={"label": "warp"}, headers=headers)
    assert response.status_code == 503


def test_add_label_with_metadata(
    connected_client: TestClient, headers: dict[str, str], httpx_mock: HTTPXMock
) -> None:
    httpx_mock.add_response(
        url=re.compile(r".*/labels/100$"),
        json={"name": "Warp", "profile": "Based in [l=Sheffield].", "images": []},
    )
    httpx_mock.add_response(
        url=re.compile(r".*/labels/100/releases\?.*per_page=24.*"),
        json={
            "releases": [{"id": 1, "title": "Artificial Intelligence"}],
            "pagination": {"page": 1, "pages": 1},
        },
    )

    response = connected_client.post("/api/labels", json={"label": "100"}, headers=headers)

    assert response.status_code == 201
    label = response.json()
    assert label["name"] == "Warp"
    assert label["blurb"] == "Based in Sheffield."
    assert label["notable_releases"] == ["Artificial Intelligence"]
    assert httpx_mock.get_requests()[0].headers["Authorization"] == "Discogs token=secret-token"


def test_label_lifecycle(client: TestClient, headers: dict[str, str]) -> None:
    label_id = client.post("/api/labels", json={"label": "100"}, headers=headers).json()["id"]

    activated = client.post(f"/api/labels/{label_id}/active", json={"active": True}, headers=headers)
    assert activated.json()["active"] is True
    assert activated.json()["status"] == "queued"

    paused = client.post(f"/api/labels/{label_id}/pause", headers=headers)
    assert paused.json()["status"] == "paused"

    retried = client.post(f"/api/labels/{label_id}/retry", headers=headers)
    assert retried.json()["status"] == "queued"
    assert retried.json()["retry_count"] == 0

    assert client.delete(f"/api/labels/{label_id}", headers=headers).status_code == 204
    assert client.get("/api/labels", headers=headers).json() == []


def test_labels_are_tenant_scoped(client: TestClient, headers: dict[str, str]) -> None:
    label_id = client.post("/api/labels", json={"label": "100"}, headers=headers).json()["id"]

    other = {"X-User-Id": "bob"}
    assert client.get("/api/labels", headers=other).json() == []
    assert client.delete(f"/api/labels/{label_id}", headers=other).status_code == 404


def test_unknown_label_is_404(client: TestClient, headers: dict[str, str]) -> None:
    assert client.post("/api/labels/1/retry", headers=headers).status_code == 404
    assert client.delete("/api/labels/1", headers=headers).status_code == 404


def test_wishlist_toggle_unknown_release(client: TestClient, headers: dict[str, str]) -> None:
    assert client.post("/api/releases/1/wishlist", headers=headers).status_code == 404
