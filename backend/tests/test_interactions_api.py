"""
Tests for /api/interactions endpoints
"""
from uuid import uuid4

import pytest


@pytest.fixture
def person(client, auth_headers):
    response = client.post("/api/people/", json={"name": "Linus"}, headers=auth_headers)
    return response.json()


@pytest.fixture
def tag(client, auth_headers):
    response = client.post("/api/tags/", json={"name": "follow-up", "color": "#FF5733"}, headers=auth_headers)
    return response.json()["data"]


@pytest.fixture
def interaction(client, auth_headers, person, tag):
    response = client.post(
        "/api/interactions/",
        json={
            "type": "CALL",
            "person_id": person["id"],
            "notes": "Kickoff",
            "date": "2024-06-01T10:00:00Z",
            "tag_ids": [tag["id"]],
        },
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_interaction(interaction, person, tag, user):
    assert interaction["type"] == "CALL"
    assert interaction["date"].startswith("2024-06-01T10:00:00")
    assert interaction["created_by_id"] == user["id"]
    assert interaction["person"]["id"] == person["id"]
    assert interaction["structured_tags"] == [
        {"id": tag["id"], "name": "follow-up", "color": "#FF5733", "description": None}
    ]


def test_create_interaction_missing_person(client, auth_headers):
    response = client.post(
        "/api/interactions/",
        json={"type": "CALL", "person_id": str(uuid4())},
        headers=auth_headers,
    )

    assert response.status_code == 404


def test_create_interaction_requires_type(client, auth_headers, person):
    response = client.post("/api/interactions/", json={"person_id": person["id"]}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Interaction type is required"


def test_list_interactions_envelope(client, auth_headers, interaction):
    response = client.get("/api/interactions/", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["meta"] == {"total": 1, "page": 1, "limit": 10, "pages": 1}
    assert body["data"][0]["id"] == interaction["id"]


def test_list_interactions_by_tag_ids(client, auth_headers, interaction, tag):
    hit = client.get("/api/interactions/", params={"tag_ids": f"{tag['id']},{uuid4()}"}, headers=auth_headers)
    miss = client.get("/api/interactions/", params={"tag_ids": str(uuid4())}, headers=auth_headers)

    assert hit.json()["meta"]["total"] == 1
    assert miss.json()["meta"]["total"] == 0


def test_list_interactions_by_date_range(client, auth_headers, interaction):
    inside = client.get(
        "/api/interactions/",
        params={"start_date": "2024-06-01T10:00:00Z", "end_date": "2024-06-01T10:00:00Z"},
        headers=auth_headers,
    )
    outside = client.get(
        "/api/interactions/",
        params={"start_date": "2024-06-02T00:00:00Z"},
        headers=auth_headers,
    )

    assert inside.json()["meta"]["total"] == 1
    assert outside.json()["meta"]["total"] == 0


def test_list_person_interactions(client, auth_headers, interaction, person):
    response = client.get(f"/api/interactions/person/{person['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert [i["id"] for i in response.json()["data"]] == [interaction["id"]]


def test_list_all_tags(client, auth_headers, tag):
    client.post("/api/tags/", json={"name": "alpha"}, headers=auth_headers)

    response = client.get("/api/interactions/tags", headers=auth_headers)

    assert response.status_code == 200
    assert [t["name"] for t in response.json()["data"]] == ["alpha", "follow-up"]


def test_get_interaction(client, auth_headers, interaction):
    response = client.get(f"/api/interactions/{interaction['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["notes"] == "Kickoff"


def test_get_missing_interaction(client, auth_headers):
    missing = uuid4()
    response = client.get(f"/api/interactions/{missing}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == f"Interaction log with ID {missing} not found"


def test_update_interaction(client, auth_headers, interaction):
    response = client.put(
        f"/api/interactions/{interaction['id']}",
        json={"notes": "Rescheduled", "type": "MEETING", "tag_ids": []},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["notes"] == "Rescheduled"
    assert data["type"] == "MEETING"
    assert data["structured_tags"] == []


def test_update_interaction_forbidden(client, other_headers, interaction):
    response = client.put(
        f"/api/interactions/{interaction['id']}",
        json={"notes": "Not mine"},
        headers=other_headers,
    )

    assert response.status_code == 403


def test_delete_interaction(client, auth_headers, other_headers, interaction):
    assert client.delete(f"/api/interactions/{interaction['id']}", headers=other_headers).status_code == 403

    response = client.delete(f"/api/interactions/{interaction['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/api/interactions/{interaction['id']}", headers=auth_headers).status_code == 404


def test_add_and_remove_interaction_tags(client, auth_headers, interaction):
    extra = client.post("/api/tags/", json={"name": "urgent"}, headers=auth_headers).json()["data"]

    added = client.post(
        f"/api/interactions/{interaction['id']}/tags",
        json={"tag_ids": [extra["id"]]},
        headers=auth_headers,
    )
    assert added.status_code == 200
    assert [t["name"] for t in added.json()["data"]["structured_tags"]] == ["follow-up", "urgent"]

    removed = client.request(
        "DELETE",
        f"/api/interactions/{interaction['id']}/tags",
        json={"tag_ids": [extra["id"]]},
        headers=auth_headers,
    )
    assert removed.status_code == 200
    assert [t["name"] for t in removed.json()["data"]["structured_tags"]] == ["follow-up"]


def test_add_tags_requires_list(client, auth_headers, interaction):
    response = client.post(
        f"/api/interactions/{interaction['id']}/tags",
        json={"tag_ids": "not-a-list"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "tag_ids must be an array of strings"


def test_add_tags_forbidden_for_other_user(client, other_headers, interaction, tag):
    response = client.post(
        f"/api/interactions/{interaction['id']}/tags",
        json={"tag_ids": [tag["id"]]},
        headers=other_headers,
    )

    assert response.status_code == 403


def test_unexpected_error_returns_internal_error(client, auth_headers, monkeypatch):
    from app.services.interaction_service import InteractionService

    def broken(self, **kwargs):
        raise RuntimeError("db exploded")

    monkeypatch.setattr(InteractionService, "get_interactions", broken)

    response = client.get("/api/interactions/", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Something went wrong", "code": "internal_error"}
