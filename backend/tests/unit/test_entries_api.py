from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.src.api.main import app
from backend.src.api.routes.entries import get_user_id
from backend.src.services.agent_log import AgentLogService
from backend.src.services.database import DatabaseService
from backend.src.services.entry_service import EntryService, get_entry_service
from backend.src.services.entry_store import EntryStore


@pytest.fixture()
def client(tmp_path: Path):
    db_service = DatabaseService(tmp_path / "api.db")
    db_service.initialize()
    service = EntryService(
        EntryStore(db_service), AgentLogService(db_service), long_doc_threshold=50
    )
    app.dependency_overrides[get_entry_service] = lambda: service
    app.dependency_overrides[get_user_id] = lambda: "test-user"
    yield TestClient(app)
    # Clean up overrides
    app.dependency_overrides = {}


def _create(client: TestClient, content: str = "# T\n\n## A\nalpha\n## B\nbeta") -> str:
    response = client.post("/api/entries", json={"title": "T", "content": content})
    assert response.status_code == 201
    assert response.json()["version"] == 1
    return response.json()["id"]


def test_create_and_read_entry(client: TestClient) -> None:
    entry_id = _create(client)

    response = client.get(f"/api/entries/{entry_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "full"
    assert data["content"].startswith("# T")

    outline = client.get(f"/api/entries/{entry_id}", params={"mode": "outline"}).json()
    assert [s["heading"] for s in outline["sections"]] == ["(intro)", "A", "B"]

    page = client.get(f"/api/entries/{entry_id}", params={"offset": 3, "limit": 2}).json()
    assert page["mode"] == "page"
    assert page["content"] == "3| ## A\n4| alpha"


def test_version_conflict_returns_409(client: TestClient) -> None:
    entry_id = _create(client)

    response = client.put(f"/api/entries/{entry_id}", json={"version": 5, "content": "x"})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "conflict"
    assert body["detail"] == {"current_version": 1}


def test_ambiguous_replace_returns_422(client: TestClient) -> None:
    entry_id = _create(client, content="a b a")

    response = client.post(
        f"/api/entries/{entry_id}/replace",
        json={"old_text": "a", "new_text": "x", "version": 1},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ambiguous"
    assert response.json()["detail"] == {"match_count": 2}


def test_missing_section_returns_404(client: TestClient) -> None:
    entry_id = _create(client)

    response = client.get(f"/api/entries/{entry_id}/sections/9")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_invalid_arguments_return_400(client: TestClient) -> None:
    entry_id = _create(client)

    bad_offset = client.get(f"/api/entries/{entry_id}", params={"offset": 0})
    empty_old_text = client.post(
        f"/api/entries/{entry_id}/replace",
        json={"old_text": "", "new_text": "x", "version": 1},
    )

    assert bad_offset.status_code == 400
    assert empty_old_text.status_code == 400
    assert empty_old_text.json()["error"] == "validation_error"


def test_section_update_append_and_history(client: TestClient) -> None:
    entry_id = _create(client)

    section = client.put(
        f"/api/entries/{entry_id}/sections/2", json={"content": "## B\ngamma", "version": 1}
    )
    appended = client.post(
        f"/api/entries/{entry_id}/append",
        json={"content": "tail", "version": 2, "source": "agent"},
    )

    assert section.json()["version"] == 2
    assert appended.json()["version"] == 3
    versions = client.get(f"/api/entries/{entry_id}/versions").json()["versions"]
    assert [v["version"] for v in versions] == [3, 2, 1]
    assert versions[1]["change_summary"] == "更新了 section 2"

    logs = client.get("/api/logs", params={"recent": 5}).json()
    assert [log["action"] for log in logs["logs"]] == ["update"]


def test_delete_entry(client: TestClient) -> None:
    entry_id = _create(client)

    assert client.delete(f"/api/entries/{entry_id}").status_code == 204
    assert client.get(f"/api/entries/{entry_id}").status_code == 404
    assert client.delete(f"/api/entries/{entry_id}").status_code == 404


def test_list_entries_by_tag(client: TestClient) -> None:
    client.post("/api/entries", json={"title": "W", "content": "x", "tags": ["work"]})
    client.post("/api/entries", json={"title": "H", "content": "y", "tags": ["home"]})

    response = client.get("/api/entries", params={"tags": "work"})

    assert response.status_code == 200
    assert [entry["title"] for entry in response.json()["entries"]] == ["W"]


def test_relation_routes(client: TestClient) -> None:
    source = _create(client)
    target = _create(client, content="other")

    created = client.post(
        f"/api/entries/{source}/relations", json={"to_id": target, "type": "continues"}
    )
    assert created.status_code == 201
    relation_id = created.json()["id"]

    listing = client.get(f"/api/entries/{target}/relations").json()["relations"]
    assert [(r["target_id"], r["direction"]) for r in listing] == [(source, "incoming")]
    assert client.get(f"/api/entries/{source}").json()["relations"][0]["type"] == "continues"

    bad_type = client.post(
        f"/api/entries/{source}/relations", json={"to_id": target, "type": "likes"}
    )
    missing = client.post(
        f"/api/entries/{source}/relations", json={"to_id": "nope", "type": "related"}
    )
    assert bad_type.status_code == 400
    assert missing.status_code == 404

    assert client.delete(f"/api/entries/{source}/relations/{relation_id}").status_code == 204
    assert client.delete(f"/api/entries/{source}/relations/{relation_id}").status_code == 404
    assert client.get("/api/entries/nope/relations").status_code == 404
