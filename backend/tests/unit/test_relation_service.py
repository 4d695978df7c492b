from pathlib import Path

import pytest

from backend.src.models.entry import EntryCreate, ErrorKind
from backend.src.models.relation import RelationCreated
from backend.src.services.database import DatabaseService
from backend.src.services.entry_service import EntryService
from backend.src.services.entry_store import EntryStore
from backend.src.services.relation_service import RelationService

USER = "local-dev"


@pytest.fixture()
def service(tmp_path: Path) -> EntryService:
    db_service = DatabaseService(tmp_path / "relations.db")
    db_service.initialize()
    return EntryService(EntryStore(db_service), relation_service=RelationService(db_service))


def _create(service: EntryService, title: str, user_id: str = USER) -> str:
    return service.create_entry(user_id, EntryCreate(title=title, content=f"{title} body")).id


def test_create_and_list_both_directions(service: EntryService) -> None:
    notes = _create(service, "Notes")
    summary = _create(service, "Summary")
    relations = service.relations

    created = relations.create_relation(USER, summary, notes, "summarizes")

    assert isinstance(created, RelationCreated)
    outgoing = relations.list_relations(USER, summary)
    incoming = relations.list_relations(USER, notes)
    assert [(r.relation_id, r.target_id, r.direction) for r in outgoing] == [
        (created.id, notes, "outgoing")
    ]
    assert [(r.target_title, r.target_summary, r.direction) for r in incoming] == [
        ("Summary", "Summary body", "incoming")
    ]


def test_duplicate_relation_is_rejected(service: EntryService) -> None:
    a = _create(service, "A")
    b = _create(service, "B")
    service.relations.create_relation(USER, a, b, "related")

    duplicate = service.relations.create_relation(USER, a, b, "related")
    other_type = service.relations.create_relation(USER, a, b, "continues")

    assert duplicate.error is ErrorKind.INVALID_ARGUMENT
    assert isinstance(other_type, RelationCreated)


def test_both_entries_must_belong_to_user(service: EntryService) -> None:
    mine = _create(service, "Mine")
    theirs = _create(service, "Theirs", user_id="someone-else")

    result = service.relations.create_relation(USER, mine, theirs, "references")

    assert result.error is ErrorKind.NOT_FOUND
    assert theirs in result.message
    assert service.relations.list_relations(USER, mine) == []
    assert service.relations.list_relations(USER, theirs) is None


def test_delete_checks_ownership(service: EntryService) -> None:
    a = _create(service, "A")
    b = _create(service, "B")
    relation_id = service.relations.create_relation(USER, a, b, "related").id

    assert service.relations.delete_relation("someone-else", relation_id) is False
    assert service.relations.delete_relation(USER, relation_id) is True
    assert service.relations.delete_relation(USER, relation_id) is False
    assert service.relations.list_relations(USER, a) == []


def test_deleting_an_entry_drops_its_relations(service: EntryService) -> None:
    a = _create(service, "A")
    b = _create(service, "B")
    service.relations.create_relation(USER, a, b, "related")
    service.relations.create_relation(USER, b, a, "contradicts")

    service.delete_entry(USER, b)

    assert service.relations.list_relations(USER, a) == []
