"""
Tests for InteractionService
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.person import Person
from app.models.tag import InteractionTag, Tag
from app.models.user import User
from app.services.interaction_service import InteractionService

BASE = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def owner(db):
    user = User(email="owner@example.com", password_hash="x")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def person(db, owner):
    person = Person(name="Alan", created_by_id=owner.id)
    db.add(person)
    db.commit()
    return person


@pytest.fixture
def tags(db):
    work = Tag(name="work", color="#00f")
    vip = Tag(name="vip", color="gold")
    db.add_all([work, vip])
    db.commit()
    return work, vip


@pytest.fixture
def service(db):
    return InteractionService(db)


def test_create_interaction_with_tags(service, owner, person, tags):
    work, vip = tags

    interaction = service.create_interaction(
        {"type": "CALL", "person_id": str(person.id), "notes": "Intro", "tag_ids": [str(vip.id), str(work.id)]},
        created_by_id=owner.id,
    )

    assert interaction.type == "CALL"
    assert interaction.created_by_id == owner.id
    assert interaction.date is not None
    assert [t["name"] for t in interaction.to_dict()["structured_tags"]] == ["vip", "work"]


@pytest.mark.parametrize("data,error,message", [
    ({"person_id": "x"}, ValidationError, "Interaction type is required"),
    ({"type": "SMOKE_SIGNAL", "person_id": "x"}, ValidationError, "Invalid interaction type"),
    ({"type": "CALL"}, ValidationError, "Person ID is required"),
])
def test_create_interaction_validation(service, data, error, message):
    with pytest.raises(error, match=message):
        service.create_interaction(data)


def test_create_interaction_unknown_person(service):
    with pytest.raises(NotFoundError):
        service.create_interaction({"type": "CALL", "person_id": str(uuid4())})


def test_create_interaction_unknown_tag(service, person):
    with pytest.raises(NotFoundError, match="Tag with ID"):
        service.create_interaction({"type": "CALL", "person_id": str(person.id), "tag_ids": [str(uuid4())]})


def test_get_interactions_filters(service, owner, person, tags):
    work, vip = tags
    for offset, kind, tag_ids in [
        (0, "CALL", [work.id]),
        (1, "EMAIL", [vip.id]),
        (2, "EMAIL", []),
        (3, "MEETING", [work.id, vip.id]),
    ]:
        service.create_interaction(
            {"type": kind, "person_id": person.id, "date": BASE + timedelta(days=offset), "tag_ids": tag_ids},
            owner.id,
        )

    items, total, page, limit = service.get_interactions()
    assert (total, page, limit) == (4, 1, 10)
    assert [i.type for i in items] == ["MEETING", "EMAIL", "EMAIL", "CALL"]

    _, email_total, _, _ = service.get_interactions(type="EMAIL")
    assert email_total == 2

    ranged, ranged_total, _, _ = service.get_interactions(
        start_date=BASE + timedelta(days=1), end_date=BASE + timedelta(days=2)
    )
    assert ranged_total == 2

    tagged, tagged_total, _, _ = service.get_interactions(tag_ids=[str(work.id), str(vip.id)])
    assert tagged_total == 3

    _, other_total, _, _ = service.get_interactions_by_person(uuid4())
    assert other_total == 0


def test_get_interactions_invalid_tag_id(service):
    with pytest.raises(ValidationError, match="Invalid tag ID"):
        service.get_interactions(tag_ids=["nope"])


def test_update_interaction_replaces_tags(service, db, owner, person, tags):
    work, vip = tags
    interaction = service.create_interaction(
        {"type": "CALL", "person_id": person.id, "tag_ids": [str(work.id)]}, owner.id
    )

    updated = service.update_interaction(
        interaction.id, {"notes": "Follow-up", "tag_ids": [str(vip.id)]}, owner.id
    )

    assert updated.notes == "Follow-up"
    assert [t.name for t in updated.tags] == ["vip"]
    assert db.query(InteractionTag).count() == 1

    cleared = service.update_interaction(interaction.id, {"tag_ids": []}, owner.id)
    assert cleared.tags == []


def test_update_interaction_forbidden(service, owner, person):
    interaction = service.create_interaction({"type": "NOTE", "person_id": person.id}, owner.id)
    with pytest.raises(ForbiddenError):
        service.update_interaction(interaction.id, {"notes": "x"}, uuid4())


def test_delete_interaction(service, owner, person):
    interaction = service.create_interaction({"type": "NOTE", "person_id": person.id}, owner.id)

    with pytest.raises(ForbiddenError):
        service.delete_interaction(interaction.id, uuid4())
    assert service.delete_interaction(interaction.id, owner.id)["success"] is True
    with pytest.raises(NotFoundError, match="Interaction log with ID"):
        service.get_interaction_by_id(interaction.id)


def test_add_and_remove_tags(service, owner, person, tags):
    work, vip = tags
    interaction = service.create_interaction({"type": "NOTE", "person_id": person.id}, owner.id)

    tagged = service.add_tags_by_id(interaction.id, [str(work.id), str(vip.id)], owner.id)
    assert len(tagged.tags) == 2

    # Existing links are skipped
    again = service.add_tags_by_id(interaction.id, [str(work.id)], owner.id)
    assert len(again.tags) == 2

    untagged = service.remove_tags_by_id(interaction.id, [str(work.id)], owner.id)
    assert [t.name for t in untagged.tags] == ["vip"]


def test_add_tags_rejects_non_list(service, owner, person):
    interaction = service.create_interaction({"type": "NOTE", "person_id": person.id}, owner.id)
    with pytest.raises(ValidationError, match="tag_ids must be an array of strings"):
        service.add_tags_by_id(interaction.id, "not-a-list", owner.id)


def test_get_all_tags_sorted(service, tags):
    assert [t["name"] for t in service.get_all_tags()] == ["vip", "work"]
