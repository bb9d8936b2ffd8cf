"""
Tests for PersonService
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.interaction import InteractionLog
from app.models.person import DynamicField, PersonCategory, PersonStatus
from app.models.user import User
from app.services.person_service import PersonService


@pytest.fixture
def owner(db):
    user = User(email="owner@example.com", password_hash="x", name="Owner")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def service(db):
    return PersonService(db)


def test_create_person_with_dynamic_fields(service, owner):
    """Test person creation stores nested fields and defaults status"""
    person = service.create_person(
        {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "dynamic_fields": [
                {"field_name": "Website", "field_type": "URL", "string_value": "https://ada.dev"},
                {"field_name": "Age", "field_type": "NUMBER", "number_value": 36},
            ],
        },
        created_by_id=owner.id,
    )

    assert person.status == PersonStatus.ACTIVE.value
    assert person.created_by_id == owner.id
    assert sorted(f.field_name for f in person.dynamic_fields) == ["Age", "Website"]


def test_create_person_requires_name(service, owner):
    with pytest.raises(ValidationError, match="Name is required"):
        service.create_person({"email": "a@example.com"}, owner.id)


@pytest.mark.parametrize("data,message", [
    ({"name": "X", "email": "nope"}, "Invalid email format"),
    ({"name": "X", "phone": "call me"}, "Invalid phone format"),
    ({"name": "X", "status": "ASLEEP"}, "Invalid status: ASLEEP"),
])
def test_create_person_validation(service, owner, data, message):
    with pytest.raises(ValidationError, match=message):
        service.create_person(data, owner.id)


@pytest.mark.parametrize("field,message", [
    ({"field_name": "f", "field_type": "STRING"}, "String value is required for field type STRING"),
    ({"field_name": "f", "field_type": "EMAIL", "string_value": "bad"}, "Invalid email format for EMAIL field type"),
    ({"field_name": "f", "field_type": "URL", "string_value": "ada.dev"}, "Invalid URL format for URL field type"),
    ({"field_name": "f", "field_type": "PHONE", "string_value": "abc"}, "Invalid phone format for PHONE field type"),
    ({"field_name": "f", "field_type": "NUMBER"}, "Number value is required for NUMBER field type"),
    ({"field_name": "f", "field_type": "BOOLEAN"}, "Boolean value is required for BOOLEAN field type"),
    ({"field_name": "f", "field_type": "DATE"}, "Date value is required for DATE field type"),
    ({"field_type": "STRING", "string_value": "x"}, "Field name is required"),
])
def test_dynamic_field_validation(service, owner, field, message):
    with pytest.raises(ValidationError, match=message):
        service.create_person({"name": "X", "dynamic_fields": [field]}, owner.id)


def test_boolean_false_is_a_value(service, owner):
    person = service.create_person(
        {"name": "X", "dynamic_fields": [{"field_name": "vip", "field_type": "BOOLEAN", "boolean_value": False}]},
        owner.id,
    )
    assert person.dynamic_fields[0].boolean_value is False


def test_get_person_not_found(service):
    with pytest.raises(NotFoundError, match="Person not found"):
        service.get_person_by_id(uuid4())


def test_get_people_filters_and_last_interaction(service, db, owner):
    lead = service.create_person({"name": "Lead Co", "status": "LEAD"}, owner.id)
    friend = service.create_person({"name": "Pal", "status": "FRIEND", "notes": "met at 50% sale"}, owner.id)
    service.create_person({"name": "Gone", "status": "INACTIVE"}, owner.id)

    older = datetime(2024, 1, 1, tzinfo=timezone.utc)
    newer = older + timedelta(days=3)
    db.add_all([
        InteractionLog(type="CALL", person_id=lead.id, date=older, created_by_id=owner.id),
        InteractionLog(type="EMAIL", person_id=lead.id, date=newer, created_by_id=owner.id),
    ])
    db.commit()

    result = service.get_people(status="LEAD")
    assert result["total"] == 1
    assert result["people"][0]["id"] == str(lead.id)
    assert result["people"][0]["last_interaction"].startswith("2024-01-04T00:00:00")

    business = service.get_people(category=PersonCategory.BUSINESS.value, status="FRIEND")
    assert {p["name"] for p in business["people"]} == {"Lead Co", "Gone"}

    personal = service.get_people(category="PERSONAL")
    assert [p["id"] for p in personal["people"]] == [str(friend.id)]
    assert personal["people"][0]["last_interaction"] is None

    assert service.get_people(search="50%")["total"] == 1
    assert service.get_people(search="pal")["total"] == 1
    assert service.get_people(status="NOT_A_STATUS")["total"] == 3


def test_get_people_pagination_and_order(service, owner):
    for i in range(5):
        service.create_person({"name": f"P{i}"}, owner.id)

    first = service.get_people(page=1, limit=2)
    third = service.get_people(page=3, limit=2)

    assert first["total"] == 5
    assert [p["name"] for p in first["people"]] == ["P4", "P3"]
    assert [p["name"] for p in third["people"]] == ["P0"]


def test_update_person_syncs_dynamic_fields(service, db, owner):
    person = service.create_person(
        {
            "name": "X",
            "dynamic_fields": [
                {"field_name": "keep", "field_type": "STRING", "string_value": "old"},
                {"field_name": "drop", "field_type": "NUMBER", "number_value": 1},
            ],
        },
        owner.id,
    )

    updated = service.update_person(
        person.id,
        {
            "company": "Acme",
            "dynamic_fields": [
                {"field_name": "keep", "field_type": "STRING", "string_value": "new"},
                {"field_name": "added", "field_type": "BOOLEAN", "boolean_value": True},
            ],
        },
        owner.id,
    )

    fields = {f.field_name: f for f in updated.dynamic_fields}
    assert updated.company == "Acme"
    assert updated.name == "X"
    assert set(fields) == {"keep", "added"}
    assert fields["keep"].string_value == "new"
    assert db.query(DynamicField).count() == 2


def test_update_person_empty_field_list_leaves_fields(service, owner):
    person = service.create_person(
        {"name": "X", "dynamic_fields": [{"field_name": "k", "field_type": "STRING", "string_value": "v"}]},
        owner.id,
    )
    updated = service.update_person(person.id, {"dynamic_fields": []}, owner.id)
    assert len(updated.dynamic_fields) == 1


def test_update_person_by_non_owner(service, owner):
    person = service.create_person({"name": "X"}, owner.id)
    with pytest.raises(ForbiddenError, match="You do not have permission to update this person"):
        service.update_person(person.id, {"name": "Y"}, uuid4())


def test_update_missing_person(service, owner):
    with pytest.raises(NotFoundError):
        service.update_person(uuid4(), {"name": "Y"}, owner.id)


def test_delete_person_cascades(service, db, owner):
    person = service.create_person(
        {"name": "X", "dynamic_fields": [{"field_name": "k", "field_type": "STRING", "string_value": "v"}]},
        owner.id,
    )
    db.add(InteractionLog(type="NOTE", person_id=person.id, created_by_id=owner.id))
    db.commit()

    result = service.delete_person(person.id, owner.id)

    assert result["success"] is True
    assert db.query(DynamicField).count() == 0
    assert db.query(InteractionLog).count() == 0


def test_delete_person_by_non_owner(service, owner):
    person = service.create_person({"name": "X"}, owner.id)
    with pytest.raises(ForbiddenError):
        service.delete_person(person.id, uuid4())


def test_add_and_remove_dynamic_field(service, owner):
    person = service.create_person({"name": "X"}, owner.id)

    field = service.add_dynamic_field(
        person.id, {"field_name": "Mail", "field_type": "EMAIL", "string_value": "x@example.com"}, owner.id
    )
    assert field.person_id == person.id

    with pytest.raises(ForbiddenError):
        service.remove_dynamic_field(field.id, uuid4())

    assert service.remove_dynamic_field(field.id, owner.id)["success"] is True
    with pytest.raises(NotFoundError):
        service.remove_dynamic_field(field.id, owner.id)


def test_add_dynamic_field_invalid_type(service, owner):
    person = service.create_person({"name": "X"}, owner.id)
    with pytest.raises(ValidationError, match="Invalid field type"):
        service.add_dynamic_field(person.id, {"field_name": "f", "field_type": "COLOR"}, owner.id)
