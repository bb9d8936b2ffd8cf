"""
Service for managing people (contacts) and their dynamic fields
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.logging_config import LoggingConfig
from app.core.metrics import crm_operations_total
from app.models.interaction import InteractionLog
from app.models.person import (DynamicField, FieldType, Person,
                               PersonCategory, PersonStatus)
from app.utils.datetime_utils import as_utc, to_iso, utc_now
from app.utils.pagination import normalize_page
from app.utils.validators import (escape_like, is_valid_email, is_valid_phone,
                                  is_valid_url)

logger = LoggingConfig.get_logger(__name__)

PERSON_FIELDS = ("name", "email", "phone", "role", "company", "status", "notes", "address")
STRING_FIELD_TYPES = {FieldType.STRING, FieldType.EMAIL, FieldType.URL, FieldType.PHONE}


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _parse_enum(enum_cls, value: Any):
    try:
        return enum_cls(_enum_value(value))
    except ValueError:
        return None


class PersonService:
    """Service for person CRUD and typed dynamic fields"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def create_person(self, data: Dict[str, Any], created_by_id: Optional[UUID] = None) -> Person:
        """
        Create a person with optional nested dynamic fields

        Args:
            data: name (required), email, phone, role, company, status, notes,
                address, dynamic_fields
            created_by_id: Owner of the record

        Raises:
            ValidationError: Missing name, bad email/phone/status or invalid dynamic field
        """
        self._validate_person_data(data, creating=True)

        person = Person(created_by_id=created_by_id)
        self._apply_person_fields(person, data)
        if not person.status:
            person.status = PersonStatus.ACTIVE.value

        for field in data.get("dynamic_fields") or []:
            person.dynamic_fields.append(DynamicField(**self._map_dynamic_field(field)))

        self.db.add(person)
        self.db.commit()
        self.db.refresh(person)

        crm_operations_total.labels(entity="person", operation="create").inc()
        logger.info(
            f"Created person {person.id}",
            extra={"person_id": str(person.id), "dynamic_fields": len(person.dynamic_fields)}
        )
        return person

    def get_person_by_id(self, person_id: UUID) -> Person:
        """Person with dynamic fields and interactions"""
        person = (
            self.db.query(Person)
            .options(selectinload(Person.dynamic_fields), selectinload(Person.interactions))
            .filter(Person.id == person_id)
            .first()
        )
        if not person:
            raise NotFoundError("Person not found")
        return person

    def get_people(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        List people, most recently updated first

        Unknown status or category values are ignored. A category filter
        replaces the status filter. Each entry carries `last_interaction`,
        the date of the person's latest interaction or None.

        Returns:
            {"people": [...], "total": int}
        """
        page, limit = normalize_page(page, limit, default_limit=10)

        query = self.db.query(Person)

        category_enum = _parse_enum(PersonCategory, category) if category else None
        status_enum = _parse_enum(PersonStatus, status) if status else None
        if category_enum:
            query = query.filter(Person.status.in_([s.value for s in category_enum.statuses]))
        elif status_enum:
            query = query.filter(Person.status == status_enum.value)

        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.filter(or_(*[
                getattr(Person, column).ilike(pattern, escape="\\")
                for column in ("name", "email", "phone", "role", "company", "notes", "address")
            ]))

        total = query.count()

        last_interaction = (
            self.db.query(
                InteractionLog.person_id.label("person_id"),
                func.max(InteractionLog.date).label("last_interaction"),
            )
            .group_by(InteractionLog.person_id)
            .subquery()
        )

        rows = (
            query
            .add_columns(last_interaction.c.last_interaction)
            .outerjoin(last_interaction, last_interaction.c.person_id == Person.id)
            .options(selectinload(Person.dynamic_fields))
            .order_by(Person.updated_at.desc(), Person.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        people = []
        for person, last_date in rows:
            item = person.to_dict()
            item["last_interaction"] = to_iso(last_date)
            people.append(item)

        return {"people": people, "total": total}

    def update_person(self, person_id: UUID, data: Dict[str, Any], user_id: Optional[UUID]) -> Person:
        """
        Update a person owned by user_id

        When `dynamic_fields` is a non-empty list the person's fields are
        synchronised to it by field name: matching fields are updated, new
        names are created and names not listed are deleted.
        """
        person = self._get_person(person_id)
        self._check_owner(person, user_id, "update")
        self._validate_person_data(data, creating=False)

        self._apply_person_fields(person, data)

        dynamic_fields = data.get("dynamic_fields")
        if isinstance(dynamic_fields, list) and dynamic_fields:
            self._sync_dynamic_fields(person, dynamic_fields)

        person.updated_at = utc_now()
        self.db.commit()
        self.db.refresh(person)

        crm_operations_total.labels(entity="person", operation="update").inc()
        logger.info(f"Updated person {person.id}", extra={"person_id": str(person.id)})
        return person

    def delete_person(self, person_id: UUID, user_id: Optional[UUID]) -> Dict[str, Any]:
        """Delete a person owned by user_id with its fields and interactions"""
        person = self._get_person(person_id)
        self._check_owner(person, user_id, "delete")

        self.db.delete(person)
        self.db.commit()

        crm_operations_total.labels(entity="person", operation="delete").inc()
        logger.info(f"Deleted person {person_id}", extra={"person_id": str(person_id)})
        return {"success": True, "message": "Person deleted successfully"}

    # ------------------------------------------------------------------
    # Dynamic fields
    # ------------------------------------------------------------------

    def add_dynamic_field(self, person_id: UUID, field: Dict[str, Any], user_id: Optional[UUID]) -> DynamicField:
        if _parse_enum(FieldType, field.get("field_type")) is None:
            raise ValidationError("Invalid field type")

        person = self._get_person(person_id)
        self._check_owner(person, user_id, "add fields to")

        dynamic_field = DynamicField(person_id=person.id, **self._map_dynamic_field(field))
        self.db.add(dynamic_field)
        person.updated_at = utc_now()
        self.db.commit()
        self.db.refresh(dynamic_field)

        crm_operations_total.labels(entity="dynamic_field", operation="create").inc()
        logger.info(
            f"Added dynamic field '{dynamic_field.field_name}' to person {person.id}",
            extra={"person_id": str(person.id), "field_id": str(dynamic_field.id)}
        )
        return dynamic_field

    def remove_dynamic_field(self, field_id: UUID, user_id: Optional[UUID]) -> Dict[str, Any]:
        dynamic_field = self.db.query(DynamicField).filter(DynamicField.id == field_id).first()
        if not dynamic_field:
            raise NotFoundError(f"Dynamic field with ID {field_id} not found")

        self._check_owner(dynamic_field.person, user_id, "remove fields from")

        self.db.delete(dynamic_field)
        self.db.commit()

        crm_operations_total.labels(entity="dynamic_field", operation="delete").inc()
        logger.info(f"Removed dynamic field {field_id}", extra={"field_id": str(field_id)})
        return {"success": True, "message": "Dynamic field removed successfully"}

    def _sync_dynamic_fields(self, person: Person, fields: List[Dict[str, Any]]):
        existing = {field.field_name: field for field in person.dynamic_fields}

        for field in fields:
            values = self._map_dynamic_field(field)
            current = existing.pop(values["field_name"], None)
            if current is not None:
                for key, value in values.items():
                    setattr(current, key, value)
            else:
                person.dynamic_fields.append(DynamicField(**values))

        for stale in existing.values():
            person.dynamic_fields.remove(stale)

    def _map_dynamic_field(self, field: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a dynamic field payload and return column values"""
        field_name = field.get("field_name")
        if not field_name:
            raise ValidationError("Field name is required")

        field_type = _parse_enum(FieldType, field.get("field_type"))
        if field_type is None:
            raise ValidationError(f"Unsupported field type: {_enum_value(field.get('field_type'))}")

        self._validate_field_value(field_type, field)

        date_value = field.get("date_value")
        if isinstance(date_value, datetime):
            date_value = as_utc(date_value)

        return {
            "field_name": field_name,
            "field_type": field_type.value,
            "string_value": field.get("string_value"),
            "number_value": field.get("number_value"),
            "boolean_value": field.get("boolean_value"),
            "date_value": date_value,
        }

    def _validate_field_value(self, field_type: FieldType, field: Dict[str, Any]):
        if field_type in STRING_FIELD_TYPES:
            value = field.get("string_value")
            if value is None:
                raise ValidationError(f"String value is required for field type {field_type.value}")
            if field_type == FieldType.EMAIL and not is_valid_email(value):
                raise ValidationError("Invalid email format for EMAIL field type")
            if field_type == FieldType.URL and not is_valid_url(value):
                raise ValidationError("Invalid URL format for URL field type")
            if field_type == FieldType.PHONE and not is_valid_phone(value):
                raise ValidationError("Invalid phone format for PHONE field type")
        elif field_type == FieldType.NUMBER:
            if field.get("number_value") is None:
                raise ValidationError("Number value is required for NUMBER field type")
        elif field_type == FieldType.BOOLEAN:
            if field.get("boolean_value") is None:
                raise ValidationError("Boolean value is required for BOOLEAN field type")
        elif field_type == FieldType.DATE:
            if field.get("date_value") is None:
                raise ValidationError("Date value is required for DATE field type")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_person(self, person_id: UUID) -> Person:
        person = self.db.query(Person).filter(Person.id == person_id).first()
        if not person:
            raise NotFoundError(f"Person with ID {person_id} not found")
        return person

    @staticmethod
    def _check_owner(person: Optional[Person], user_id: Optional[UUID], action: str):
        if person is None or user_id is None or person.created_by_id != user_id:
            raise ForbiddenError(f"You do not have permission to {action} this person")

    @staticmethod
    def _validate_person_data(data: Dict[str, Any], creating: bool):
        if creating or "name" in data:
            if not data.get("name"):
                raise ValidationError("Name is required")

        email = data.get("email")
        if email and not is_valid_email(email):
            raise ValidationError("Invalid email format")

        phone = data.get("phone")
        if phone and not is_valid_phone(phone):
            raise ValidationError("Invalid phone format")

        status = data.get("status")
        if status is not None and _parse_enum(PersonStatus, status) is None:
            raise ValidationError(f"Invalid status: {_enum_value(status)}")

    @staticmethod
    def _apply_person_fields(person: Person, data: Dict[str, Any]):
        for key in PERSON_FIELDS:
            if key not in data:
                continue
            value = data[key]
            if key == "status":
                if value is None:
                    continue
                value = _enum_value(value)
            setattr(person, key, value)
