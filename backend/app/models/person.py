"""
Person (contact) and DynamicField models
"""
from enum import Enum
from typing import Any, Dict, List
from uuid import uuid4

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, String,
                        Text, Uuid)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.utils.datetime_utils import to_iso, utc_now


class PersonStatus(str, Enum):
    """Person status enumeration"""
    # Business
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LEAD = "LEAD"
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    PARTNER = "PARTNER"
    # Personal
    FRIEND = "FRIEND"
    FAMILY = "FAMILY"
    ACQUAINTANCE = "ACQUAINTANCE"


class PersonCategory(str, Enum):
    """Groups of statuses used by the people list filter"""
    BUSINESS = "BUSINESS"
    PERSONAL = "PERSONAL"

    @property
    def statuses(self) -> List[PersonStatus]:
        return CATEGORY_STATUSES[self]


CATEGORY_STATUSES = {
    PersonCategory.BUSINESS: [
        PersonStatus.ACTIVE,
        PersonStatus.INACTIVE,
        PersonStatus.LEAD,
        PersonStatus.CUSTOMER,
        PersonStatus.VENDOR,
        PersonStatus.PARTNER,
    ],
    PersonCategory.PERSONAL: [
        PersonStatus.FRIEND,
        PersonStatus.FAMILY,
        PersonStatus.ACQUAINTANCE,
    ],
}


class FieldType(str, Enum):
    """Dynamic field type enumeration"""
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    URL = "URL"
    EMAIL = "EMAIL"
    PHONE = "PHONE"


class Person(Base):
    """Contact record"""
    __tablename__ = "people"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=PersonStatus.ACTIVE.value, index=True)
    notes = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False, index=True)

    # Relationships
    dynamic_fields = relationship(
        "DynamicField",
        back_populates="person",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DynamicField.created_at",
    )
    interactions = relationship(
        "InteractionLog",
        back_populates="person",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InteractionLog.date.desc()",
    )

    def to_dict(self, include_interactions: bool = False) -> Dict[str, Any]:
        data = {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "company": self.company,
            "status": self.status,
            "notes": self.notes,
            "address": self.address,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "dynamic_fields": [field.to_dict() for field in self.dynamic_fields],
        }
        if include_interactions:
            data["interactions"] = [
                interaction.to_dict(include_person=False) for interaction in self.interactions
            ]
        return data

    def __repr__(self):
        return f"<Person(id={self.id}, name={self.name}, status={self.status})>"


class DynamicField(Base):
    """Typed key/value attached to a Person"""
    __tablename__ = "dynamic_fields"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    field_name = Column(String(255), nullable=False)
    field_type = Column(String(20), nullable=False)
    string_value = Column(Text, nullable=True)
    number_value = Column(Float, nullable=True)
    boolean_value = Column(Boolean, nullable=True)
    date_value = Column(DateTime(timezone=True), nullable=True)
    person_id = Column(Uuid(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    person = relationship("Person", back_populates="dynamic_fields")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "field_name": self.field_name,
            "field_type": self.field_type,
            "string_value": self.string_value,
            "number_value": self.number_value,
            "boolean_value": self.boolean_value,
            "date_value": to_iso(self.date_value),
            "person_id": str(self.person_id),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    def __repr__(self):
        return f"<DynamicField(id={self.id}, name={self.field_name}, type={self.field_type})>"
