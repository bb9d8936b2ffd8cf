"""
InteractionLog model
"""
from enum import Enum
from typing import Any, Dict, List
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.utils.datetime_utils import to_iso, utc_now


class InteractionType(str, Enum):
    """Interaction type enumeration"""
    CALL = "CALL"
    EMAIL = "EMAIL"
    MEETING = "MEETING"
    NOTE = "NOTE"
    TASK = "TASK"
    OTHER = "OTHER"


class InteractionLog(Base):
    """Typed activity record attached to a Person"""
    __tablename__ = "interaction_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    type = Column(String(20), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
    person_id = Column(Uuid(as_uuid=True), ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    person = relationship("Person", back_populates="interactions")
    tag_links = relationship(
        "InteractionTag",
        back_populates="interaction",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def tags(self) -> List["Tag"]:  # noqa: F821
        return sorted((link.tag for link in self.tag_links), key=lambda tag: tag.name)

    def to_dict(self, include_person: bool = True) -> Dict[str, Any]:
        data = {
            "id": str(self.id),
            "type": self.type,
            "notes": self.notes,
            "date": to_iso(self.date),
            "person_id": str(self.person_id),
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "structured_tags": [tag.to_structured() for tag in self.tags],
        }
        if include_person and self.person is not None:
            data["person"] = {
                "id": str(self.person.id),
                "name": self.person.name,
                "email": self.person.email,
                "status": self.person.status,
            }
        return data

    def __repr__(self):
        return f"<InteractionLog(id={self.id}, type={self.type}, person_id={self.person_id})>"
