"""
Tag and InteractionTag (association) models
"""
from typing import Any, Dict
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.utils.datetime_utils import to_iso, utc_now


class Tag(Base):
    """Label that can be attached to many interactions"""
    __tablename__ = "tags"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), unique=True, nullable=False, index=True)
    color = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    interaction_links = relationship(
        "InteractionTag",
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_structured(self) -> Dict[str, Any]:
        """Compact form embedded in interaction payloads"""
        return {
            "id": str(self.id),
            "name": self.name,
            "color": self.color,
            "description": self.description,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_structured()
        data.update({
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f"<Tag(id={self.id}, name={self.name})>"


class InteractionTag(Base):
    """Many-to-many link between InteractionLog and Tag"""
    __tablename__ = "interaction_tags"

    interaction_id = Column(
        Uuid(as_uuid=True), ForeignKey("interaction_logs.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    tag_id = Column(Uuid(as_uuid=True), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)
    assigned_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    interaction = relationship("InteractionLog", back_populates="tag_links")
    tag = relationship("Tag", back_populates="interaction_links")

    def __repr__(self):
        return f"<InteractionTag(interaction_id={self.interaction_id}, tag_id={self.tag_id})>"
