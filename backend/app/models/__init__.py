"""
SQLAlchemy models
"""
from app.core.database import Base
# Import all models here so Alembic can detect them
from app.models.interaction import InteractionLog, InteractionType  # noqa: F401
from app.models.person import (CATEGORY_STATUSES, DynamicField,  # noqa: F401
                               FieldType, Person, PersonCategory,
                               PersonStatus)
from app.models.tag import InteractionTag, Tag  # noqa: F401
from app.models.user import PasswordResetToken, User, UserRole  # noqa: F401

__all__ = [
    "Base",
    "User",
    "UserRole",
    "PasswordResetToken",
    "Person",
    "PersonStatus",
    "PersonCategory",
    "CATEGORY_STATUSES",
    "DynamicField",
    "FieldType",
    "InteractionLog",
    "InteractionType",
    "Tag",
    "InteractionTag",
]
