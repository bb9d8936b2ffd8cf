"""
Service for interaction logs (calls, emails, meetings, ...) attached to people
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.logging_config import LoggingConfig
from app.core.metrics import crm_operations_total
from app.models.interaction import InteractionLog, InteractionType
from app.models.person import Person
from app.models.tag import InteractionTag
from app.services.tag_service import TagService, parse_tag_ids
from app.utils.datetime_utils import as_utc, utc_now
from app.utils.pagination import normalize_page

logger = LoggingConfig.get_logger(__name__)


def _parse_type(value: Any) -> Optional[InteractionType]:
    try:
        return InteractionType(value.value if hasattr(value, "value") else value)
    except ValueError:
        return None


class InteractionService:
    """Service for interaction log CRUD and tag associations"""

    def __init__(self, db: Session, tag_service: Optional[TagService] = None):
        self.db = db
        self.tag_service = tag_service or TagService(db)

    def create_interaction(self, data: Dict[str, Any], created_by_id: Optional[UUID] = None) -> InteractionLog:
        """
        Record an interaction with a person

        Args:
            data: type and person_id (required), notes, date (defaults to now), tag_ids
            created_by_id: Owner of the record
        """
        if not data.get("type"):
            raise ValidationError("Interaction type is required")
        interaction_type = _parse_type(data["type"])
        if interaction_type is None:
            raise ValidationError(f"Invalid interaction type: {data['type']}")
        if not data.get("person_id"):
            raise ValidationError("Person ID is required")
        person_id = data["person_id"]
        if not isinstance(person_id, UUID):
            try:
                person_id = UUID(str(person_id))
            except ValueError:
                raise ValidationError(f"Invalid person ID: {person_id}")
        tag_ids = parse_tag_ids(data["tag_ids"]) if data.get("tag_ids") is not None else []

        person = self.db.query(Person).filter(Person.id == person_id).first()
        if not person:
            raise NotFoundError(f"Person with ID {person_id} not found")

        interaction = InteractionLog(
            type=interaction_type.value,
            notes=data.get("notes"),
            date=self._normalize_date(data.get("date")) or utc_now(),
            person_id=person.id,
            created_by_id=created_by_id,
        )
        self.db.add(interaction)
        self.db.flush()

        self.tag_service.link_tags(interaction, tag_ids)
        self.db.commit()
        self.db.refresh(interaction)

        crm_operations_total.labels(entity="interaction", operation="create").inc()
        logger.info(
            f"Created {interaction.type} interaction {interaction.id} for person {person.id}",
            extra={"interaction_id": str(interaction.id), "person_id": str(person.id)}
        )
        return interaction

    def get_interaction_by_id(self, interaction_id: UUID) -> InteractionLog:
        interaction = (
            self._base_query()
            .filter(InteractionLog.id == interaction_id)
            .first()
        )
        if not interaction:
            raise NotFoundError(f"Interaction log with ID {interaction_id} not found")
        return interaction

    def get_interactions(
        self,
        person_id: Optional[UUID] = None,
        type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        tag_ids: Optional[List[Any]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[InteractionLog], int, int, int]:
        """
        List interactions, newest first

        The date range is inclusive on both ends. With tag_ids, an interaction
        matches when it carries any of the listed tags.

        Returns:
            (interactions, total, page, limit) with page/limit normalised
        """
        page, limit = normalize_page(page, limit, default_limit=10)

        query = self.db.query(InteractionLog)

        if person_id:
            query = query.filter(InteractionLog.person_id == person_id)

        if type:
            interaction_type = _parse_type(type)
            if interaction_type is None:
                raise ValidationError(f"Invalid interaction type: {type}")
            query = query.filter(InteractionLog.type == interaction_type.value)

        if start_date:
            query = query.filter(InteractionLog.date >= as_utc(start_date))
        if end_date:
            query = query.filter(InteractionLog.date <= as_utc(end_date))

        if tag_ids:
            parsed = parse_tag_ids(tag_ids)
            query = query.filter(
                InteractionLog.tag_links.any(InteractionTag.tag_id.in_(parsed))
            )

        total = query.count()
        interactions = (
            query
            .options(
                selectinload(InteractionLog.person),
                selectinload(InteractionLog.tag_links).selectinload(InteractionTag.tag),
            )
            .order_by(InteractionLog.date.desc(), InteractionLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return interactions, total, page, limit

    def get_interactions_by_person(self, person_id: UUID, **filters) -> Tuple[List[InteractionLog], int, int, int]:
        filters.pop("person_id", None)
        return self.get_interactions(person_id=person_id, **filters)

    def update_interaction(self, interaction_id: UUID, data: Dict[str, Any], user_id: Optional[UUID]) -> InteractionLog:
        """
        Update an interaction created by user_id

        A `tag_ids` key, even an empty list, replaces the tag set.
        """
        interaction = self._get_owned_interaction(interaction_id, user_id)

        if "type" in data:
            interaction_type = _parse_type(data["type"])
            if interaction_type is None:
                raise ValidationError(f"Invalid interaction type: {data['type']}")
            interaction.type = interaction_type.value
        if "notes" in data:
            interaction.notes = data["notes"]
        if data.get("date") is not None:
            interaction.date = self._normalize_date(data["date"])

        if data.get("tag_ids") is not None:
            tag_ids = parse_tag_ids(data["tag_ids"])
            self.tag_service.unlink_tags(interaction)
            self.db.flush()
            self.tag_service.link_tags(interaction, tag_ids)

        interaction.updated_at = utc_now()
        self.db.commit()
        self.db.refresh(interaction)

        crm_operations_total.labels(entity="interaction", operation="update").inc()
        logger.info(f"Updated interaction {interaction.id}", extra={"interaction_id": str(interaction.id)})
        return interaction

    def delete_interaction(self, interaction_id: UUID, user_id: Optional[UUID]) -> Dict[str, Any]:
        interaction = self._get_owned_interaction(interaction_id, user_id)
        self.db.delete(interaction)
        self.db.commit()

        crm_operations_total.labels(entity="interaction", operation="delete").inc()
        logger.info(f"Deleted interaction {interaction_id}", extra={"interaction_id": str(interaction_id)})
        return {"success": True, "message": "Interaction log deleted successfully"}

    def add_tags_by_id(self, interaction_id: UUID, tag_ids: Any, user_id: Optional[UUID]) -> InteractionLog:
        self._ensure_exists(interaction_id)
        self.tag_service.associate_tags_with_interaction(interaction_id, tag_ids, user_id)
        return self.get_interaction_by_id(interaction_id)

    def remove_tags_by_id(self, interaction_id: UUID, tag_ids: Any, user_id: Optional[UUID]) -> InteractionLog:
        self._ensure_exists(interaction_id)
        self.tag_service.remove_tags_from_interaction(interaction_id, tag_ids, user_id)
        return self.get_interaction_by_id(interaction_id)

    def get_all_tags(self) -> List[Dict[str, Any]]:
        """Every tag in structured form, sorted by name"""
        return [tag.to_structured() for tag in self.tag_service.get_all_tags()]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        return self.db.query(InteractionLog).options(
            selectinload(InteractionLog.person),
            selectinload(InteractionLog.tag_links).selectinload(InteractionTag.tag),
        )

    def _ensure_exists(self, interaction_id: UUID):
        exists = self.db.query(InteractionLog.id).filter(InteractionLog.id == interaction_id).first()
        if not exists:
            raise NotFoundError(f"Interaction log with ID {interaction_id} not found")

    def _get_owned_interaction(self, interaction_id: UUID, user_id: Optional[UUID]) -> InteractionLog:
        interaction = self.db.query(InteractionLog).filter(InteractionLog.id == interaction_id).first()
        if not interaction:
            raise NotFoundError(f"Interaction log with ID {interaction_id} not found")
        if user_id is None or interaction.created_by_id != user_id:
            raise ForbiddenError("You do not have permission to modify this interaction")
        return interaction

    @staticmethod
    def _normalize_date(value: Any) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                raise ValidationError("Invalid date format")
        if not isinstance(value, datetime):
            raise ValidationError("Invalid date format")
        return as_utc(value)
