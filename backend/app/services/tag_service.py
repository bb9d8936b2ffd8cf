"""
Service for tags and their many-to-many links to interactions
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import (ConflictError, ForbiddenError, NotFoundError,
                                 ValidationError)
from app.core.logging_config import LoggingConfig
from app.core.metrics import crm_operations_total
from app.models.interaction import InteractionLog
from app.models.tag import InteractionTag, Tag
from app.utils.datetime_utils import utc_now
from app.utils.pagination import normalize_page
from app.utils.validators import escape_like, is_valid_color

logger = LoggingConfig.get_logger(__name__)

TAG_FIELDS = ("name", "color", "description")


def parse_tag_ids(tag_ids: Any) -> List[UUID]:
    """Validate a tag id list, dropping duplicates and keeping order"""
    if not isinstance(tag_ids, (list, tuple)):
        raise ValidationError("tag_ids must be an array of strings")

    parsed: List[UUID] = []
    for value in tag_ids:
        if isinstance(value, UUID):
            tag_id = value
        elif isinstance(value, str):
            try:
                tag_id = UUID(value)
            except ValueError:
                raise ValidationError(f"Invalid tag ID: {value}")
        else:
            raise ValidationError("All tag_ids must be strings")
        if tag_id not in parsed:
            parsed.append(tag_id)
    return parsed


class TagService:
    """Service for tag CRUD and interaction association bookkeeping"""

    def __init__(self, db: Session):
        self.db = db

    def create_tag(self, data: Dict[str, Any]) -> Tag:
        """
        Create a tag

        Raises:
            ValidationError: Missing name or invalid colour
            ConflictError: A tag with this name exists
        """
        self._validate_tag_data(data, creating=True)
        name = data["name"].strip()
        self._ensure_name_available(name)

        tag = Tag(name=name, color=data.get("color"), description=data.get("description"))
        self.db.add(tag)
        self._commit_unique(name)
        self.db.refresh(tag)

        crm_operations_total.labels(entity="tag", operation="create").inc()
        logger.info(f"Created tag '{tag.name}'", extra={"tag_id": str(tag.id)})
        return tag

    def get_tag_by_id(self, tag_id: UUID) -> Tag:
        tag = self.db.query(Tag).filter(Tag.id == tag_id).first()
        if not tag:
            raise NotFoundError(f"Tag with ID {tag_id} not found")
        return tag

    def get_tags(self, search: Optional[str] = None, page: int = 1, limit: int = 50) -> Tuple[List[Tag], int, int, int]:
        """
        Tags ordered by name, optionally filtered by name/description substring

        Returns:
            (tags, total, page, limit) with page/limit normalised
        """
        page, limit = normalize_page(page, limit, default_limit=50)

        query = self.db.query(Tag)
        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.filter(or_(
                Tag.name.ilike(pattern, escape="\\"),
                Tag.description.ilike(pattern, escape="\\"),
            ))

        total = query.count()
        tags = query.order_by(Tag.name.asc()).offset((page - 1) * limit).limit(limit).all()
        return tags, total, page, limit

    def get_all_tags(self) -> List[Tag]:
        return self.db.query(Tag).order_by(Tag.name.asc()).all()

    def update_tag(self, tag_id: UUID, data: Dict[str, Any]) -> Tag:
        tag = self.get_tag_by_id(tag_id)
        self._validate_tag_data(data, creating=False)

        if data.get("name") is not None:
            name = data["name"].strip()
            if name != tag.name:
                self._ensure_name_available(name, exclude_id=tag.id)
            tag.name = name
        for key in ("color", "description"):
            if key in data:
                setattr(tag, key, data[key])

        tag.updated_at = utc_now()
        self._commit_unique(tag.name)
        self.db.refresh(tag)

        crm_operations_total.labels(entity="tag", operation="update").inc()
        logger.info(f"Updated tag {tag.id}", extra={"tag_id": str(tag.id)})
        return tag

    def delete_tag(self, tag_id: UUID) -> Dict[str, Any]:
        tag = self.get_tag_by_id(tag_id)
        self.db.delete(tag)
        self.db.commit()

        crm_operations_total.labels(entity="tag", operation="delete").inc()
        logger.info(f"Deleted tag {tag_id}", extra={"tag_id": str(tag_id)})
        return {"success": True, "message": "Tag deleted successfully"}

    # ------------------------------------------------------------------
    # Interaction associations
    # ------------------------------------------------------------------

    def associate_tags_with_interaction(self, interaction_id: UUID, tag_ids: Iterable[Any], user_id: Optional[UUID]) -> int:
        """
        Link tags to an interaction created by user_id

        Existing links are kept as they are. Returns the number of new links.

        Raises:
            NotFoundError: Unknown interaction or tag
            ForbiddenError: Caller did not create the interaction
        """
        parsed = parse_tag_ids(tag_ids)
        interaction = self._get_owned_interaction(interaction_id, user_id)
        added = self.link_tags(interaction, parsed)
        self.db.commit()
        return added

    def remove_tags_from_interaction(self, interaction_id: UUID, tag_ids: Iterable[Any], user_id: Optional[UUID]) -> int:
        """Unlink tags from an interaction created by user_id. Returns the number removed."""
        parsed = parse_tag_ids(tag_ids)
        interaction = self._get_owned_interaction(interaction_id, user_id)
        removed = self.unlink_tags(interaction, parsed)
        self.db.commit()
        return removed

    def link_tags(self, interaction: InteractionLog, tag_ids: List[UUID]) -> int:
        """Add links without committing; caller owns the transaction"""
        if not tag_ids:
            return 0

        tags = {tag.id: tag for tag in self.db.query(Tag).filter(Tag.id.in_(tag_ids)).all()}
        missing = [tag_id for tag_id in tag_ids if tag_id not in tags]
        if missing:
            raise NotFoundError(f"Tag with ID {missing[0]} not found")

        linked = {link.tag_id for link in interaction.tag_links}
        added = 0
        for tag_id in tag_ids:
            if tag_id in linked:
                continue
            interaction.tag_links.append(InteractionTag(tag=tags[tag_id]))
            added += 1

        if added:
            logger.info(
                f"Linked {added} tag(s) to interaction {interaction.id}",
                extra={"interaction_id": str(interaction.id)}
            )
        return added

    def unlink_tags(self, interaction: InteractionLog, tag_ids: Optional[List[UUID]] = None) -> int:
        """Remove the given links (all links when tag_ids is None) without committing"""
        stale = [
            link for link in interaction.tag_links
            if tag_ids is None or link.tag_id in tag_ids
        ]
        for link in stale:
            interaction.tag_links.remove(link)
        if stale:
            logger.info(
                f"Unlinked {len(stale)} tag(s) from interaction {interaction.id}",
                extra={"interaction_id": str(interaction.id)}
            )
        return len(stale)

    def get_tags_for_interaction(self, interaction_id: UUID) -> List[Tag]:
        interaction = self._get_interaction(interaction_id)
        return interaction.tags

    def get_top_tags(self, limit: int = 5) -> List[Tag]:
        """Tags ordered by how many interactions use them"""
        usage = func.count(InteractionTag.interaction_id)
        rows = (
            self.db.query(Tag, usage.label("usage"))
            .join(InteractionTag, InteractionTag.tag_id == Tag.id)
            .group_by(Tag.id)
            .order_by(usage.desc(), Tag.name.asc())
            .limit(max(int(limit), 0))
            .all()
        )
        return [tag for tag, _ in rows]

    def get_interactions_for_tag(self, tag_id: UUID, page: int = 1, limit: int = 10) -> Tuple[List[InteractionLog], int, int, int]:
        """Interactions carrying the tag, newest first"""
        self.get_tag_by_id(tag_id)
        page, limit = normalize_page(page, limit, default_limit=10)

        query = (
            self.db.query(InteractionLog)
            .join(InteractionTag, InteractionTag.interaction_id == InteractionLog.id)
            .filter(InteractionTag.tag_id == tag_id)
        )
        total = query.count()
        interactions = (
            query
            .options(
                selectinload(InteractionLog.person),
                selectinload(InteractionLog.tag_links).selectinload(InteractionTag.tag),
            )
            .order_by(InteractionLog.date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return interactions, total, page, limit

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_interaction(self, interaction_id: UUID) -> InteractionLog:
        interaction = self.db.query(InteractionLog).filter(InteractionLog.id == interaction_id).first()
        if not interaction:
            raise NotFoundError(f"Interaction with ID {interaction_id} not found")
        return interaction

    def _get_owned_interaction(self, interaction_id: UUID, user_id: Optional[UUID]) -> InteractionLog:
        interaction = self._get_interaction(interaction_id)
        if user_id is None or interaction.created_by_id != user_id:
            raise ForbiddenError("You do not have permission to modify tags for this interaction")
        return interaction

    def _ensure_name_available(self, name: str, exclude_id: Optional[UUID] = None):
        query = self.db.query(Tag).filter(Tag.name == name)
        if exclude_id is not None:
            query = query.filter(Tag.id != exclude_id)
        if query.first():
            raise ConflictError(f"Tag with name '{name}' already exists")

    def _commit_unique(self, name: str):
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same name
            self.db.rollback()
            raise ConflictError(f"Tag with name '{name}' already exists")

    @staticmethod
    def _validate_tag_data(data: Dict[str, Any], creating: bool):
        if creating or "name" in data:
            name = data.get("name")
            if not name or not str(name).strip():
                raise ValidationError("Tag name is required")

        color = data.get("color")
        if color and not is_valid_color(color):
            raise ValidationError("Invalid color format. Use hex code (e.g., #FF5733) or CSS color name")
