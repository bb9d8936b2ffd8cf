"""
API routes for tags and their association with interactions
"""
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import CRMError
from app.core.logging_config import LoggingConfig
from app.services.tag_service import TagService
from app.utils.pagination import page_meta

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/tags", tags=["tags"])


class TagCreateRequest(BaseModel):
    """Request to create a tag"""
    name: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = None
    description: Optional[str] = None


class TagUpdateRequest(TagCreateRequest):
    pass


class TagIdsRequest(BaseModel):
    tag_ids: Any = None


def _internal_error(action: str, e: Exception) -> CRMError:
    logger.error(f"Error {action}: {e}", exc_info=True)
    return CRMError(
        "Something went wrong",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_error"
    )


def _tags_for(service: TagService, interaction_id: UUID) -> Dict[str, Any]:
    tags = service.get_tags_for_interaction(interaction_id)
    return {"success": True, "data": [tag.to_dict() for tag in tags]}


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_tag(
    request: TagCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        tag = TagService(db).create_tag(request.model_dump(exclude_unset=True))
        return {"success": True, "data": tag.to_dict()}
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("creating tag", e)


@router.get("/")
async def list_tags(
    search: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(50),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Tags ordered by name, optionally filtered by name/description"""
    try:
        tags, total, page, limit = TagService(db).get_tags(search=search, page=page, limit=limit)
        return {
            "success": True,
            "data": [tag.to_dict() for tag in tags],
            "meta": page_meta(total, page, limit),
        }
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("listing tags", e)


@router.get("/top")
async def top_tags(
    limit: int = Query(5, ge=0, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Most used tags first"""
    tags = TagService(db).get_top_tags(limit)
    return {"success": True, "data": [tag.to_dict() for tag in tags]}


@router.get("/interaction/{interaction_id}")
async def get_interaction_tags(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _tags_for(TagService(db), interaction_id)


@router.post("/interaction/{interaction_id}")
async def associate_interaction_tags(
    interaction_id: UUID,
    request: TagIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Link tags to an interaction created by the caller; existing links are kept"""
    try:
        service = TagService(db)
        service.associate_tags_with_interaction(interaction_id, request.tag_ids, user_id=current_user.id)
        return _tags_for(service, interaction_id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"tagging interaction {interaction_id}", e)


@router.delete("/interaction/{interaction_id}")
async def remove_interaction_tags(
    interaction_id: UUID,
    request: TagIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        service = TagService(db)
        service.remove_tags_from_interaction(interaction_id, request.tag_ids, user_id=current_user.id)
        return _tags_for(service, interaction_id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"untagging interaction {interaction_id}", e)


@router.get("/{tag_id}")
async def get_tag(
    tag_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    tag = TagService(db).get_tag_by_id(tag_id)
    return {"success": True, "data": tag.to_dict()}


@router.put("/{tag_id}")
async def update_tag(
    tag_id: UUID,
    request: TagUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        tag = TagService(db).update_tag(tag_id, request.model_dump(exclude_unset=True))
        return {"success": True, "data": tag.to_dict()}
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"updating tag {tag_id}", e)


@router.delete("/{tag_id}")
async def delete_tag(
    tag_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a tag; its interaction links go with it"""
    try:
        return TagService(db).delete_tag(tag_id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"deleting tag {tag_id}", e)


@router.get("/{tag_id}/interactions")
async def list_tag_interactions(
    tag_id: UUID,
    page: int = Query(1),
    limit: int = Query(10),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Interactions carrying the tag, newest first"""
    try:
        interactions, total, page, limit = TagService(db).get_interactions_for_tag(tag_id, page=page, limit=limit)
        return {
            "success": True,
            "data": [interaction.to_dict() for interaction in interactions],
            "meta": page_meta(total, page, limit),
        }
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"listing interactions for tag {tag_id}", e)
