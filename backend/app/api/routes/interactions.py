"""
API routes for interaction logs
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import CRMError
from app.core.logging_config import LoggingConfig
from app.models.interaction import InteractionLog
from app.services.interaction_service import InteractionService
from app.utils.pagination import page_meta

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/interactions", tags=["interactions"])


class InteractionCreateRequest(BaseModel):
    """Request to record an interaction"""
    type: Optional[str] = None
    person_id: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None
    tag_ids: Optional[Any] = None


class InteractionUpdateRequest(BaseModel):
    type: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None
    tag_ids: Optional[Any] = None


class TagIdsRequest(BaseModel):
    """Body of the tag association endpoints; the shape is checked by the service"""
    tag_ids: Any = None


def _split_ids(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _list_response(result) -> Dict[str, Any]:
    interactions, total, page, limit = result
    return {
        "success": True,
        "data": [interaction.to_dict() for interaction in interactions],
        "meta": page_meta(total, page, limit),
    }


def _item_response(interaction: InteractionLog) -> Dict[str, Any]:
    return {"success": True, "data": interaction.to_dict()}


def _internal_error(action: str, e: Exception) -> CRMError:
    logger.error(f"Error {action}: {e}", exc_info=True)
    return CRMError(
        "Something went wrong",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_error"
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_interaction(
    request: InteractionCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record an interaction with a person"""
    try:
        data = request.model_dump(exclude_unset=True)
        interaction = InteractionService(db).create_interaction(data, created_by_id=current_user.id)
        return _item_response(interaction)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("creating interaction", e)


@router.get("/")
async def list_interactions(
    person_id: Optional[UUID] = None,
    type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    tag_ids: Optional[str] = Query(None, description="Comma-separated tag ids; matches any"),
    page: int = Query(1),
    limit: int = Query(10),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List interactions, newest first"""
    try:
        result = InteractionService(db).get_interactions(
            person_id=person_id,
            type=type,
            start_date=start_date,
            end_date=end_date,
            tag_ids=_split_ids(tag_ids),
            page=page,
            limit=limit,
        )
        return _list_response(result)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("listing interactions", e)


@router.get("/tags")
async def list_interaction_tags(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """All tags in structured form, sorted by name"""
    return {"success": True, "data": InteractionService(db).get_all_tags()}


@router.get("/person/{person_id}")
async def list_person_interactions(
    person_id: UUID,
    type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    tag_ids: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(10),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Interactions of one person, newest first"""
    try:
        result = InteractionService(db).get_interactions_by_person(
            person_id,
            type=type,
            start_date=start_date,
            end_date=end_date,
            tag_ids=_split_ids(tag_ids),
            page=page,
            limit=limit,
        )
        return _list_response(result)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"listing interactions for person {person_id}", e)


@router.get("/{interaction_id}")
async def get_interaction(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    interaction = InteractionService(db).get_interaction_by_id(interaction_id)
    return _item_response(interaction)


@router.put("/{interaction_id}")
async def update_interaction(
    interaction_id: UUID,
    request: InteractionUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update an interaction created by the caller; `tag_ids` replaces the tag set"""
    try:
        service = InteractionService(db)
        service.update_interaction(
            interaction_id,
            request.model_dump(exclude_unset=True),
            user_id=current_user.id,
        )
        return _item_response(service.get_interaction_by_id(interaction_id))
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"updating interaction {interaction_id}", e)


@router.delete("/{interaction_id}")
async def delete_interaction(
    interaction_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return InteractionService(db).delete_interaction(interaction_id, user_id=current_user.id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"deleting interaction {interaction_id}", e)


@router.post("/{interaction_id}/tags")
async def add_interaction_tags(
    interaction_id: UUID,
    request: TagIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Attach tags to an interaction created by the caller"""
    try:
        interaction = InteractionService(db).add_tags_by_id(
            interaction_id, request.tag_ids, user_id=current_user.id
        )
        return _item_response(interaction)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"adding tags to interaction {interaction_id}", e)


@router.delete("/{interaction_id}/tags")
async def remove_interaction_tags(
    interaction_id: UUID,
    request: TagIdsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Detach tags from an interaction created by the caller"""
    try:
        interaction = InteractionService(db).remove_tags_by_id(
            interaction_id, request.tag_ids, user_id=current_user.id
        )
        return _item_response(interaction)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"removing tags from interaction {interaction_id}", e)
