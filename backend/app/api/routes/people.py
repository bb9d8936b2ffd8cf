"""
API routes for people (contacts) and their dynamic fields
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import CRMError
from app.core.logging_config import LoggingConfig
from app.services.person_service import PersonService

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/people", tags=["people"])


class DynamicFieldInput(BaseModel):
    """Typed value attached to a person; the type is checked by the service"""
    field_name: Optional[str] = None
    field_type: Optional[str] = None
    string_value: Optional[str] = None
    number_value: Optional[float] = None
    boolean_value: Optional[bool] = None
    date_value: Optional[datetime] = None


class PersonCreateRequest(BaseModel):
    """Request to create a person"""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    address: Optional[str] = None
    dynamic_fields: Optional[List[DynamicFieldInput]] = None


class PersonUpdateRequest(PersonCreateRequest):
    """Partial update; only keys present in the body are applied"""


def _payload(request: BaseModel) -> Dict[str, Any]:
    return request.model_dump(exclude_unset=True)


def _internal_error(action: str, e: Exception) -> CRMError:
    logger.error(f"Error {action}: {e}", exc_info=True)
    return CRMError(
        "Something went wrong",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_error"
    )


@router.get("/")
async def list_people(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    category: Optional[str] = None,
    page: int = Query(1),
    limit: int = Query(10),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List people

    Returns `{people, total}`. Each person carries `last_interaction`.
    """
    try:
        return PersonService(db).get_people(
            status=status_filter,
            search=search,
            category=category,
            page=page,
            limit=limit,
        )
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("listing people", e)


@router.get("/{person_id}")
async def get_person(
    person_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a person with dynamic fields and interactions"""
    person = PersonService(db).get_person_by_id(person_id)
    return person.to_dict(include_interactions=True)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_person(
    request: PersonCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a person, optionally with dynamic fields"""
    try:
        person = PersonService(db).create_person(_payload(request), created_by_id=current_user.id)
        return person.to_dict()
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error("creating person", e)


@router.put("/{person_id}")
async def update_person(
    person_id: UUID,
    request: PersonUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a person created by the caller"""
    try:
        person = PersonService(db).update_person(person_id, _payload(request), user_id=current_user.id)
        return person.to_dict()
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"updating person {person_id}", e)


@router.delete("/fields/{field_id}")
async def remove_dynamic_field(
    field_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a dynamic field from a person created by the caller"""
    try:
        return PersonService(db).remove_dynamic_field(field_id, user_id=current_user.id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"removing dynamic field {field_id}", e)


@router.delete("/{person_id}")
async def delete_person(
    person_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a person with its dynamic fields and interactions"""
    try:
        return PersonService(db).delete_person(person_id, user_id=current_user.id)
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"deleting person {person_id}", e)


@router.post("/{person_id}/fields", status_code=status.HTTP_201_CREATED)
async def add_dynamic_field(
    person_id: UUID,
    request: DynamicFieldInput,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Attach a dynamic field to a person created by the caller"""
    try:
        field = PersonService(db).add_dynamic_field(person_id, _payload(request), user_id=current_user.id)
        return field.to_dict()
    except CRMError:
        raise
    except Exception as e:
        raise _internal_error(f"adding dynamic field to person {person_id}", e)
