"""Tag create-or-resolve endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session, sessionmaker

from nuggets.core.db import get_db_session, get_session_factory
from nuggets.models.schema import TagStatus
from nuggets.services.tags import create_or_resolve_tag, create_or_resolve_tags
from nuggets.utils.tags import TagNameError

router = APIRouter(prefix="/tags", tags=["tags"])


class TagCreateRequest(BaseModel):
    name: str = Field(..., description="Tag name in any casing")
    status: TagStatus | None = None
    is_official: bool = False


class TagBatchRequest(BaseModel):
    names: list[str] = Field(..., min_length=1)
    status: TagStatus | None = None
    is_official: bool = False


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    raw_name: str
    canonical_name: str
    status: str
    is_official: bool
    usage_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TagBatchResponse(BaseModel):
    tags: dict[str, TagResponse]
    requested: int
    resolved: int


def get_tag_session_factory() -> sessionmaker:
    """Session factory used for batch resolution workers."""
    return get_session_factory()


@router.post(
    "",
    response_model=TagResponse,
    summary="Create or resolve a tag",
    responses={400: {"description": "Tag name is empty after normalization"}},
)
def create_tag(
    payload: TagCreateRequest,
    db: Annotated[Session, Depends(get_db_session)],
) -> TagResponse:
    """Return the canonical tag for ``name``, creating it when needed."""
    try:
        tag = create_or_resolve_tag(
            db, payload.name, status=payload.status, is_official=payload.is_official
        )
    except TagNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TagResponse.model_validate(tag)


@router.post(
    "/batch",
    response_model=TagBatchResponse,
    summary="Create or resolve many tags",
)
def create_tags_batch(
    payload: TagBatchRequest,
    session_factory: Annotated[sessionmaker, Depends(get_tag_session_factory)],
) -> TagBatchResponse:
    """Resolve every name; names that fail are left out of ``tags``."""
    tags = create_or_resolve_tags(
        payload.names,
        status=payload.status,
        is_official=payload.is_official,
        session_factory=session_factory,
    )
    return TagBatchResponse(
        tags={name: TagResponse.model_validate(tag) for name, tag in tags.items()},
        requested=len(payload.names),
        resolved=len(tags),
    )
