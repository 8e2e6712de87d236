"""
HelpFlow Backend: Profile Read Routes
======================================

What:  GET /api/profiles/{clerk_user_id} and
       GET /api/profiles/{profile_id}/messages
Who:   The dashboard, to show subscription state and recent demo messages.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.database import get_db_session
from helpflow.dependencies import get_message_service, get_profile_service
from helpflow.schemas.common import ErrorResponse
from helpflow.schemas.message import DemoMessageItem, MessageListResponse
from helpflow.schemas.profile import ProfileResponse
from helpflow.services.message_service import MessageService
from helpflow.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


@router.get(
    "/{clerk_user_id}",
    response_model=ProfileResponse,
    responses={404: {"description": "No profile for this user", "model": ErrorResponse}},
    summary="Get a profile by identity user id",
)
async def get_profile(
    clerk_user_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    profile = await service.get_by_clerk_user_id(db, clerk_user_id)
    return ProfileResponse.model_validate(profile)


@router.get(
    "/{profile_id}/messages",
    response_model=MessageListResponse,
    summary="List a profile's demo messages, newest first",
)
async def list_profile_messages(
    profile_id: UUID,
    limit: int = Query(default=20, ge=1, le=100, description="Items to return (max 100)"),
    db: AsyncSession = Depends(get_db_session),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    messages = await service.list_messages(db, profile_id, limit)
    items = [DemoMessageItem.model_validate(m) for m in messages]
    return MessageListResponse(messages=items, count=len(items))
