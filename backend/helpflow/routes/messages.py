"""
HelpFlow Backend: Message Generation Route
===========================================

What:  POST /api/ai/generate-message
How:   Delegates to MessageService; the result is returned as-is, including
       partial success (generated but not delivered), which is still HTTP 200.
Who:   Called by the dashboard's demo message form.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.database import get_db_session
from helpflow.dependencies import get_message_service
from helpflow.schemas.common import ErrorResponse
from helpflow.schemas.message import GenerateMessageRequest, GenerateMessageResult
from helpflow.services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["Messages"])


@router.post(
    "/generate-message",
    response_model=GenerateMessageResult,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        500: {"description": "Message record could not be stored", "model": ErrorResponse},
        503: {"description": "Generation failed or LLM not configured", "model": ErrorResponse},
    },
    summary="Generate (and optionally deliver) a demo email",
)
async def generate_message(
    body: GenerateMessageRequest,
    db: AsyncSession = Depends(get_db_session),
    service: MessageService = Depends(get_message_service),
) -> GenerateMessageResult:
    result = await service.generate(
        db,
        recipient_email=body.recipient_email,
        message_topic=body.message_topic,
        user_id=body.user_id,
    )
    if not result.delivered:
        logger.warning("Message %s generated but not delivered", result.message_id)
    return result
