"""
HelpFlow Backend: Delivery Webhook Service
===========================================

What:  Hands generated emails to the downstream workflow-automation endpoint
       (DELIVERY_WEBHOOK_URL) that actually sends them.
How:   One JSON POST per message over the shared httpx.AsyncClient.
Who:   Called by MessageService after content is stored as `generated`.

A non-2xx reply or a transport error raises DeliveryFailedError. No retries:
the message row is marked failed and the caller reports partial success.
"""

import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from helpflow.exceptions import DeliveryFailedError
from helpflow.services.llm_base import GeneratedEmail

logger = logging.getLogger(__name__)


def build_delivery_payload(
    message_id: uuid.UUID,
    recipient_email: str,
    message_topic: str,
    email: GeneratedEmail,
) -> Dict[str, Any]:
    return {
        "message_id": str(message_id),
        "recipient_email": recipient_email,
        "message_topic": message_topic,
        "subject": email.subject,
        "sender_name": email.sender_name,
        "sender_company": email.sender_company,
        "html_content": email.html_content,
        "plain_text_content": email.plain_text_content,
    }


class DeliveryService:
    """
    Posts payloads to the configured delivery endpoint.

    With no URL configured, is_enabled() is False and the caller treats
    generated content as delivered.
    """

    def __init__(self, http_client: httpx.AsyncClient, webhook_url: Optional[str]):
        self.http_client = http_client
        self.webhook_url = webhook_url

    def is_enabled(self) -> bool:
        return bool(self.webhook_url)

    async def deliver(self, payload: Dict[str, Any]) -> None:
        """
        Raises:
            DeliveryFailedError: non-2xx status or transport failure
        """
        if not self.webhook_url:
            raise RuntimeError("DeliveryService.deliver called with no webhook URL")

        message_id = payload.get("message_id")
        try:
            response = await self.http_client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Delivery webhook unreachable for message %s: %s", message_id, type(e).__name__)
            raise DeliveryFailedError(context={"message_id": message_id, "error_type": type(e).__name__}) from e

        if not response.is_success:
            logger.error(
                "Delivery webhook rejected message %s with HTTP %d",
                message_id,
                response.status_code,
            )
            raise DeliveryFailedError(
                status_code=response.status_code,
                context={"message_id": message_id},
            )

        logger.info("Message %s handed to delivery webhook", message_id)
