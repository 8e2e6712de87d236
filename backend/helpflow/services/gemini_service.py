"""
HelpFlow Backend: Google Gemini Service Implementation
=======================================================

What:  Concrete LLM service that composes demo emails with Google Gemini.
How:   A fixed system instruction asks for one JSON object; the SDK runs in JSON
       mode with a bounded token budget and a fixed temperature, and the reply
       is validated into GeneratedEmail.
Who:   Constructed once in the lifespan; called by MessageService per request.
When:  After the pending message row is committed.

Failure translation:
    SDK/network error (after the configured attempts) → GenerationFailedError
    Blocked or empty response                        → GenerationFailedError
    Reply that is not the expected JSON object        → GenerationFailedError

Retries:
    tenacity with stop_after_attempt(LLM_MAX_ATTEMPTS). The default of 1 means
    one call and no retry; operators may raise it.
"""

import logging
import time

import google.generativeai as genai
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    before_sleep_log,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

from helpflow.config import settings
from helpflow.exceptions import GenerationFailedError
from helpflow.services.llm_base import GeneratedEmail, LLMService

logger = logging.getLogger(__name__)


class GeminiService(LLMService):
    """
    Google Gemini implementation of LLMService.

    Architecture:
        - One instance per process, built in the lifespan and kept in app.state
        - The GenerativeModel (system instruction + generation config) is built
          once and reused for every request
        - Holds no mutable state between calls
    """

    SYSTEM_INSTRUCTION = """You are an assistant that writes professional, friendly \
business emails for a customer-support product called HelpFlow.

Write one complete email about the topic the user gives you. Rules:
1. The email must be ready to send: no placeholders such as [Name], [Company] or <your name>
2. Invent a plausible sender name and sender company and use them consistently
3. Keep it concise, warm and appropriate for business communication
4. html_content is a self-contained HTML email body using inline styles only
5. plain_text_content carries the same message with no markup

Respond with a single JSON object and nothing else, with exactly these keys:
  "subject", "sender_name", "sender_company", "html_content", "plain_text_content"
"""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        max_output_tokens: int,
        temperature: float,
    ):
        self._configured = bool(api_key)
        if self._configured:
            genai.configure(api_key=api_key)

        self.model = genai.GenerativeModel(
            model_name,
            system_instruction=self.SYSTEM_INSTRUCTION,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                max_output_tokens=max_output_tokens,
                temperature=temperature,
            ),
        )
        self.model_name = model_name

        logger.info(
            "GeminiService initialized with model=%s, max_output_tokens=%d, temperature=%.2f",
            model_name,
            max_output_tokens,
            temperature,
        )

    def is_configured(self) -> bool:
        return self._configured

    async def generate_email(self, message_topic: str, recipient_email: str) -> GeneratedEmail:
        """
        Compose an email with Gemini and validate the reply.

        Flow:
            1. Build the user prompt from topic and recipient
            2. Call Gemini (tenacity-wrapped)
            3. Parse the JSON reply into GeneratedEmail

        Raises:
            GenerationFailedError: on any provider failure or unusable output
        """
        prompt = (
            f"Topic: {message_topic}\n"
            f"Recipient email address: {recipient_email}\n"
            "Write the email now."
        )

        try:
            raw = await self._call_gemini_with_retry(prompt)
        except Exception as e:
            logger.error(
                "Gemini generation failed after %d attempt(s): %s",
                settings.llm_max_attempts,
                str(e),
            )
            raise GenerationFailedError(
                context={
                    "model": self.model_name,
                    "error_type": type(e).__name__,
                    "attempts": settings.llm_max_attempts,
                },
            ) from e

        return self._parse_reply(raw)

    @retry(
        stop=stop_after_attempt(settings.llm_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, prompt: str) -> str:
        """
        Makes the Gemini API call; tenacity retries this method only.

        Returns the raw reply text, or "" when the response carries no text
        (for example when every candidate was blocked by safety filters).
        """
        start_time = time.time()
        try:
            response = await self.model.generate_content_async(prompt)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning("Gemini API call failed after %.0fms: %s", duration_ms, str(e))
            raise

        duration_ms = (time.time() - start_time) * 1000

        # response.text raises ValueError when no candidate has text parts
        try:
            text = response.text or ""
        except ValueError:
            logger.warning(
                "Gemini returned no usable candidate (prompt_feedback=%s)",
                getattr(response, "prompt_feedback", None),
            )
            text = ""

        logger.info("Gemini call completed in %.0fms, %d chars", duration_ms, len(text))
        return text

    def _parse_reply(self, raw: str) -> GeneratedEmail:
        text = raw.strip()
        if text.startswith("```"):
            # Fenced reply: drop the ```json opener and the closing fence
            text = text.split("\n", 1)[1] if "\n" in text else ""
            text = text.rsplit("```", 1)[0].strip()

        if not text:
            logger.error("Gemini returned an empty reply")
            raise GenerationFailedError(context={"model": self.model_name, "reason": "empty"})

        try:
            return GeneratedEmail.model_validate_json(text)
        except PydanticValidationError as e:
            logger.error("Gemini reply did not match the email schema: %d error(s)", e.error_count())
            raise GenerationFailedError(
                context={"model": self.model_name, "reason": "unparsable"},
            ) from e
