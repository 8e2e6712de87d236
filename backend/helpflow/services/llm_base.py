"""
HelpFlow Backend: Abstract LLM Service Interface
=================================================

What:  Abstract base class defining the contract for email-composing LLM services,
       plus the structured result every implementation returns.
How:   Concrete implementations inherit from LLMService and implement generate_email().
Who:   Called by MessageService during the generate-message workflow.
When:  After the pending message row is committed, before delivery.

The concrete class is chosen in the lifespan (main.py) and reaches routes via
dependencies.get_llm_service, so tests substitute a stub through
app.dependency_overrides or by passing one to MessageService directly.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class GeneratedEmail(BaseModel):
    """
    A complete, send-ready email produced by the model.

    Every field is required and non-blank; output that fails this model is
    reported as GenerationFailedError by the implementation.
    """

    subject: str = Field(..., min_length=1, max_length=500)
    sender_name: str = Field(..., min_length=1, max_length=255)
    sender_company: str = Field(..., min_length=1, max_length=255)
    html_content: str = Field(..., min_length=1)
    plain_text_content: str = Field(..., min_length=1)

    model_config = {"str_strip_whitespace": True}


class LLMService(ABC):
    """
    Abstract interface for AI-powered email composition.

    Contract:
        - generate_email() returns a validated GeneratedEmail or raises
        - Implementations handle their own retry policy and error translation
        - Every provider-specific failure surfaces as GenerationFailedError
        - The caller (MessageService) never needs to know which provider is used

    Implementations:
        - GeminiService: Google Gemini with JSON-mode output (default)
    """

    @abstractmethod
    async def generate_email(self, message_topic: str, recipient_email: str) -> GeneratedEmail:
        """
        Compose an email about `message_topic` addressed to `recipient_email`.

        Returns:
            GeneratedEmail with subject, sender identity, HTML and plain-text bodies.

        Raises:
            GenerationFailedError: The provider failed, returned nothing, or
                returned output that does not parse into GeneratedEmail.
        """
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Whether the provider credentials are present.

        Who: The health endpoint. Must not call the provider.
        """
        ...
