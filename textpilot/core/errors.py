"""Typed failures shared by routing, memory, generation and the adapters.

Error taxonomy:
- `ValidationError`: malformed input to a public operation. Raised before any
  state change, so the operation has no effect.
- `ConfigurationError`: provider/key setup is missing or invalid.
- `ServiceUnavailableError`: a capability was not wired into the component.
- `GenerationError`: the text-generation capability failed (transport, provider
  status, unparseable or empty output).
- `SummarizationError`: the summarization capability failed. Conversation memory
  recovers from it locally and stores the unsummarized text.

Adapters translate these into user-facing text with `get_user_message` (CLI)
or into HTTP status codes (`textpilot.api.http_api`).
"""

from typing import Any


class TextPilotError(Exception):
    """Base class for all typed failures raised by this package.

    Attributes:
        message: Human-readable failure description.
        code: Stable machine-readable error code.
        context: Optional structured details (field names, provider, status).
    """

    default_code = "TEXTPILOT_ERROR"

    def __init__(self, message: str, code: str | None = None, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable projection of the error."""
        return {
            "error": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationError(TextPilotError):
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, context={"field": field} if field else None)
        self.field = field


class ConfigurationError(TextPilotError):
    default_code = "CONFIGURATION_ERROR"


class ServiceUnavailableError(TextPilotError):
    default_code = "SERVICE_UNAVAILABLE"


class GenerationError(TextPilotError):
    """Text generation failed at the transport or provider level."""

    default_code = "GENERATION_ERROR"

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        context = {}
        if provider:
            context["provider"] = provider
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, context=context)
        self.provider = provider
        self.status_code = status_code


class SummarizationError(TextPilotError):
    default_code = "SUMMARIZATION_ERROR"


def get_user_message(error: BaseException) -> str:
    """Map an exception to a short message suitable for end users."""
    if isinstance(error, ServiceUnavailableError):
        return "This feature is currently unavailable. Please try again later."

    if isinstance(error, ValidationError):
        return f"Invalid input: {error.message}"

    if isinstance(error, GenerationError):
        return "Service error: Unable to complete your request. Please try again."

    if isinstance(error, ConfigurationError):
        return "Configuration error: Please check your settings."

    return "An unexpected error occurred. Please try again."
