"""Error taxonomy for LLM round trips.

Every error carries a user_message that is safe to show to an end user.
"""

from typing import Optional


class LLMError(Exception):
    """Base class for failures talking to a completion endpoint."""

    user_message = "The AI assistant is unavailable right now."

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationInvalid(LLMError):
    """Base URL, API key or model is missing or malformed. No request was sent."""

    user_message = "The AI model is not configured. Add an endpoint and API key first."


class NetworkError(LLMError):
    """Transport-level failure: DNS, connection refused, timeout."""

    user_message = "Could not reach the AI service. Check your network and try again."


class InvalidResponse(LLMError):
    """The endpoint answered 2xx but the body is not JSON or has no message content."""

    user_message = "The AI service returned an unexpected response."


class DecodingError(LLMError):
    """The message content is not JSON matching the expected intent schema."""

    user_message = "The AI reply could not be understood. Try rephrasing."


class ApiError(LLMError):
    """The endpoint rejected the request with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        return f"The AI service rejected the request: {self}"
