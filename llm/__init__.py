"""LLM integration: prompts, completion client and intent decoding."""

from llm.errors import (
    ApiError,
    ConfigurationInvalid,
    DecodingError,
    InvalidResponse,
    LLMError,
    NetworkError,
)
from llm.factory import get_completion_client

__all__ = [
    "ApiError",
    "ConfigurationInvalid",
    "DecodingError",
    "InvalidResponse",
    "LLMError",
    "NetworkError",
    "get_completion_client",
]
