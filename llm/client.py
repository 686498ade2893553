"""OpenAI-compatible chat completion client.

Wraps the openai SDK so any endpoint that speaks POST {base_url}/chat/completions
can be used. Every SDK failure is translated into the llm.errors taxonomy.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import openai
from openai import OpenAI

from llm.errors import ApiError, ConfigurationInvalid, InvalidResponse, NetworkError
from logger import get_logger

logger = get_logger("llm")

DEFAULT_TIMEOUT = 30.0
PROBE_TIMEOUT = 10.0


@dataclass
class CompletionRequest:
    """A single two-message chat completion call."""

    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: Optional[int] = None
    json_response: bool = False

    def to_body(self, model: str) -> Dict[str, Any]:
        """Build the request body sent to the endpoint."""
        body: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.user_prompt},
            ],
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.json_response:
            body["response_format"] = {"type": "json_object"}
        return body


def strip_code_fence(content: str) -> str:
    """Remove one layer of markdown code fence around model output.

    A leading ```json (or bare ```) and a trailing ``` are each removed once.
    Content without a fence comes back trimmed and otherwise unchanged.
    """
    cleaned = content.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    if cleaned.endswith("```"):
        cleaned = cleaned[: -len("```")]
    return cleaned.strip()


def _error_message(body: Any, status_code: Optional[int]) -> str:
    """Pull error.message out of an error body, else fall back to the status."""
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
    return f"HTTP {status_code}"


class CompletionClient:
    """Sends chat completion requests to one configured endpoint.

    Args:
        base_url: Endpoint root, e.g. "https://api.deepseek.com".
        api_key: Bearer token for the endpoint.
        model: Model name sent with every request.
        timeout: Seconds to wait for a content-bearing response.
        client: Optional pre-built SDK client, used by tests.

    Raises:
        ConfigurationInvalid: If the URL, key or model is unusable.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        client=None,
    ):
        self.base_url = (base_url or "").strip().rstrip("/")
        self.api_key = (api_key or "").strip()
        self.model = (model or "").strip()
        self.timeout = timeout

        self._validate()

        self._client = client or OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _validate(self) -> None:
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationInvalid(f"Invalid base URL: {self.base_url!r}")
        if not self.api_key:
            raise ConfigurationInvalid("API key is missing")
        if not self.model:
            raise ConfigurationInvalid("Model name is missing")

    def complete(self, request: CompletionRequest) -> str:
        """Run one chat completion and return the cleaned message content.

        Args:
            request: Prompts and sampling options for this call site.

        Returns:
            Assistant message content with whitespace and code fences stripped.

        Raises:
            NetworkError: Transport failure or timeout.
            ApiError: The endpoint returned a non-2xx status.
            InvalidResponse: The body is not JSON or has no
                choices[0].message.content.
        """
        body = request.to_body(self.model)
        logger.info(
            f"POST {self.endpoint} model={self.model} "
            f"temperature={request.temperature} max_tokens={request.max_tokens}"
        )

        response = self._send(self._client, body)
        content = self._extract_content(response)
        return strip_code_fence(content)

    def probe(self, timeout: float = PROBE_TIMEOUT) -> bool:
        """Check that the endpoint is reachable with this configuration.

        Any HTTP answer below 500 counts as reachable; a 4xx usually means
        the key or model is wrong but the endpoint itself exists.

        Raises:
            NetworkError: The endpoint could not be reached at all.
        """
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": "test"}],
            "max_tokens": 5,
        }
        client = self._client.with_options(timeout=timeout)
        try:
            self._send(client, body)
        except ApiError as e:
            logger.info(f"Probe of {self.endpoint} returned HTTP {e.status_code}")
            return e.status_code is not None and e.status_code < 500
        except InvalidResponse:
            return True
        return True

    def _send(self, client, body: Dict[str, Any]):
        try:
            return client.chat.completions.create(**body)
        except openai.APITimeoutError as e:
            logger.error(f"Request to {self.endpoint} timed out")
            raise NetworkError("Request timed out", cause=e) from e
        except openai.APIConnectionError as e:
            logger.error(f"Could not connect to {self.endpoint}: {e}")
            raise NetworkError(f"Connection failed: {e}", cause=e) from e
        except openai.APIStatusError as e:
            message = _error_message(e.body, e.status_code)
            logger.error(f"{self.endpoint} returned HTTP {e.status_code}: {message}")
            raise ApiError(message, status_code=e.status_code, cause=e) from e
        except openai.APIResponseValidationError as e:
            logger.error(f"Malformed response from {self.endpoint}: {e}")
            raise InvalidResponse("Response envelope could not be parsed", cause=e) from e
        except ValueError as e:
            # json.JSONDecodeError from a 2xx body that is not JSON
            logger.error(f"Non-JSON response from {self.endpoint}: {e}")
            raise InvalidResponse("Response body is not valid JSON", cause=e) from e

    @staticmethod
    def _extract_content(response) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            raise InvalidResponse("Response has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise InvalidResponse("Response has no message content")
        return content
