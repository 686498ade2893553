"""Factory for creating completion clients from saved configurations."""

from typing import Optional
from config import Config
from llm.client import CompletionClient
from llm.errors import ConfigurationInvalid
from logger import get_logger
from models.llm_config import LLMConfig

logger = get_logger("llm")


def get_completion_client(
    config: Config, llm_config: Optional[LLMConfig], api_key: Optional[str]
) -> CompletionClient:
    """Create a completion client for an LLM configuration.

    Args:
        config: Application configuration, supplies the request timeout.
        llm_config: The endpoint to talk to, usually the active one.
        api_key: Key read from the secret store for that endpoint.

    Returns:
        CompletionClient bound to the endpoint.

    Raises:
        ConfigurationInvalid: If there is no configuration or it is unusable.
    """
    if llm_config is None:
        raise ConfigurationInvalid("No LLM configuration is active")

    logger.info(
        f"Using LLM config '{llm_config.name}' "
        f"({llm_config.provider_type}, model: {llm_config.model_name})"
    )

    return CompletionClient(
        base_url=llm_config.base_url,
        api_key=api_key or "",
        model=llm_config.model_name,
        timeout=config.llm_request_timeout,
    )
