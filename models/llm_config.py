"""LLM endpoint configuration model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class LLMConfig:
    """A saved OpenAI-compatible endpoint.

    The API key is not part of this record. It is kept in the secret store
    under the key returned by secret_key.

    Attributes:
        id: UUID string.
        name: Display name chosen by the user.
        provider_type: Preset value from llm.presets.ProviderType.
        base_url: Endpoint root, "/chat/completions" is appended per request.
        model_name: Model identifier sent in every request body.
        created_at: Creation time; the oldest config becomes active by default.
    """

    id: str
    name: str
    provider_type: str
    base_url: str
    model_name: str
    created_at: datetime

    @property
    def secret_key(self) -> str:
        return f"llm_api_key_{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "provider_type": self.provider_type,
            "base_url": self.base_url,
            "model_name": self.model_name,
            "created_at": self.created_at.isoformat(),
        }
