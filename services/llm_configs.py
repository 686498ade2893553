"""LLM configuration service.

Holds the saved endpoints and the pointer to the active one. API keys are
kept in the secret store, never in the database.
"""

import uuid
from datetime import datetime
from typing import List, Optional
from db.manager import StoreError, write_transaction
from llm.presets import get_preset
from logger import get_logger
from models.llm_config import LLMConfig

logger = get_logger()

ACTIVE_CONFIG_KEY = "active_llm_config_id"
_LLM_CONFIG_SELECT_FIELDS = "id, name, provider_type, base_url, model_name, created_at"


def _row_to_config(row) -> LLMConfig:
    return LLMConfig(
        id=row[0],
        name=row[1],
        provider_type=row[2],
        base_url=row[3],
        model_name=row[4],
        created_at=datetime.fromisoformat(row[5]),
    )


class LLMConfigService:
    """Service for managing LLM endpoint configurations."""

    def __init__(self, db_manager, secrets):
        """Initialize the LLM configuration service.

        Args:
            db_manager: Database manager instance for database operations.
            secrets: SecretStore holding the API keys.
        """
        self.db_manager = db_manager
        self.secrets = secrets

    def find_all(self) -> List[LLMConfig]:
        """Get all configurations, oldest first."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_LLM_CONFIG_SELECT_FIELDS} FROM llm_configs "
                "ORDER BY created_at, rowid"
            )
            return [_row_to_config(row) for row in cursor.fetchall()]

    def find(self, config_id: str) -> Optional[LLMConfig]:
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_LLM_CONFIG_SELECT_FIELDS} FROM llm_configs WHERE id = ?",
                (config_id,),
            ).fetchone()
            return _row_to_config(row) if row else None

    def create(
        self,
        name: str,
        provider_type: str,
        api_key: str,
        base_url: Optional[str] = None,
        model_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LLMConfig:
        """Save a new endpoint configuration and its API key.

        The first configuration saved becomes the active one.

        Args:
            name: Display name.
            provider_type: A ProviderType value.
            api_key: Key for the endpoint; surrounding whitespace is dropped.
            base_url: Overrides the preset URL.
            model_name: Overrides the preset model.
            now: Creation time.

        Returns:
            The created LLMConfig.

        Raises:
            ValueError: If the provider type is unknown or the key cannot be stored.
        """
        preset = get_preset(provider_type)
        config = LLMConfig(
            id=str(uuid.uuid4()),
            name=name.strip() or preset.display_name,
            provider_type=preset.provider_type.value,
            base_url=(base_url or preset.base_url).strip(),
            model_name=(model_name or preset.default_model).strip(),
            created_at=(now or datetime.now()).replace(microsecond=0),
        )

        if not self.secrets.save(config.secret_key, api_key.strip()):
            raise ValueError(f"Could not store the API key for {config.name}")

        try:
            with self.db_manager.connect() as conn:
                with write_transaction(conn, "save LLM config"):
                    conn.execute(
                        "INSERT INTO llm_configs "
                        f"({_LLM_CONFIG_SELECT_FIELDS}) VALUES (?, ?, ?, ?, ?, ?)",
                        (
                            config.id,
                            config.name,
                            config.provider_type,
                            config.base_url,
                            config.model_name,
                            config.created_at.isoformat(),
                        ),
                    )
                    if self._active_id(conn) is None:
                        self._set_active_id(conn, config.id)
        except StoreError:
            self.secrets.delete(config.secret_key)
            raise

        logger.info(f"Saved LLM config '{config.name}' ({config.provider_type})")
        return config

    def update(
        self,
        config_id: str,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> LLMConfig:
        """Change fields of a saved configuration. None leaves a field as is.

        Raises:
            ValueError: If the configuration does not exist.
        """
        config = self.find(config_id)
        if config is None:
            raise ValueError(f"LLM config {config_id} not found")

        if name is not None:
            config.name = name.strip()
        if base_url is not None:
            config.base_url = base_url.strip()
        if model_name is not None:
            config.model_name = model_name.strip()
        if api_key is not None and not self.secrets.save(
            config.secret_key, api_key.strip()
        ):
            raise ValueError(f"Could not store the API key for {config.name}")

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "update LLM config"):
                conn.execute(
                    "UPDATE llm_configs SET name = ?, base_url = ?, model_name = ? "
                    "WHERE id = ?",
                    (config.name, config.base_url, config.model_name, config.id),
                )
        return config

    def delete(self, config_id: str) -> bool:
        """Delete a configuration and its API key.

        If it was active, the oldest remaining configuration becomes active.

        Returns:
            True if the configuration was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            with write_transaction(conn, "delete LLM config"):
                cursor = conn.execute(
                    "DELETE FROM llm_configs WHERE id = ?", (config_id,)
                )
                if cursor.rowcount == 0:
                    return False

                if self._active_id(conn) == config_id:
                    row = conn.execute(
                        "SELECT id FROM llm_configs ORDER BY created_at, rowid LIMIT 1"
                    ).fetchone()
                    if row:
                        self._set_active_id(conn, row[0])
                    else:
                        conn.execute(
                            "DELETE FROM settings WHERE key = ?", (ACTIVE_CONFIG_KEY,)
                        )

        self.secrets.delete(f"llm_api_key_{config_id}")
        logger.info(f"Deleted LLM config {config_id}")
        return True

    def get_active(self) -> Optional[LLMConfig]:
        """Get the active configuration.

        Falls back to the oldest configuration when the pointer is unset or
        points at a deleted configuration.
        """
        with self.db_manager.connect() as conn:
            active_id = self._active_id(conn)

        if active_id:
            config = self.find(active_id)
            if config:
                return config

        configs = self.find_all()
        return configs[0] if configs else None

    def set_active(self, config_id: str) -> LLMConfig:
        """Make a configuration the active one.

        Raises:
            ValueError: If the configuration does not exist.
        """
        config = self.find(config_id)
        if config is None:
            raise ValueError(f"LLM config {config_id} not found")

        with self.db_manager.connect() as conn:
            with write_transaction(conn, "set active LLM config"):
                self._set_active_id(conn, config_id)

        logger.info(f"Active LLM config is now '{config.name}'")
        return config

    def get_api_key(self, config: LLMConfig) -> Optional[str]:
        return self.secrets.read(config.secret_key)

    @staticmethod
    def _active_id(conn) -> Optional[str]:
        row = conn.execute(
            "SELECT value FROM settings WHERE key = ?", (ACTIVE_CONFIG_KEY,)
        ).fetchone()
        return row[0] if row else None

    @staticmethod
    def _set_active_id(conn, config_id: str) -> None:
        conn.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (ACTIVE_CONFIG_KEY, config_id),
        )
