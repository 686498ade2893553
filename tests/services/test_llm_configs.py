import pytest
from datetime import datetime, timedelta

from db.manager import StoreError


@pytest.fixture
def created_at():
    return datetime(2024, 6, 1, 9, 0, 0)


class TestLLMConfigService:
    """Tests for LLMConfigService."""

    def test_create_uses_preset_defaults(self, services, created_at):
        """Test that a new config falls back to the preset URL and model."""
        config = services.llm_configs.create(
            "", "deepseek", "  sk-abc  ", now=created_at
        )

        assert config.name == "DeepSeek"
        assert config.provider_type == "deepseek"
        assert config.base_url == "https://api.deepseek.com"
        assert config.model_name == "deepseek-chat"
        assert config.created_at == created_at
        assert services.llm_configs.get_api_key(config) == "sk-abc"

    def test_create_with_overrides(self, services):
        config = services.llm_configs.create(
            "Local",
            "custom",
            "token",
            base_url="http://localhost:8000/v1",
            model_name="qwen2.5",
        )

        found = services.llm_configs.find(config.id)
        assert found.base_url == "http://localhost:8000/v1"
        assert found.model_name == "qwen2.5"

    def test_create_unknown_provider(self, services):
        with pytest.raises(ValueError):
            services.llm_configs.create("X", "not-a-provider", "key")

    def test_key_not_stored_in_database(self, services):
        """Test that the API key only lives in the secret store."""
        services.llm_configs.create("OpenAI", "openai", "sk-secret")

        with services.db_manager.connect() as conn:
            rows = conn.execute("SELECT * FROM llm_configs").fetchall()
        assert all("sk-secret" not in str(row) for row in rows)

    def test_first_config_becomes_active(self, services, created_at):
        first = services.llm_configs.create("A", "openai", "k1", now=created_at)
        services.llm_configs.create(
            "B", "deepseek", "k2", now=created_at + timedelta(minutes=1)
        )

        assert services.llm_configs.get_active().id == first.id

    def test_set_active(self, services, created_at):
        services.llm_configs.create("A", "openai", "k1", now=created_at)
        second = services.llm_configs.create(
            "B", "deepseek", "k2", now=created_at + timedelta(minutes=1)
        )

        services.llm_configs.set_active(second.id)

        assert services.llm_configs.get_active().id == second.id

    def test_set_active_unknown(self, services):
        with pytest.raises(ValueError, match="not found"):
            services.llm_configs.set_active("missing")

    def test_get_active_none(self, services):
        assert services.llm_configs.get_active() is None

    def test_find_all_oldest_first(self, services, created_at):
        services.llm_configs.create("Later", "openai", "k", now=created_at)
        services.llm_configs.create(
            "Earlier", "openai", "k", now=created_at - timedelta(days=1)
        )

        names = [c.name for c in services.llm_configs.find_all()]

        assert names == ["Earlier", "Later"]

    def test_delete_active_promotes_oldest(self, services, created_at):
        """Test that deleting the active config activates the oldest remaining."""
        a = services.llm_configs.create("A", "openai", "k1", now=created_at)
        b = services.llm_configs.create(
            "B", "deepseek", "k2", now=created_at + timedelta(minutes=1)
        )
        c = services.llm_configs.create(
            "C", "qwen", "k3", now=created_at + timedelta(minutes=2)
        )
        services.llm_configs.set_active(c.id)

        assert services.llm_configs.delete(c.id) is True

        assert services.llm_configs.get_active().id == a.id
        assert services.secrets.read(c.secret_key) is None
        assert services.secrets.read(b.secret_key) == "k2"

    def test_delete_last_clears_active(self, services):
        config = services.llm_configs.create("A", "openai", "k1")

        services.llm_configs.delete(config.id)

        assert services.llm_configs.get_active() is None
        with services.db_manager.connect() as conn:
            assert conn.execute("SELECT COUNT(*) FROM settings").fetchone()[0] == 0

    def test_delete_not_found(self, services):
        assert services.llm_configs.delete("missing") is False

    def test_update(self, services):
        config = services.llm_configs.create("A", "openai", "k1")

        updated = services.llm_configs.update(
            config.id, model_name="gpt-4o-mini", api_key="k2"
        )

        assert updated.model_name == "gpt-4o-mini"
        assert services.llm_configs.find(config.id).model_name == "gpt-4o-mini"
        assert services.llm_configs.get_api_key(config) == "k2"

    def test_store_failure_removes_secret(self, services):
        """Test that the key is discarded when the row cannot be written."""
        with services.db_manager.connect() as conn:
            conn.execute("""
                CREATE TRIGGER fail_config BEFORE INSERT ON llm_configs
                BEGIN SELECT RAISE(ABORT, 'disk full'); END
            """)
            conn.commit()

        with pytest.raises(StoreError):
            services.llm_configs.create("A", "openai", "sk-orphan")

        assert "sk-orphan" not in services.secrets.path.read_text()
