"""Base services container for dependency injection."""

from config import Config
from db.manager import DatabaseManager


class Services:
    """Container for all application services.

    This class provides a centralized way to access all services and makes
    it easy to inject mock services for testing.

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
    """

    def __init__(self, config: Config, db_manager=None, secrets=None):
        """Initialize services with configuration.

        Args:
            config: Config object containing application configuration.
            db_manager: Optional database manager for dependency injection (testing).
                       If None, creates DatabaseManager from config.
            secrets: Optional secret store. If None, uses the file at
                     config.secrets_path.
        """
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)

        # Lazy import to avoid circular dependencies
        from services.accounts import AccountService
        from services.transactions import TransactionService
        from services.categories import CategoryService
        from services.llm_configs import LLMConfigService
        from services.secrets import SecretStore

        self.secrets = secrets or SecretStore(config.secrets_path)
        self.accounts = AccountService(self.db_manager)
        self.transactions = TransactionService(self.db_manager)
        self.categories = CategoryService(self.db_manager)
        self.llm_configs = LLMConfigService(self.db_manager, self.secrets)
