"""Configuration management for Tally.

Reads configuration from ~/.config/tally.toml and creates default config if needed.
LLM endpoint configurations are not stored here; they live in the database and
are managed by services.llm_configs.
"""

from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    secrets_path: Path
    llm_request_timeout: float = 30.0
    llm_probe_timeout: float = 10.0

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        base_dir = Path.home() / "data" / "tally"
        return cls.for_base_dir(base_dir)

    @classmethod
    def for_base_dir(cls, base_dir: Path) -> "Config":
        """Create a Config with every path rooted at base_dir."""
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="tally.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
            secrets_path=base_dir / "secrets.toml",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "tally.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_seed_dir() -> Path:
    """Get the path to the bundled seed data."""
    return Path(__file__).parent / "db" / "seed"


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Args:
        config_path: Optional override of the config file location.

    Returns:
        Config object with loaded or default values.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        config = Config.default()
        _write_config(config, config_path)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    base_dir = Path(data.get("base_dir", Path.home() / "data" / "tally"))
    defaults = Config.for_base_dir(base_dir)

    db_config = data.get("database", {})
    log_config = data.get("logging", {})
    secrets_config = data.get("secrets", {})
    llm_config = data.get("llm", {})

    return Config(
        base_dir=base_dir,
        db_data_dir=Path(db_config.get("data_dir", defaults.db_data_dir)),
        db_filename=db_config.get("filename", defaults.db_filename),
        log_level=log_config.get("level", defaults.log_level),
        log_dir=Path(log_config.get("log_dir", defaults.log_dir)),
        secrets_path=Path(secrets_config.get("path", defaults.secrets_path)),
        llm_request_timeout=float(
            llm_config.get("request_timeout", defaults.llm_request_timeout)
        ),
        llm_probe_timeout=float(
            llm_config.get("probe_timeout", defaults.llm_probe_timeout)
        ),
    )


def _write_config(config: Config, config_path: Path) -> None:
    """Write config to the config file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "secrets": {
            "path": str(config.secrets_path),
        },
        "llm": {
            "request_timeout": config.llm_request_timeout,
            "probe_timeout": config.llm_probe_timeout,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
