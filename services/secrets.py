"""File-backed secret store for API keys.

Secrets live in a TOML file readable only by the owner. Keys are flat
strings such as "llm_api_key_<config id>".
"""

import os
import tomllib
from pathlib import Path
from typing import Dict, Optional

import tomli_w

from logger import get_logger

logger = get_logger()


class SecretStore:
    """Opaque key-value store with save/read/delete.

    Args:
        path: Location of the secrets file; created on first save.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "rb") as f:
            return tomllib.load(f)

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            tomli_w.dump(data, f)
        os.chmod(self.path, 0o600)

    def save(self, key: str, value: str) -> bool:
        """Store a secret, replacing any previous value.

        Returns:
            True if the secret was written, False on an I/O error.
        """
        try:
            data = self._load()
            data[key] = value
            self._write(data)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Could not save secret {key}: {e}")
            return False
        return True

    def read(self, key: str) -> Optional[str]:
        try:
            return self._load().get(key)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Could not read secret {key}: {e}")
            return None

    def delete(self, key: str) -> bool:
        """Remove a secret.

        Returns:
            True if the secret existed and was removed.
        """
        try:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._write(data)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Could not delete secret {key}: {e}")
            return False
        return True
