"""
Durable key-value storage backends for the entity tables.
"""

import os
import re
import tempfile
from typing import Dict, Optional

from .config import StorageConfig
from .logging_config import get_logger

logger = get_logger(__name__)

_SAFE_KEY = re.compile(r'^[A-Za-z0-9_.-]+$')


class StorageError(Exception):
    """Custom exception for storage errors."""
    pass


class KeyValueStore:
    """Key-value contract consumed by the entity store.

    Values are serialized text. A missing key reads as None.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def health_check(self) -> bool:
        return True


class InMemoryStore(KeyValueStore):
    """Process-local store, used for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per key inside a directory."""

    def __init__(self, directory: str):
        """
        Initialize the file store.

        Args:
            directory: Directory holding the key files, created on first write
        """
        self.directory = os.path.abspath(directory)
        logger.info(f'Initialized JSON file store at: {self.directory}')

    def _path(self, key: str) -> str:
        if not _SAFE_KEY.match(key):
            raise StorageError(f'Invalid storage key: {key!r}')
        return os.path.join(self.directory, f'{key}.json')

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f'Failed to read storage key {key}: {e}')
            return None

    def set(self, key: str, value: str) -> None:
        """Write a value atomically (temp file, then replace)."""
        path = self._path(key)
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f'.{key}-', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(value)
                os.replace(tmp_path, path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f'Failed to write storage key {key}: {e}')

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f'Failed to delete storage key {key}: {e}')

    def health_check(self) -> bool:
        """
        Check that the storage directory is usable.

        Returns:
            True if the directory exists (or can be created) and is writable
        """
        try:
            os.makedirs(self.directory, exist_ok=True)
            return os.access(self.directory, os.W_OK)
        except OSError as e:
            logger.error(f'Storage health check failed: {e}')
            return False


def create_store(config: StorageConfig) -> KeyValueStore:
    """Build the backend named by the storage configuration."""
    backend = config.backend.strip().lower()
    if backend == 'memory':
        return InMemoryStore()
    if backend == 'file':
        return JsonFileStore(config.path)
    raise StorageError(f'Unsupported storage backend: {config.backend}')
