"""Durable key/value store for CostumeStudio state.

Values are JSON-serializable and addressed by logical key. The store keeps a
serialized copy of every value, so callers never share live references with
it. The file-backed store writes the whole document atomically (temp file +
replace) on every set.

Usage:
    store = JsonFileStore(Path('~/.costumestudio/state.json').expanduser())
    store.set(SAVED_IMAGES_KEY, [image.to_dict() for image in saved])
    saved = store.get(SAVED_IMAGES_KEY, [])

Author:
    Jake Meador <jameador13@gmail.com>
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any

from .errors import PersistenceError

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'SAVED_IMAGES_KEY',
    'SHARED_IMAGES_KEY',
    'ID_COUNTER_KEY',
    'UPVOTED_IDS_KEY',
    'USERNAME_KEY',
    'DurableStore',
    'MemoryStore',
    'JsonFileStore',
]

logger = logging.getLogger('costumestudio.store')

SAVED_IMAGES_KEY = 'saved-images'
SHARED_IMAGES_KEY = 'shared-images'
ID_COUNTER_KEY = 'image-id-counter'
UPVOTED_IDS_KEY = 'upvoted-ids'
USERNAME_KEY = 'display-username'


class DurableStore:
    """Interface for the persistence boundary."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError


class MemoryStore(DurableStore):
    """In-process store holding JSON text, for embedding and tests."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f'Cannot serialize "{key}": {e}') from e

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(DurableStore):
    """Store backed by a single JSON document on disk.

    An unreadable document is treated as empty so the tool stays usable; the
    first successful write replaces it.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, Any] = {}

        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding='utf-8'))
            except (OSError, ValueError) as e:
                logger.warning(f'Could not read store {self.path}, starting empty: {e}')
            else:
                if isinstance(loaded, dict):
                    self._data = loaded
                else:
                    logger.warning(f'Store {self.path} is not a JSON object, starting empty')

        logger.debug(f'Opened store {self.path} ({len(self._data)} keys)')

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        """Overwrite one key and flush the whole document.

        Raises:
            PersistenceError: If the value cannot be serialized or written.
                In-memory contents are left unchanged.
        """
        updated = dict(self._data)
        updated[key] = copy.deepcopy(value)

        try:
            content = json.dumps(updated, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f'Cannot serialize "{key}": {e}') from e

        tmp = self.path.with_suffix('.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(content, encoding='utf-8')
            tmp.replace(self.path)
        except OSError as e:
            raise PersistenceError(f'Failed to write {self.path}: {e}') from e

        self._data = updated
        logger.debug(f'Wrote "{key}" to {self.path}')

    def keys(self) -> list[str]:
        return list(self._data)
