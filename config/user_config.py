"""
User configuration storage.

Durable key-value store for the settings a user picks at runtime (data
directory, engine binary, engine port). Backed by a JSON file; the schema is
validated with a pydantic model so a hand-edited file cannot inject bad types.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, ValidationError

from config.settings import settings

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("dataPath", "meilisearchPath")


class UserConfig(BaseModel):
    """Schema of the persisted user configuration."""
    dataPath: str = ""
    meilisearchPath: str = ""
    meilisearchPort: int = settings.MEILISEARCH_DEFAULT_PORT


class UserConfigStore:
    """
    JSON-file backed key-value configuration.

    Example:
        store = UserConfigStore("data/config.json")
        store.set("dataPath", "/home/me/mirror")
        store.get("meilisearchPort")  # 7700
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._config = self._load()

    def get(self, key: str) -> Any:
        self._check_key(key)
        return getattr(self._config, key)

    def set(self, key: str, value: Any) -> None:
        """
        Update one key and persist the whole document.

        Raises:
            KeyError: If the key is not part of the schema
            ValueError: If the value has the wrong type
        """
        self._check_key(key)
        with self._lock:
            data = self._config.model_dump()
            data[key] = value
            try:
                self._config = UserConfig(**data)
            except ValidationError as exc:
                raise ValueError(f"Invalid value for '{key}': {exc}") from exc
            self._save()
        logger.info("Config updated: %s", key)

    def get_all(self) -> Dict[str, Any]:
        return self._config.model_dump()

    def is_complete(self) -> bool:
        return not self.missing_keys()

    def missing_keys(self) -> List[str]:
        """Return the required keys that are unset or blank."""
        return [
            key for key in REQUIRED_KEYS
            if not str(getattr(self._config, key) or "").strip()
        ]

    def _check_key(self, key: str) -> None:
        if key not in UserConfig.model_fields:
            raise KeyError(f"Unknown config key: {key}")

    def _load(self) -> UserConfig:
        if not self.path.exists():
            return UserConfig()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f) or {}
            return UserConfig(**data)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", self.path, exc)
            return UserConfig()

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._config.model_dump(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except Exception:
            os.unlink(tmp_name)
            raise
