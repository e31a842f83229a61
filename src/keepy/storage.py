"""
Persistence for Keepy.

LocalStorage is a directory-backed key/value store holding one JSON string
per key. KeepyStorage maps the application's collections and flags onto
those keys and migrates legacy profile records on load.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .logger import setup_logger
from .models import LEGACY_TWITTER_TAG, Category, Folder, Platform, Profile

logger = setup_logger(__name__)

THEME_DARK = "dark"
THEME_LIGHT = "light"


class LocalStorage:
    """Key/value storage with one file per key under a directory."""

    def __init__(self, data_dir: str):
        """
        Initialize storage.

        Args:
            data_dir: Directory holding the key files; created on first write
        """
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw string stored under a key.

        Returns:
            Stored string, or None if the key was never written
        """
        file_path = self._path(key)
        if not file_path.exists():
            return None

        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        """Store a raw string under a key."""
        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        with open(self._path(key), 'w', encoding='utf-8') as f:
            f.write(value)

    def remove_item(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        file_path = self._path(key)
        if file_path.exists():
            file_path.unlink()

    def __repr__(self) -> str:
        """String representation."""
        return f"LocalStorage(data_dir={self.data_dir})"


def migrate_profile_records(records: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], int]:
    """
    Rewrite legacy profile records to the current format.

    The 'twitter' tag becomes 'x' and a missing platform becomes
    'instagram'. Other fields are left untouched.

    Returns:
        Tuple of (migrated records, number of records changed)
    """
    migrated: List[Dict[str, Any]] = []
    changed = 0
    for record in records:
        platform = record.get('platform')
        if platform == LEGACY_TWITTER_TAG:
            record = dict(record, platform=Platform.X.value)
            changed += 1
        elif not platform:
            record = dict(record, platform=Platform.INSTAGRAM.value)
            changed += 1
        migrated.append(record)
    return migrated, changed


class KeepyStorage:
    """Loads and saves folders, categories, profiles, theme and auth flag."""

    def __init__(self, storage: LocalStorage, key_prefix: str = "keepy"):
        """
        Initialize the persistence adapter.

        Args:
            storage: Key/value backend
            key_prefix: Prefix of every storage key
        """
        self._storage = storage
        self.key_prefix = key_prefix

    def key(self, name: str) -> str:
        """Full storage key for a collection or flag name."""
        return f"{self.key_prefix}_{name}"

    def _load_list(self, name: str) -> List[Dict[str, Any]]:
        raw = self._storage.get_item(self.key(name))
        if raw is None:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"Stored {name} must be a list, got {type(data).__name__}")
        return [item for item in data if isinstance(item, dict)]

    def _save_list(self, name: str, records: List[Dict[str, Any]]) -> None:
        self._storage.set_item(self.key(name), json.dumps(records, ensure_ascii=False))

    # Collections

    def load_folders(self) -> List[Folder]:
        """Load folders."""
        return [Folder.from_dict(item) for item in self._load_list("folders")]

    def load_categories(self) -> List[Category]:
        """Load categories."""
        return [Category.from_dict(item) for item in self._load_list("categories")]

    def load_profiles(self) -> List[Profile]:
        """Load profiles, migrating legacy platform tags."""
        records, changed = migrate_profile_records(self._load_list("profiles"))
        if changed:
            logger.info("Migrated platform of %d stored profile(s)", changed)
        return [Profile.from_dict(item) for item in records]

    def save_folders(self, folders: List[Folder]) -> None:
        """Save folders."""
        self._save_list("folders", [f.to_dict() for f in folders])

    def save_categories(self, categories: List[Category]) -> None:
        """Save categories."""
        self._save_list("categories", [c.to_dict() for c in categories])

    def save_profiles(self, profiles: List[Profile]) -> None:
        """Save profiles."""
        self._save_list("profiles", [p.to_dict() for p in profiles])

    # Flags

    def load_theme(self) -> str:
        """Load the theme flag; anything but 'dark' reads as light."""
        return THEME_DARK if self._storage.get_item(self.key("theme")) == THEME_DARK else THEME_LIGHT

    def save_theme(self, theme: str) -> None:
        """Save the theme flag."""
        self._storage.set_item(self.key("theme"), THEME_DARK if theme == THEME_DARK else THEME_LIGHT)

    def is_authenticated(self) -> bool:
        """True when the access gate was passed and not logged out since."""
        return self._storage.get_item(self.key("auth")) == "true"

    def set_authenticated(self, value: bool) -> None:
        """Set or clear the persisted access flag."""
        if value:
            self._storage.set_item(self.key("auth"), "true")
        else:
            self._storage.remove_item(self.key("auth"))

    def __repr__(self) -> str:
        """String representation."""
        return f"KeepyStorage(storage={self._storage!r}, key_prefix={self.key_prefix})"
