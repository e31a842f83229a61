"""
Entity types for Keepy: folders, categories and profiles.

Serialized field names follow the persisted/backup JSON format (camelCase),
so records written by older releases load unchanged.
"""

import math
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional


class Platform(Enum):
    """Where a saved profile lives."""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TIKTOK = "tiktok"
    X = "x"
    WEBSITE = "website"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'Platform':
        """
        Parse a stored platform tag, migrating legacy tags.

        'twitter' becomes X; a missing or unknown tag becomes INSTAGRAM.
        """
        if value == LEGACY_TWITTER_TAG:
            return cls.X
        try:
            return cls(value)
        except ValueError:
            return cls.INSTAGRAM


LEGACY_TWITTER_TAG = "twitter"

# Palette offered by the category editor; the first entry is the default
PASTEL_COLORS = [
    '#FFB3BA',  # Red/Pink
    '#FFDFBA',  # Orange
    '#FFFFBA',  # Yellow
    '#BAFFC9',  # Green
    '#BAE1FF',  # Blue
    '#E2BAFF',  # Purple
    '#F0F0F0',  # Gray
    '#C9C9FF',  # Indigo
]

DEFAULT_COLOR = PASTEL_COLORS[0]
FALLBACK_COLOR = '#e2e8f0'


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _created_at_from(data: Dict[str, Any]) -> int:
    """Read createdAt, deriving it from a numeric id for legacy records."""
    created_at = data.get('createdAt')
    if isinstance(created_at, (int, float)) and not isinstance(created_at, bool):
        if math.isfinite(created_at):
            return int(created_at)
    record_id = str(data.get('id', ''))
    return int(record_id) if record_id.isdigit() else 0


@dataclass
class Folder:
    """Top-level grouping of root categories."""

    id: str
    name: str
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert folder to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Folder':
        """Create a folder from its stored dictionary."""
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            created_at=_created_at_from(data),
        )


@dataclass
class Category:
    """
    A root category (no parent_id) or a subcategory (parent_id set).

    Attributes:
        id: Unique identifier
        name: Display name
        color: Hex color; subcategories always carry their parent's color
        parent_id: ID of the root category this one belongs to
        folder_id: ID of the folder; only set on root categories
        created_at: Creation time in epoch milliseconds
    """

    id: str
    name: str
    color: str = DEFAULT_COLOR
    parent_id: Optional[str] = None
    folder_id: Optional[str] = None
    created_at: int = 0

    @property
    def is_root(self) -> bool:
        """True when this category has no parent."""
        return not self.parent_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert category to dictionary, omitting unset optional links."""
        result: Dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'color': self.color,
        }
        if self.parent_id:
            result['parentId'] = self.parent_id
        if self.folder_id:
            result['folderId'] = self.folder_id
        result['createdAt'] = self.created_at
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        """Create a category from its stored dictionary."""
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            color=str(data.get('color') or DEFAULT_COLOR),
            parent_id=data.get('parentId') or None,
            folder_id=data.get('folderId') or None,
            created_at=_created_at_from(data),
        )


@dataclass
class Profile:
    """
    A saved social-media handle or website link.

    ``username`` holds a bare handle, or a full URL for websites and
    pasted links. ``category_id`` is '' when the profile is uncategorized.
    """

    id: str
    username: str
    platform: Platform = Platform.INSTAGRAM
    category_id: str = ''
    notes: str = ''
    created_at: int = 0
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        """Name used for sorting and reports: display name or username."""
        return self.display_name or self.username

    def to_dict(self) -> Dict[str, Any]:
        """Convert profile to dictionary."""
        result: Dict[str, Any] = {
            'id': self.id,
            'username': self.username,
        }
        if self.display_name is not None:
            result['displayName'] = self.display_name
        result.update({
            'platform': self.platform.value,
            'categoryId': self.category_id,
            'notes': self.notes,
            'createdAt': self.created_at,
        })
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Profile':
        """Create a profile from its stored dictionary, migrating the platform tag."""
        display_name = data.get('displayName')
        return cls(
            id=str(data.get('id', '')),
            username=str(data.get('username', '')),
            platform=Platform.parse(data.get('platform')),
            category_id=str(data.get('categoryId') or ''),
            notes=str(data.get('notes') or ''),
            created_at=_created_at_from(data),
            display_name=str(display_name) if display_name is not None else None,
        )


@dataclass
class FolderForm:
    """Editor state for a folder."""
    name: str = ''


@dataclass
class CategoryForm:
    """
    Editor state for a category.

    ``unfiled`` is the explicit choice of saving a root category without
    a folder.
    """
    name: str = ''
    color: str = DEFAULT_COLOR
    parent_id: str = ''
    folder_id: str = ''
    unfiled: bool = False


@dataclass
class ProfileForm:
    """Editor state for a profile."""
    username: str = ''
    platform: Platform = Platform.INSTAGRAM
    category_id: str = ''
    notes: str = ''
    display_name: str = ''


@dataclass
class IdGenerator:
    """
    Issues timestamp values used as record ids and creation times.

    Values are epoch milliseconds; two ids issued within the same millisecond
    are bumped so every id is strictly greater than the previous one.
    """

    clock: Callable[[], int] = now_ms
    _last: int = field(default=0, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def next_value(self) -> int:
        """Return the next strictly increasing timestamp value."""
        with self._lock:
            value = max(int(self.clock()), self._last + 1)
            self._last = value
            return value

    def observe(self, value: int) -> None:
        """Make sure later ids are greater than an already issued value."""
        with self._lock:
            self._last = max(self._last, int(value))
