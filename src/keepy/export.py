"""
Export and import for Keepy.

- Grouped text report of the current filtered view (for sharing)
- Full JSON snapshot of every collection (for backup)
- Backup parsing and validation (for restore)
"""

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .hierarchy import find_category, find_folder
from .links import platform_label, profile_link
from .logger import setup_logger
from .models import Category, Folder, Profile, now_ms
from .storage import migrate_profile_records
from .views import UNFILED_NAME, SortMode, name_key, sort_categories

logger = setup_logger(__name__)

BACKUP_VERSION = 2
APP_NAME = "Keepy"
ALL_PROFILES_TITLE = "All Profiles"


class BackupFormatError(ValueError):
    """Raised when a backup document cannot be restored."""
    pass


@dataclass
class Backup:
    """A parsed backup document."""
    folders: List[Folder] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    profiles: List[Profile] = field(default_factory=list)
    version: int = BACKUP_VERSION
    exported_at: int = 0


# JSON snapshot

def build_snapshot(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    profiles: Sequence[Profile],
    version: int = BACKUP_VERSION,
    exported_at: Optional[int] = None
) -> Dict[str, Any]:
    """
    Build the full backup document, ignoring any active filter.

    Args:
        folders: All folders
        categories: All categories
        profiles: All profiles
        version: Backup format version
        exported_at: Export time in epoch ms; defaults to now

    Returns:
        JSON-serializable dictionary
    """
    return {
        'folders': [f.to_dict() for f in folders],
        'categories': [c.to_dict() for c in categories],
        'profiles': [p.to_dict() for p in profiles],
        'version': version,
        'exportedAt': now_ms() if exported_at is None else exported_at,
    }


def dump_snapshot(snapshot: Dict[str, Any]) -> str:
    """Serialize a snapshot as pretty-printed UTF-8 JSON text."""
    return json.dumps(snapshot, ensure_ascii=False, indent=2)


def backup_filename(prefix: str = "keepy-backup", day: Optional[date] = None) -> str:
    """Date-stamped backup filename, e.g. 'keepy-backup-2026-10-19.json'."""
    day = day or date.today()
    return f"{prefix}-{day.isoformat()}.json"


def parse_backup(text: str) -> Backup:
    """
    Parse and validate a backup document.

    'categories' and 'profiles' must be arrays. 'folders' may be absent
    (older backups predate folders) but must be an array when present.

    Raises:
        BackupFormatError: If the text is not valid JSON or a required
            array is missing
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise BackupFormatError("Backup must be a JSON object")

    categories = data.get('categories')
    profiles = data.get('profiles')
    folders = data.get('folders', [])
    if not isinstance(categories, list) or not isinstance(profiles, list):
        raise BackupFormatError("Backup must contain 'categories' and 'profiles' arrays")
    if folders is None:
        folders = []
    if not isinstance(folders, list):
        raise BackupFormatError("Backup 'folders' must be an array")

    for name, records in (('folders', folders), ('categories', categories), ('profiles', profiles)):
        if not all(isinstance(item, dict) for item in records):
            raise BackupFormatError(f"Backup '{name}' must contain only objects")

    profile_records, migrated = migrate_profile_records(profiles)
    if migrated:
        logger.info("Migrated platform of %d imported profile(s)", migrated)

    version = data.get('version', 1)
    exported_at = data.get('exportedAt', 0)
    return Backup(
        folders=[Folder.from_dict(item) for item in folders],
        categories=[Category.from_dict(item) for item in categories],
        profiles=[Profile.from_dict(item) for item in profile_records],
        version=version if isinstance(version, int) else 1,
        exported_at=exported_at if isinstance(exported_at, int) else 0,
    )


# Text report

def report_title(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    category_id: Optional[str] = None,
    folder_id: Optional[str] = None
) -> str:
    """Report title: selected category, else selected folder, else 'All Profiles'."""
    category = find_category(categories, category_id)
    if category is not None:
        return category.name
    folder = find_folder(folders, folder_id)
    if folder is not None:
        return folder.name
    return ALL_PROFILES_TITLE


def share_title(title: str) -> str:
    """Title handed to the share sink."""
    return f"{APP_NAME} List: {title}"


def format_profile_line(profile: Profile) -> str:
    """One report line: platform label, name and resolved link."""
    return f"• [{platform_label(profile.platform)}] {profile.label}: {profile_link(profile)}"


@dataclass
class _RootGroup:
    direct: List[Profile] = field(default_factory=list)
    subs: Dict[str, List[Profile]] = field(default_factory=dict)


def build_text_report(
    profiles: Sequence[Profile],
    folders: Sequence[Folder],
    categories: Sequence[Category],
    title: str = ALL_PROFILES_TITLE
) -> str:
    """
    Render the filtered profiles as a nested plain-text report.

    Grouping is Folder -> root Category -> Subcategory, alphabetical at
    every level, with profiles in the order given. Profiles whose category
    cannot be resolved are left out, and groups without profiles are not
    printed.

    Args:
        profiles: The current filtered (and sorted) view
        folders: All folders
        categories: All categories
        title: Report title

    Returns:
        Report text
    """
    by_id = {c.id: c for c in categories}
    folder_names = {f.id: f.name for f in folders}
    grouped: Dict[str, Dict[str, _RootGroup]] = {}

    for profile in profiles:
        category = by_id.get(profile.category_id)
        if category is None:
            continue
        root = category if category.is_root else by_id.get(category.parent_id)
        if root is None:
            continue

        folder_key = root.folder_id if root.folder_id in folder_names else ''
        group = grouped.setdefault(folder_key, {}).setdefault(root.id, _RootGroup())
        if root is category:
            group.direct.append(profile)
        else:
            group.subs.setdefault(category.id, []).append(profile)

    lines = [f"📂 {title}", f"(Shared via {APP_NAME})", ""]

    folder_keys = sorted((k for k in grouped if k), key=lambda k: name_key(folder_names[k]))
    if '' in grouped:
        folder_keys.append('')

    for folder_key in folder_keys:
        lines.append(f"📁 {folder_names.get(folder_key, UNFILED_NAME)}")
        roots = sort_categories([by_id[root_id] for root_id in grouped[folder_key]], SortMode.A_Z)
        for root in roots:
            group = grouped[folder_key][root.id]
            lines.append(f"  {root.name}:")
            lines.extend(f"  {format_profile_line(p)}" for p in group.direct)
            subs = sort_categories([by_id[sub_id] for sub_id in group.subs], SortMode.A_Z)
            for sub in subs:
                lines.append(f"    ↳ {sub.name}:")
                lines.extend(f"    {format_profile_line(p)}" for p in group.subs[sub.id])
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"
