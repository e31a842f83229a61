"""
Application state for Keepy.

KeepyApp ties the configuration, persistence, entity store and view state
together. Presentation code (the CLI) reads views from it and calls its
operations; it never mutates entities directly.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

from . import hierarchy
from .config import Config, get_config
from .export import (
    BackupFormatError,
    backup_filename,
    build_snapshot,
    build_text_report,
    dump_snapshot,
    parse_backup,
    report_title,
    share_title,
)
from .logger import setup_logger
from .models import Category, IdGenerator, Platform, Profile
from .storage import THEME_DARK, THEME_LIGHT, KeepyStorage, LocalStorage
from .store import EntityStore
from .views import (
    FilterSelection,
    FolderGroup,
    ProfileFilter,
    SortMode,
    category_tree,
    derive_selection,
    filter_profiles,
    subcategories_for,
)

logger = setup_logger(__name__)

# Receives a prompt and returns True to go ahead
ConfirmCallback = Callable[[str], bool]
# Receives (title, text)
ShareSink = Callable[[str, str], None]
# Receives text
ClipboardSink = Callable[[str], None]


@dataclass
class ImportResult:
    """Outcome of a backup restore."""
    ok: bool
    message: str


@dataclass
class ShareResult:
    """Outcome of a share action."""
    ok: bool
    method: str
    text: str
    message: str = ''


@dataclass
class ViewState:
    """Filter and sort controls."""
    search: str = ''
    folder_id: Optional[str] = None
    category_id: Optional[str] = None
    platform: Optional[Platform] = None
    profile_sort: SortMode = SortMode.NEWEST
    category_sort: SortMode = SortMode.A_Z

    def to_filter(self) -> ProfileFilter:
        """Current filter chain."""
        return ProfileFilter(
            search=self.search,
            folder_id=self.folder_id,
            category_id=self.category_id,
            platform=self.platform,
        )


class KeepyApp:
    """Owns the store and the session state of one Keepy user."""

    def __init__(
        self,
        config: Optional[Config] = None,
        storage: Optional[KeepyStorage] = None,
        id_generator: Optional[IdGenerator] = None
    ):
        """
        Initialize the application and load persisted state.

        Args:
            config: Config instance (uses global if None)
            storage: Persistence adapter (built from config if None)
            id_generator: Source of ids and creation timestamps
        """
        self._config = config or get_config()
        self._storage = storage or KeepyStorage(
            LocalStorage(str(self._config.data_dir)),
            key_prefix=self._config.key_prefix,
        )
        self.store = EntityStore(storage=self._storage, id_generator=id_generator)
        self.view = ViewState(
            profile_sort=_parse_sort(self._config.profile_sort, SortMode.NEWEST),
            category_sort=_parse_sort(self._config.category_sort, SortMode.A_Z),
        )

        self.store.load()
        self._theme = self._storage.load_theme()
        self._authenticated = self._storage.is_authenticated()

        logger.info("KeepyApp initialized with %r", self._storage)

    # Access gate

    @property
    def is_authenticated(self) -> bool:
        """Whether the soft lock has been opened."""
        return self._authenticated

    def login(self, code: str) -> bool:
        """
        Compare a code against the shared access code.

        This is a soft lock against casual use, not authentication.

        An empty or unset configured code never matches.

        Returns:
            True if the code matched
        """
        expected = self._config.access_code
        if not expected:
            logger.warning("No access code configured; access refused")
            return False
        if code != expected:
            logger.warning("Incorrect access code")
            return False

        self._authenticated = True
        self._storage.set_authenticated(True)
        logger.info("Access granted")
        return True

    def logout(self) -> None:
        """Close the soft lock."""
        self._authenticated = False
        self._storage.set_authenticated(False)
        logger.info("Logged out")

    # Theme

    @property
    def theme(self) -> str:
        """'dark' or 'light'."""
        return self._theme

    def set_theme(self, theme: str) -> None:
        """Set and persist the theme."""
        self._theme = THEME_DARK if theme == THEME_DARK else THEME_LIGHT
        self._storage.save_theme(self._theme)

    def toggle_theme(self) -> str:
        """Switch between dark and light; returns the new theme."""
        self.set_theme(THEME_LIGHT if self._theme == THEME_DARK else THEME_DARK)
        return self._theme

    # Filter controls

    def set_search(self, search: str) -> None:
        """Set the search text."""
        self.view.search = search

    def set_platform_filter(self, platform: Optional[Platform]) -> None:
        """Set the platform filter; None shows every platform."""
        self.view.platform = platform

    def select_folder(self, folder_id: Optional[str]) -> None:
        """Select a folder; clears the category selection."""
        self.view.folder_id = folder_id or None
        self.view.category_id = None

    def select_category(self, category_id: Optional[str]) -> None:
        """Select a category (root or sub), or None for no category."""
        self.view.category_id = category_id or None

    def set_profile_sort(self, mode: SortMode) -> None:
        """Set the profile sort mode."""
        self.view.profile_sort = mode

    def set_category_sort(self, mode: SortMode) -> None:
        """Set the category sort mode."""
        self.view.category_sort = mode

    # Views

    def filtered_profiles(self) -> List[Profile]:
        """Profiles matching the current filter chain, sorted."""
        return filter_profiles(
            self.store.profiles,
            self.store.categories,
            self.view.to_filter(),
            self.view.profile_sort,
        )

    def category_tree(self) -> List[FolderGroup]:
        """Folders with their sorted root categories and subcategories."""
        return category_tree(self.store.folders, self.store.categories, self.view.category_sort)

    def filter_selection(self) -> FilterSelection:
        """Parent/sub selector values for the selected category."""
        return derive_selection(self.store.categories, self.view.category_id)

    def subcategory_options(self) -> List[Category]:
        """Subcategories of the active parent, for the secondary selector."""
        return subcategories_for(self.store.categories, self.filter_selection().parent_id)

    def title(self) -> str:
        """Title of the current view."""
        return report_title(
            self.store.folders, self.store.categories,
            self.view.category_id, self.view.folder_id
        )

    # Confirm-gated deletes

    def delete_category(self, category_id: str, confirm: ConfirmCallback) -> List[str]:
        """
        Delete a category and its subcategories after confirmation.

        Returns:
            IDs removed; empty when declined or unknown
        """
        categories = self.store.categories
        if hierarchy.find_category(categories, category_id) is None:
            return []
        if not confirm(hierarchy.delete_confirmation_message(categories, category_id)):
            logger.debug("Category delete declined: %s", category_id)
            return []

        removed = self.store.delete_category(category_id)
        if self.view.category_id in removed:
            self.view.category_id = None
        return removed

    def delete_folder(self, folder_id: str, confirm: ConfirmCallback) -> bool:
        """Delete a folder after confirmation; clears a folder filter pointing at it."""
        if self.store.get_folder(folder_id) is None:
            return False
        if not confirm(hierarchy.CONFIRM_DELETE_FOLDER):
            logger.debug("Folder delete declined: %s", folder_id)
            return False

        deleted = self.store.delete_folder(folder_id)
        if deleted and self.view.folder_id == folder_id:
            self.view.folder_id = None
        return deleted

    def delete_profile(self, profile_id: str, confirm: ConfirmCallback) -> bool:
        """Delete a profile after confirmation."""
        if self.store.get_profile(profile_id) is None:
            return False
        if not confirm(hierarchy.CONFIRM_DELETE_PROFILE):
            logger.debug("Profile delete declined: %s", profile_id)
            return False
        return self.store.delete_profile(profile_id)

    # Share

    def share_text(self) -> str:
        """Grouped text report of the current view."""
        return build_text_report(
            self.filtered_profiles(),
            self.store.folders,
            self.store.categories,
            self.title(),
        )

    def share(
        self,
        share_sink: Optional[ShareSink] = None,
        clipboard_sink: Optional[ClipboardSink] = None
    ) -> ShareResult:
        """
        Hand the text report to the share sink, or the clipboard when no
        share sink is available. Failures are logged and reported.
        """
        text = self.share_text()
        try:
            if share_sink is not None:
                share_sink(share_title(self.title()), text)
                return ShareResult(ok=True, method='share', text=text)
            if clipboard_sink is not None:
                clipboard_sink(text)
                return ShareResult(ok=True, method='clipboard', text=text,
                                   message='List copied to clipboard!')
        except Exception as e:
            logger.error("Error sharing: %s", e)
            return ShareResult(ok=False, method='share' if share_sink else 'clipboard',
                               text=text, message=f"Sharing failed: {e}")

        return ShareResult(ok=False, method='none', text=text, message='No share target available')

    # Backup

    def export_snapshot(self) -> str:
        """Full backup document as JSON text."""
        snapshot = build_snapshot(
            self.store.folders,
            self.store.categories,
            self.store.profiles,
            version=self._config.backup_version,
        )
        return dump_snapshot(snapshot)

    def export_backup(self, target_dir: str, day: Optional[date] = None) -> Path:
        """
        Write a date-stamped backup file.

        Returns:
            Path of the written file
        """
        target = Path(target_dir)
        target.mkdir(parents=True, exist_ok=True)
        path = target / backup_filename(self._config.backup_filename_prefix, day)
        path.write_text(self.export_snapshot() + "\n", encoding='utf-8')
        logger.info("Exported backup to %s", path)
        return path

    def import_snapshot(self, text: str) -> ImportResult:
        """
        Replace every collection with the contents of a backup document.

        The store is left untouched when the document is rejected.
        """
        try:
            backup = parse_backup(text)
        except BackupFormatError as e:
            logger.error("Import failed: %s", e)
            return ImportResult(ok=False, message=f"Invalid backup file: {e}")

        self.store.replace_all(backup.folders, backup.categories, backup.profiles)
        self.view.folder_id = None
        self.view.category_id = None
        return ImportResult(
            ok=True,
            message=(
                f"Imported {len(backup.folders)} folder(s), "
                f"{len(backup.categories)} categor(ies), {len(backup.profiles)} profile(s)"
            ),
        )

    def import_backup(self, path: str) -> ImportResult:
        """Read a backup file and restore it."""
        try:
            text = Path(path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Could not read backup %s: %s", path, e)
            return ImportResult(ok=False, message=f"Could not read backup file: {e}")
        return self.import_snapshot(text)

    def __repr__(self) -> str:
        """String representation."""
        return f"KeepyApp(store={self.store!r}, theme={self._theme})"


def _parse_sort(value: str, default: SortMode) -> SortMode:
    """Parse a configured sort mode, falling back to a default."""
    try:
        return SortMode(value)
    except ValueError:
        logger.warning("Unknown sort mode %r, using %s", value, default.value)
        return default
