"""
Entity store for Keepy.

Owns the folder, category and profile collections. Every mutation goes
through a named operation, is normalized by the hierarchy rules, written
through to storage and announced to the change callback.
"""

from dataclasses import replace
from typing import Callable, List, Optional

from . import hierarchy
from .links import clean_username
from .logger import setup_logger
from .models import (
    Category,
    CategoryForm,
    Folder,
    FolderForm,
    IdGenerator,
    Profile,
    ProfileForm,
)
from .storage import KeepyStorage

logger = setup_logger(__name__)


class EntityStore:
    """
    Single source of truth for folders, categories and profiles.

    Getters return copies; callers never hold the store's own records.
    A failed storage write propagates to the caller after the in-memory
    change has been applied.
    """

    def __init__(
        self,
        storage: Optional[KeepyStorage] = None,
        id_generator: Optional[IdGenerator] = None,
        on_change: Optional[Callable[['EntityStore'], None]] = None
    ):
        """
        Initialize the store.

        Args:
            storage: Persistence adapter; None keeps everything in memory
            id_generator: Source of ids and creation timestamps
            on_change: Callback invoked after every successful mutation
        """
        self._storage = storage
        self._ids = id_generator or IdGenerator()
        self._on_change = on_change

        self._folders: List[Folder] = []
        self._categories: List[Category] = []
        self._profiles: List[Profile] = []

    # Loading

    def load(self) -> None:
        """Load all collections from storage and normalize them."""
        if self._storage is None:
            return

        self._folders = self._storage.load_folders()
        self._categories = self._storage.load_categories()
        self._profiles = self._storage.load_profiles()
        logger.info(
            "Loaded %d folder(s), %d categor(ies), %d profile(s)",
            len(self._folders), len(self._categories), len(self._profiles)
        )

        self._observe_ids()
        if self._normalize():
            self._persist()

    # Reads

    @property
    def folders(self) -> List[Folder]:
        """Copy of all folders."""
        return [replace(f) for f in self._folders]

    @property
    def categories(self) -> List[Category]:
        """Copy of all categories."""
        return [replace(c) for c in self._categories]

    @property
    def profiles(self) -> List[Profile]:
        """Copy of all profiles."""
        return [replace(p) for p in self._profiles]

    def get_folder(self, folder_id: str) -> Optional[Folder]:
        """Get a copy of a folder by id."""
        folder = hierarchy.find_folder(self._folders, folder_id)
        return replace(folder) if folder else None

    def get_category(self, category_id: str) -> Optional[Category]:
        """Get a copy of a category by id."""
        category = hierarchy.find_category(self._categories, category_id)
        return replace(category) if category else None

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        """Get a copy of a profile by id."""
        for profile in self._profiles:
            if profile.id == profile_id:
                return replace(profile)
        return None

    # Validation predicates

    def can_save_folder(self, form: FolderForm) -> bool:
        """Whether a folder form may be submitted."""
        return hierarchy.can_save_folder(form)

    def can_save_category(self, form: CategoryForm, category_id: Optional[str] = None) -> bool:
        """Whether a category form may be submitted."""
        return hierarchy.can_save_category(form, self._categories, self._folders, category_id)

    def can_save_profile(self, form: ProfileForm) -> bool:
        """Whether a profile form may be submitted."""
        return hierarchy.can_save_profile(form)

    def is_parent_locked(self, category_id: str) -> bool:
        """Whether a category's parent field must stay as it is."""
        return hierarchy.is_parent_locked(self._categories, category_id)

    # Folder mutations

    def create_folder(self, form: FolderForm) -> Optional[Folder]:
        """
        Create a folder.

        Returns:
            The new folder, or None if the form was not savable
        """
        if not hierarchy.can_save_folder(form):
            logger.debug("Rejected folder save: %s", form)
            return None

        stamp = self._ids.next_value()
        folder = Folder(id=str(stamp), name=form.name.strip(), created_at=stamp)
        self._commit(folders=self._folders + [folder])
        logger.info("Created folder %s (%s)", folder.id, folder.name)
        return replace(folder)

    def rename_folder(self, folder_id: str, form: FolderForm) -> Optional[Folder]:
        """
        Rename a folder.

        Returns:
            The updated folder, or None if missing or not savable
        """
        folder = hierarchy.find_folder(self._folders, folder_id)
        if folder is None or not hierarchy.can_save_folder(form):
            logger.debug("Rejected folder rename: %s -> %s", folder_id, form)
            return None

        renamed = replace(folder, name=form.name.strip())
        self._commit(folders=[renamed if f.id == folder_id else f for f in self._folders])
        logger.info("Renamed folder %s to %s", folder_id, renamed.name)
        return replace(renamed)

    def delete_folder(self, folder_id: str) -> bool:
        """
        Delete a folder; its categories are kept without a folder.

        Returns:
            True if the folder existed
        """
        if hierarchy.find_folder(self._folders, folder_id) is None:
            return False

        folders, categories = hierarchy.delete_folder(self._folders, self._categories, folder_id)
        self._commit(folders=folders, categories=categories)
        return True

    # Category mutations

    def save_category(self, form: CategoryForm, category_id: Optional[str] = None) -> Optional[Category]:
        """
        Create (category_id None) or update a category.

        Returns:
            The saved category, or None if the form was not savable
        """
        categories, saved = hierarchy.save_category(
            self._categories, self._folders, form, self._ids.next_value, category_id
        )
        if saved is None:
            return None

        self._commit(categories=categories)
        return self.get_category(saved.id)

    def delete_category(self, category_id: str) -> List[str]:
        """
        Delete a category and its subcategories.

        Returns:
            IDs of the removed categories (empty if the id was unknown)
        """
        deletion = hierarchy.delete_category(self._categories, self._profiles, category_id)
        if not deletion.removed_ids:
            return []

        self._commit(categories=deletion.categories, profiles=deletion.profiles)
        return deletion.removed_ids

    # Profile mutations

    def save_profile(self, form: ProfileForm, profile_id: Optional[str] = None) -> Optional[Profile]:
        """
        Create (profile_id None) or update a profile.

        The username is cleaned for the platform. created_at is set once
        at creation and kept on every update.

        Returns:
            The saved profile, or None if the form was not savable
        """
        if not hierarchy.can_save_profile(form):
            logger.debug("Rejected profile save: %s", form)
            return None

        username = clean_username(form.username, form.platform)

        if profile_id:
            existing = self.get_profile(profile_id)
            if existing is None:
                return None
            saved = replace(
                existing,
                username=username,
                display_name=form.display_name,
                platform=form.platform,
                category_id=form.category_id,
                notes=form.notes,
            )
            profiles = [saved if p.id == profile_id else p for p in self._profiles]
            logger.info("Updated profile %s", profile_id)
        else:
            stamp = self._ids.next_value()
            saved = Profile(
                id=str(stamp),
                username=username,
                display_name=form.display_name,
                platform=form.platform,
                category_id=form.category_id,
                notes=form.notes,
                created_at=stamp,
            )
            profiles = [saved] + self._profiles
            logger.info("Created profile %s (%s)", saved.id, saved.username)

        self._commit(profiles=profiles)
        return replace(saved)

    def delete_profile(self, profile_id: str) -> bool:
        """
        Delete a profile.

        Returns:
            True if the profile existed
        """
        remaining = [p for p in self._profiles if p.id != profile_id]
        if len(remaining) == len(self._profiles):
            return False

        self._commit(profiles=remaining)
        logger.info("Deleted profile %s", profile_id)
        return True

    # Bulk replace

    def replace_all(
        self,
        folders: List[Folder],
        categories: List[Category],
        profiles: List[Profile]
    ) -> None:
        """Replace every collection, e.g. when restoring a backup."""
        for record in list(folders) + list(categories) + list(profiles):
            self._ids.observe(record.created_at)
        self._commit(
            folders=[replace(f) for f in folders],
            categories=[replace(c) for c in categories],
            profiles=[replace(p) for p in profiles],
        )
        logger.info(
            "Replaced store contents: %d folder(s), %d categor(ies), %d profile(s)",
            len(folders), len(categories), len(profiles)
        )

    # Internals

    def _observe_ids(self) -> None:
        """Keep new ids above every loaded creation timestamp."""
        for record in self._folders + self._categories + self._profiles:
            self._ids.observe(record.created_at)

    def _normalize(self) -> bool:
        """Apply the hierarchy rules in place. Returns True if anything changed."""
        result = hierarchy.normalize(self._folders, self._categories, self._ids.next_value)
        if result.changed:
            self._folders = result.folders
            self._categories = result.categories
        return result.changed

    def _commit(
        self,
        folders: Optional[List[Folder]] = None,
        categories: Optional[List[Category]] = None,
        profiles: Optional[List[Profile]] = None
    ) -> None:
        """Apply new collections, normalize, write through and notify."""
        if folders is not None:
            self._folders = folders
        if categories is not None:
            self._categories = categories
        if profiles is not None:
            self._profiles = profiles

        self._normalize()
        self._persist()

        if self._on_change:
            try:
                self._on_change(self)
            except Exception as e:
                logger.error("Error in store change callback: %s", e)

    def _persist(self) -> None:
        """Write every collection to storage."""
        if self._storage is None:
            return
        self._storage.save_folders(self._folders)
        self._storage.save_categories(self._categories)
        self._storage.save_profiles(self._profiles)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"EntityStore(folders={len(self._folders)}, "
            f"categories={len(self._categories)}, profiles={len(self._profiles)})"
        )
