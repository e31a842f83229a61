"""
Hierarchy rules for folders and categories.

Every function here is pure: it takes the current collections and returns
new lists, leaving its inputs untouched. The EntityStore applies the results.

Rules enforced:
- A subcategory always has its parent's color and never its own folder.
- Nesting is at most two levels (root, optional sub).
- A root with children cannot be re-parented; a sub cannot be promoted.
- Root categories without a folder are filed into the "General" folder.
- Deleting a category removes its subcategories and uncategorizes profiles.
- Deleting a folder unfiles its categories.
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

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

logger = setup_logger(__name__)

GENERAL_FOLDER_NAME = "General"

CONFIRM_DELETE_CATEGORY = (
    "Are you sure you want to delete this category? Profiles will be uncategorized."
)
CONFIRM_DELETE_CATEGORY_WITH_CHILDREN = (
    "Are you sure? This will delete the category and all its subcategories. "
    "Profiles will be uncategorized."
)
CONFIRM_DELETE_FOLDER = (
    "Are you sure you want to delete this folder? Its categories will be kept."
)
CONFIRM_DELETE_PROFILE = "Are you sure you want to delete this profile?"


@dataclass
class CategoryDeletion:
    """Outcome of a cascading category delete."""
    categories: List[Category]
    profiles: List[Profile]
    removed_ids: List[str]
    uncategorized_ids: List[str]


@dataclass
class Normalization:
    """Outcome of a normalization pass."""
    folders: List[Folder]
    categories: List[Category]
    changed: bool


# Lookups

def find_category(categories: Sequence[Category], category_id: Optional[str]) -> Optional[Category]:
    """Find a category by id."""
    if not category_id:
        return None
    for category in categories:
        if category.id == category_id:
            return category
    return None


def find_folder(folders: Sequence[Folder], folder_id: Optional[str]) -> Optional[Folder]:
    """Find a folder by id."""
    if not folder_id:
        return None
    for folder in folders:
        if folder.id == folder_id:
            return folder
    return None


def children_of(categories: Sequence[Category], parent_id: str) -> List[Category]:
    """Direct subcategories of a category, in collection order."""
    return [c for c in categories if c.parent_id == parent_id]


def has_children(categories: Sequence[Category], category_id: str) -> bool:
    """True when at least one category names this one as parent."""
    return any(c.parent_id == category_id for c in categories)


def root_of(categories: Sequence[Category], category: Category) -> Optional[Category]:
    """The root category a category belongs to (itself for roots)."""
    if category.is_root:
        return category
    return find_category(categories, category.parent_id)


def effective_folder_id(categories: Sequence[Category], category: Category) -> Optional[str]:
    """Folder of a category, inherited through the parent for subcategories."""
    root = root_of(categories, category)
    return root.folder_id if root else None


def is_parent_locked(categories: Sequence[Category], category_id: Optional[str]) -> bool:
    """
    True when a category's parent field must not be edited.

    A root category that already has children is locked so it can never
    become a grandchild.
    """
    category = find_category(categories, category_id)
    return bool(category and category.is_root and has_children(categories, category.id))


# Advisory validation

def can_save_folder(form: FolderForm) -> bool:
    """A folder needs a name."""
    return bool(form.name.strip())


def can_save_category(
    form: CategoryForm,
    categories: Sequence[Category],
    folders: Sequence[Folder],
    editing_id: Optional[str] = None
) -> bool:
    """
    Check whether the category editor may submit.

    Args:
        form: Current editor state
        categories: All categories
        folders: All folders; an unknown folder id is rejected
        editing_id: ID of the category being edited, None when creating

    Returns:
        True if saving would succeed
    """
    if not form.name.strip():
        return False

    editing = find_category(categories, editing_id) if editing_id else None
    if editing_id and editing is None:
        return False

    if form.parent_id:
        parent = find_category(categories, form.parent_id)
        if parent is None or not parent.is_root:
            return False
        if editing is not None:
            if parent.id == editing.id:
                return False
            if is_parent_locked(categories, editing.id):
                return False
        return True

    # Subcategories must keep some parent while being edited
    if editing is not None and not editing.is_root:
        return False

    if form.folder_id:
        return find_folder(folders, form.folder_id) is not None
    return form.unfiled


def can_save_profile(form: ProfileForm) -> bool:
    """A profile needs a username and a category."""
    return bool(form.username.strip() and form.category_id)


# Category save

def inherited_color(form: CategoryForm, categories: Sequence[Category]) -> str:
    """Color a category will be saved with: the parent's when it has one."""
    if form.parent_id:
        parent = find_category(categories, form.parent_id)
        if parent is not None:
            return parent.color
    return form.color


def save_category(
    categories: Sequence[Category],
    folders: Sequence[Folder],
    form: CategoryForm,
    id_generator: Callable[[], int],
    editing_id: Optional[str] = None
) -> Tuple[List[Category], Optional[Category]]:
    """
    Create or update a category, applying color inheritance.

    When the saved category has children, every child is rewritten to the
    saved color.

    Args:
        categories: All categories
        folders: All folders
        form: Editor state
        id_generator: Returns the next timestamp value for new records
        editing_id: ID of the category being edited, None to create

    Returns:
        Tuple of (new category list, saved category or None if rejected)
    """
    if not can_save_category(form, categories, folders, editing_id):
        logger.debug("Rejected category save: %s", form)
        return list(categories), None

    color = inherited_color(form, categories)
    parent_id = form.parent_id or None
    folder_id = None if parent_id else (form.folder_id or None)
    name = form.name.strip()

    if editing_id:
        existing = find_category(categories, editing_id)
        saved = replace(existing, name=name, color=color, parent_id=parent_id, folder_id=folder_id)
        result = [saved if c.id == editing_id else c for c in categories]
        result = [
            replace(c, color=color) if c.parent_id == editing_id and c.color != color else c
            for c in result
        ]
        logger.info("Updated category %s (%s)", saved.id, saved.name)
        return result, saved

    stamp = id_generator()
    saved = Category(
        id=str(stamp),
        name=name,
        color=color,
        parent_id=parent_id,
        folder_id=folder_id,
        created_at=stamp,
    )
    logger.info("Created category %s (%s)", saved.id, saved.name)
    return list(categories) + [saved], saved


# Deletes

def delete_confirmation_message(categories: Sequence[Category], category_id: str) -> str:
    """Confirmation prompt for deleting a category."""
    if has_children(categories, category_id):
        return CONFIRM_DELETE_CATEGORY_WITH_CHILDREN
    return CONFIRM_DELETE_CATEGORY


def delete_category(
    categories: Sequence[Category],
    profiles: Sequence[Profile],
    category_id: str
) -> CategoryDeletion:
    """
    Delete a category together with its direct subcategories.

    Profiles are kept; those pointing at a removed id get an empty
    category_id.
    """
    if find_category(categories, category_id) is None:
        return CategoryDeletion(list(categories), list(profiles), [], [])

    removed: Set[str] = {category_id}
    removed.update(c.id for c in children_of(categories, category_id))

    remaining = [c for c in categories if c.id not in removed]
    uncategorized: List[str] = []
    updated_profiles: List[Profile] = []
    for profile in profiles:
        if profile.category_id in removed:
            uncategorized.append(profile.id)
            profile = replace(profile, category_id='')
        updated_profiles.append(profile)

    removed_ids = [c.id for c in categories if c.id in removed]
    logger.info(
        "Deleted categories %s; uncategorized %d profile(s)",
        removed_ids, len(uncategorized)
    )
    return CategoryDeletion(remaining, updated_profiles, removed_ids, uncategorized)


def delete_folder(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    folder_id: str
) -> Tuple[List[Folder], List[Category]]:
    """Delete a folder; its categories lose their folder_id but are kept."""
    remaining = [f for f in folders if f.id != folder_id]
    updated = [
        replace(c, folder_id=None) if c.folder_id == folder_id else c
        for c in categories
    ]
    logger.info("Deleted folder %s", folder_id)
    return remaining, updated


# Normalization

def _is_broken(by_id: Dict[str, Category], category: Category) -> bool:
    """True when a sub's parent is missing or the sub sits on a parent cycle."""
    parent = by_id.get(category.parent_id)
    if parent is None:
        return True
    seen = {category.id}
    while parent is not None and not parent.is_root:
        if parent.id == category.id:
            return True
        if parent.id in seen:
            return False
        seen.add(parent.id)
        parent = by_id.get(parent.parent_id)
    return False


def _repair_subcategories(categories: List[Category]) -> Tuple[List[Category], bool]:
    """
    Re-establish the subcategory invariants.

    - A sub whose parent is missing, or that sits on a parent cycle, becomes
      a root. Its own subs stay attached to it.
    - A sub whose parent is itself a sub is re-attached to the root above.
    - A sub carries its root's color and no folder of its own.
    """
    by_id = {c.id: c for c in categories}
    promoted = {c.id for c in categories if not c.is_root and _is_broken(by_id, c)}
    for category_id in promoted:
        logger.info(
            "Promoting category %s to root: parent %s not found",
            category_id, by_id[category_id].parent_id
        )
        by_id[category_id] = replace(by_id[category_id], parent_id=None)

    changed = bool(promoted)
    result: List[Category] = []

    for category in categories:
        current = by_id[category.id]
        if current.is_root:
            result.append(current)
            continue

        root = by_id[current.parent_id]
        seen = {current.id}
        while not root.is_root and root.id not in seen:
            seen.add(root.id)
            root = by_id[root.parent_id]

        fixed = replace(current, parent_id=root.id, color=root.color, folder_id=None)
        if fixed != category:
            changed = True
        result.append(fixed)

    return result, changed


def migrate_orphans(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    id_generator: Callable[[], int]
) -> Normalization:
    """
    File every root category without a folder into the "General" folder.

    The folder is reused when one with that name exists, otherwise created.
    Roots pointing at a folder that no longer exists count as orphans too.
    Running the pass twice changes nothing the second time.
    """
    folder_ids = {f.id for f in folders}
    orphans = {
        c.id for c in categories
        if c.is_root and (not c.folder_id or c.folder_id not in folder_ids)
    }
    if not orphans:
        return Normalization(list(folders), list(categories), False)

    result_folders = list(folders)
    general = next((f for f in folders if f.name == GENERAL_FOLDER_NAME), None)
    if general is None:
        stamp = id_generator()
        general = Folder(id=str(stamp), name=GENERAL_FOLDER_NAME, created_at=stamp)
        result_folders.append(general)
        logger.info("Created folder %s for unfiled categories", GENERAL_FOLDER_NAME)

    result_categories = [
        replace(c, folder_id=general.id) if c.id in orphans else c
        for c in categories
    ]
    logger.info("Filed %d orphan categor(ies) into %s", len(orphans), GENERAL_FOLDER_NAME)
    return Normalization(result_folders, result_categories, True)


def normalize(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    id_generator: Optional[Callable[[], int]] = None
) -> Normalization:
    """
    Run every self-healing rule over the hierarchy.

    Invoked after each mutation and once at startup, before any view is
    derived. Idempotent.
    """
    if id_generator is None:
        id_generator = IdGenerator().next_value

    repaired, repaired_changed = _repair_subcategories(list(categories))
    migrated = migrate_orphans(folders, repaired, id_generator)
    return Normalization(
        migrated.folders,
        migrated.categories,
        repaired_changed or migrated.changed,
    )
