"""
Derived views for Keepy: the category tree per folder, profile filtering
and sorting, and the two-level selector state.

Everything here is a pure function of the store's current collections.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from .hierarchy import children_of, effective_folder_id, find_category, find_folder, root_of
from .models import FALLBACK_COLOR, Category, Folder, Platform, Profile

UNCATEGORIZED_NAME = "Uncategorized"
UNFILED_NAME = "Unfiled"


class SortMode(Enum):
    """Sort modes shared by categories and profiles."""
    A_Z = "a-z"
    Z_A = "z-a"
    NEWEST = "newest"
    OLDEST = "oldest"
    COLOR = "color"


def name_key(name: str):
    """Case-insensitive ordering key with a stable case-sensitive tiebreak."""
    return (name.casefold(), name)


@dataclass
class CategoryNode:
    """A root category with its subcategories."""
    category: Category
    children: List[Category] = field(default_factory=list)


@dataclass
class FolderGroup:
    """A folder and its root categories; folder is None for the unfiled bucket."""
    folder: Optional[Folder]
    roots: List[CategoryNode] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Folder name, or the unfiled bucket name."""
        return self.folder.name if self.folder else UNFILED_NAME


@dataclass
class ProfileFilter:
    """
    Active filter chain.

    Attributes:
        search: Case-insensitive substring matched against username,
            notes and display name
        folder_id: Selected folder; ignored while a category is selected
        category_id: Selected category (root or sub)
        platform: Platform filter, None for all platforms
    """
    search: str = ''
    folder_id: Optional[str] = None
    category_id: Optional[str] = None
    platform: Optional[Platform] = None


@dataclass
class FilterSelection:
    """What the parent and sub selectors should show for a selected category."""
    parent_id: str = ''
    sub_id: str = ''


# Sorting

def sort_categories(categories: Sequence[Category], mode: SortMode) -> List[Category]:
    """
    Sort categories by the given mode.

    newest/oldest use created_at, with the id as tiebreak; color sorts by
    color string with name as tiebreak.
    """
    if mode == SortMode.Z_A:
        return sorted(categories, key=lambda c: name_key(c.name), reverse=True)
    if mode == SortMode.NEWEST:
        return sorted(categories, key=lambda c: (c.created_at, c.id), reverse=True)
    if mode == SortMode.OLDEST:
        return sorted(categories, key=lambda c: (c.created_at, c.id))
    if mode == SortMode.COLOR:
        return sorted(categories, key=lambda c: (c.color.casefold(), name_key(c.name)))
    return sorted(categories, key=lambda c: name_key(c.name))


def sort_folders(folders: Sequence[Folder], mode: SortMode) -> List[Folder]:
    """Sort folders; folders have no color, so color mode sorts by name."""
    if mode == SortMode.Z_A:
        return sorted(folders, key=lambda f: name_key(f.name), reverse=True)
    if mode == SortMode.NEWEST:
        return sorted(folders, key=lambda f: (f.created_at, f.id), reverse=True)
    if mode == SortMode.OLDEST:
        return sorted(folders, key=lambda f: (f.created_at, f.id))
    return sorted(folders, key=lambda f: name_key(f.name))


def sort_profiles(
    profiles: Sequence[Profile],
    categories: Sequence[Category],
    mode: SortMode
) -> List[Profile]:
    """Sort profiles by display name (or username), creation time or category color."""
    if mode == SortMode.Z_A:
        return sorted(profiles, key=lambda p: name_key(p.label), reverse=True)
    if mode == SortMode.NEWEST:
        return sorted(profiles, key=lambda p: p.created_at, reverse=True)
    if mode == SortMode.OLDEST:
        return sorted(profiles, key=lambda p: p.created_at)
    if mode == SortMode.COLOR:
        colors = {c.id: c.color for c in categories}
        return sorted(
            profiles,
            key=lambda p: (colors.get(p.category_id, FALLBACK_COLOR).casefold(), name_key(p.label))
        )
    return sorted(profiles, key=lambda p: name_key(p.label))


# Category tree

def category_tree(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    mode: SortMode = SortMode.A_Z
) -> List[FolderGroup]:
    """
    Group root categories by folder.

    Folders and their roots follow the sort mode; subcategories are always
    alphabetical. Every folder is listed, even without categories. Roots
    with no (or an unknown) folder go to a trailing unfiled bucket, which
    only appears when it has entries.
    """
    folder_ids = {f.id for f in folders}
    roots_by_folder: Dict[str, List[Category]] = {}
    unfiled: List[Category] = []

    for category in categories:
        if not category.is_root:
            continue
        if category.folder_id and category.folder_id in folder_ids:
            roots_by_folder.setdefault(category.folder_id, []).append(category)
        else:
            unfiled.append(category)

    def nodes(roots: List[Category]) -> List[CategoryNode]:
        return [
            CategoryNode(root, sort_categories(children_of(categories, root.id), SortMode.A_Z))
            for root in sort_categories(roots, mode)
        ]

    groups = [
        FolderGroup(folder, nodes(roots_by_folder.get(folder.id, [])))
        for folder in sort_folders(folders, mode)
    ]
    if unfiled:
        groups.append(FolderGroup(None, nodes(unfiled)))
    return groups


# Filtering

def _scope_ids(categories: Sequence[Category], flt: ProfileFilter) -> Optional[Set[str]]:
    """Category ids the scope admits, or None when every profile is in scope."""
    if flt.category_id:
        return {flt.category_id} | {c.id for c in children_of(categories, flt.category_id)}

    if flt.folder_id:
        return {
            c.id for c in categories
            if effective_folder_id(categories, c) == flt.folder_id
        }

    return None


def matches_search(profile: Profile, search: str) -> bool:
    """Case-insensitive substring match on username, notes and display name."""
    needle = search.lower()
    if not needle:
        return True
    return (
        needle in profile.username.lower()
        or needle in profile.notes.lower()
        or needle in (profile.display_name or '').lower()
    )


def filter_profiles(
    profiles: Sequence[Profile],
    categories: Sequence[Category],
    flt: ProfileFilter,
    mode: SortMode = SortMode.NEWEST
) -> List[Profile]:
    """
    Apply the active filter chain and sort the result.

    A profile matches when it matches the search, its category is in the
    selected scope (a selected category admits its direct children too; a
    selected folder admits categories filed in it directly or through their
    parent) and its platform equals the platform filter when one is set.
    """
    scope = _scope_ids(categories, flt)
    matched = [
        p for p in profiles
        if matches_search(p, flt.search)
        and (scope is None or p.category_id in scope)
        and (flt.platform is None or p.platform == flt.platform)
    ]
    return sort_profiles(matched, categories, mode)


# Selector derivation

def derive_selection(categories: Sequence[Category], category_id: Optional[str]) -> FilterSelection:
    """
    Split a selected category into parent and sub selector values.

    A root yields (itself, ''); a sub yields (its parent, itself); an
    unknown or empty id yields ('', '').
    """
    category = find_category(categories, category_id)
    if category is None:
        return FilterSelection()
    if category.is_root:
        return FilterSelection(parent_id=category.id)
    return FilterSelection(parent_id=category.parent_id, sub_id=category.id)


def subcategories_for(categories: Sequence[Category], parent_id: Optional[str]) -> List[Category]:
    """Subcategories offered by the secondary selector, alphabetically."""
    if not parent_id:
        return []
    return sort_categories(children_of(categories, parent_id), SortMode.A_Z)


# Lookups for display

def category_name(categories: Sequence[Category], category_id: Optional[str]) -> str:
    """Category name, or 'Uncategorized' when it cannot be resolved."""
    category = find_category(categories, category_id)
    return category.name if category else UNCATEGORIZED_NAME


def category_color(categories: Sequence[Category], category_id: Optional[str]) -> str:
    """Category color, or the neutral fallback when it cannot be resolved."""
    category = find_category(categories, category_id)
    return category.color if category else FALLBACK_COLOR


def category_path(
    folders: Sequence[Folder],
    categories: Sequence[Category],
    category_id: Optional[str]
) -> str:
    """Breadcrumb for a category, e.g. 'Life / Travel / Hiking'."""
    category = find_category(categories, category_id)
    if category is None:
        return ''

    parts: List[str] = [category.name]
    root = root_of(categories, category)
    if root is not None and root is not category:
        parts.insert(0, root.name)
    folder = find_folder(folders, root.folder_id) if root else None
    if folder is not None:
        parts.insert(0, folder.name)
    return ' / '.join(parts)
