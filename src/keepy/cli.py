"""
Command-line front end for Keepy.

Usage examples:
    keepy login Keepy@26
    keepy folder add Life
    keepy category add Travel --folder <folder-id> --color '#BAE1FF'
    keepy category add Hiking --parent <category-id>
    keepy profile add https://instagram.com/jane --category <category-id>
    keepy list --search jane --sort a-z
    keepy share --category <category-id>
    keepy export --dir ~/backups
"""

import argparse
import getpass
import sys
from dataclasses import replace
from typing import List, Optional

from .app import KeepyApp
from .config import Config
from .links import detect_platform, display_title, profile_link
from .logger import setup_logger
from .models import PASTEL_COLORS, CategoryForm, FolderForm, Platform, ProfileForm
from .storage import THEME_DARK, THEME_LIGHT
from .views import SortMode, category_path

logger = setup_logger(__name__)

PROG = "keepy"
_SORT_CHOICES = [m.value for m in SortMode]
_PLATFORM_CHOICES = [p.value for p in Platform]


def _die(msg: str, rc: int = 2) -> int:
    print(f"[{PROG}] ERROR: {msg}", file=sys.stderr)
    return rc


def _confirm(assume_yes: bool):
    def ask(message: str) -> bool:
        if assume_yes:
            return True
        try:
            answer = input(f"{message} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ('y', 'yes')
    return ask


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--search', default='', help="Case-insensitive text search")
    parser.add_argument('--folder', default=None, help="Folder id to scope to")
    parser.add_argument('--category', default=None, help="Category id (root or sub) to scope to")
    parser.add_argument('--platform', choices=_PLATFORM_CHOICES, default=None, help="Platform filter")
    parser.add_argument('--sort', choices=_SORT_CHOICES, default=None, help="Profile sort mode")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog=PROG, description="Organize social-media profiles and links")
    parser.add_argument('--config', default=None, help="Config file path")
    parser.add_argument('--data-dir', default=None, help="Data directory override")
    parser.add_argument('--log-level', default=None, help="Logging level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('login', help="Unlock with the access code")
    p.add_argument('code', nargs='?', default=None, help="Access code (prompted if omitted)")
    sub.add_parser('logout', help="Lock again")

    p = sub.add_parser('theme', help="Show or change the theme")
    p.add_argument('mode', nargs='?', choices=[THEME_DARK, THEME_LIGHT, 'toggle'], default=None)

    # Folders
    folder = sub.add_parser('folder', help="Manage folders").add_subparsers(dest='action', required=True)
    folder.add_parser('list', help="List folders")
    p = folder.add_parser('add', help="Create a folder")
    p.add_argument('name')
    p = folder.add_parser('rename', help="Rename a folder")
    p.add_argument('id')
    p.add_argument('name')
    p = folder.add_parser('rm', help="Delete a folder (its categories are kept)")
    p.add_argument('id')
    p.add_argument('--yes', action='store_true', help="Do not ask for confirmation")

    # Categories
    category = sub.add_parser('category', help="Manage categories").add_subparsers(dest='action', required=True)
    p = category.add_parser('add', help="Create a category or subcategory")
    p.add_argument('name')
    p.add_argument('--color', default=PASTEL_COLORS[0], help="Hex color (ignored for subcategories)")
    p.add_argument('--folder', default='', help="Folder id for a root category")
    p.add_argument('--parent', default='', help="Parent category id for a subcategory")
    p.add_argument('--unfiled', action='store_true', help="Save a root category without a folder")
    p = category.add_parser('edit', help="Edit a category")
    p.add_argument('id')
    p.add_argument('--name', default=None)
    p.add_argument('--color', default=None)
    p.add_argument('--folder', default=None)
    p.add_argument('--parent', default=None)
    p.add_argument('--unfiled', action='store_true')
    p = category.add_parser('rm', help="Delete a category and its subcategories")
    p.add_argument('id')
    p.add_argument('--yes', action='store_true', help="Do not ask for confirmation")

    p = sub.add_parser('tree', help="Show folders, categories and subcategories")
    p.add_argument('--sort', choices=_SORT_CHOICES, default=None, help="Folder/category sort mode")

    # Profiles
    profile = sub.add_parser('profile', help="Manage profiles").add_subparsers(dest='action', required=True)
    p = profile.add_parser('add', help="Save a profile")
    p.add_argument('username', help="Handle or pasted URL")
    p.add_argument('--category', required=True, help="Category id")
    p.add_argument('--platform', choices=_PLATFORM_CHOICES, default=None, help="Detected from URL if omitted")
    p.add_argument('--name', default='', help="Display name")
    p.add_argument('--notes', default='')
    p = profile.add_parser('edit', help="Edit a profile")
    p.add_argument('id')
    p.add_argument('--username', default=None)
    p.add_argument('--category', default=None)
    p.add_argument('--platform', choices=_PLATFORM_CHOICES, default=None)
    p.add_argument('--name', default=None)
    p.add_argument('--notes', default=None)
    p = profile.add_parser('rm', help="Delete a profile")
    p.add_argument('id')
    p.add_argument('--yes', action='store_true', help="Do not ask for confirmation")
    p = profile.add_parser('show', help="Show one profile")
    p.add_argument('id')

    p = sub.add_parser('list', help="List profiles in the current view")
    _add_filter_args(p)

    p = sub.add_parser('share', help="Print or save the grouped text report")
    _add_filter_args(p)
    p.add_argument('--out', default=None, help="Write the report to this file instead of stdout")

    p = sub.add_parser('export', help="Write a date-stamped JSON backup")
    p.add_argument('--dir', default='.', help="Target directory")

    p = sub.add_parser('import', help="Restore a JSON backup (replaces everything)")
    p.add_argument('file')
    p.add_argument('--yes', action='store_true', help="Do not ask for confirmation")

    return parser


def _apply_filters(app: KeepyApp, args: argparse.Namespace) -> None:
    app.set_search(args.search)
    app.select_folder(args.folder)
    app.select_category(args.category)
    app.set_platform_filter(Platform(args.platform) if args.platform else None)
    if args.sort:
        app.set_profile_sort(SortMode(args.sort))


def _print_profiles(app: KeepyApp) -> None:
    folders = app.store.folders
    categories = app.store.categories
    profiles = app.filtered_profiles()
    print(f"{app.title()} ({len(profiles)})")
    for profile in profiles:
        path = category_path(folders, categories, profile.category_id) or "Uncategorized"
        print(f"  {profile.id}  {display_title(profile)}  [{profile.platform.value}]  {path}")


def _print_tree(app: KeepyApp) -> None:
    for group in app.category_tree():
        folder_id = group.folder.id if group.folder else '-'
        print(f"{group.name}  ({folder_id})")
        for node in group.roots:
            print(f"  {node.category.name}  {node.category.color}  ({node.category.id})")
            for child in node.children:
                print(f"    ↳ {child.name}  ({child.id})")


def _run_folder(app: KeepyApp, args: argparse.Namespace) -> int:
    if args.action == 'list':
        for group in app.category_tree():
            if group.folder:
                print(f"{group.folder.id}  {group.folder.name}  ({len(group.roots)} categories)")
        return 0
    if args.action == 'add':
        folder = app.store.create_folder(FolderForm(name=args.name))
        if folder is None:
            return _die("Folder name is required")
        print(folder.id)
        return 0
    if args.action == 'rename':
        if app.store.rename_folder(args.id, FolderForm(name=args.name)) is None:
            return _die(f"Cannot rename folder {args.id}")
        return 0
    if not app.delete_folder(args.id, _confirm(args.yes)):
        return _die(f"Folder {args.id} not deleted", rc=1)
    return 0


def _run_category(app: KeepyApp, args: argparse.Namespace) -> int:
    if args.action == 'add':
        form = CategoryForm(
            name=args.name,
            color=args.color,
            parent_id=args.parent,
            folder_id=args.folder,
            unfiled=args.unfiled,
        )
        category = app.store.save_category(form)
        if category is None:
            return _die("Category needs a name and a folder, a parent, or --unfiled")
        print(category.id)
        return 0

    if args.action == 'edit':
        existing = app.store.get_category(args.id)
        if existing is None:
            return _die(f"Unknown category {args.id}")
        form = CategoryForm(
            name=existing.name,
            color=existing.color,
            parent_id=existing.parent_id or '',
            folder_id=existing.folder_id or '',
        )
        if args.name is not None:
            form.name = args.name
        if args.color is not None:
            form.color = args.color
        if args.folder is not None:
            form = replace(form, folder_id=args.folder, parent_id='')
        if args.parent is not None:
            form.parent_id = args.parent
        if args.unfiled:
            form = replace(form, folder_id='', unfiled=True)
        if app.store.save_category(form, args.id) is None:
            if app.store.is_parent_locked(args.id) and form.parent_id:
                return _die("A category with subcategories cannot become a subcategory")
            return _die("Category edit rejected")
        return 0

    removed = app.delete_category(args.id, _confirm(args.yes))
    if not removed:
        return _die(f"Category {args.id} not deleted", rc=1)
    print(f"Deleted {len(removed)} categor(ies)")
    return 0


def _run_profile(app: KeepyApp, args: argparse.Namespace) -> int:
    if args.action == 'add':
        platform = Platform(args.platform) if args.platform else (
            detect_platform(args.username) or Platform.INSTAGRAM
        )
        form = ProfileForm(
            username=args.username,
            platform=platform,
            category_id=args.category,
            notes=args.notes,
            display_name=args.name,
        )
        if app.store.get_category(args.category) is None:
            return _die(f"Unknown category {args.category}")
        profile = app.store.save_profile(form)
        if profile is None:
            return _die("Profile needs a username and a category")
        print(profile.id)
        return 0

    if args.action == 'edit':
        existing = app.store.get_profile(args.id)
        if existing is None:
            return _die(f"Unknown profile {args.id}")
        form = ProfileForm(
            username=existing.username if args.username is None else args.username,
            platform=existing.platform if args.platform is None else Platform(args.platform),
            category_id=existing.category_id if args.category is None else args.category,
            notes=existing.notes if args.notes is None else args.notes,
            display_name=(existing.display_name or '') if args.name is None else args.name,
        )
        if app.store.save_profile(form, args.id) is None:
            return _die("Profile needs a username and a category")
        return 0

    if args.action == 'show':
        profile = app.store.get_profile(args.id)
        if profile is None:
            return _die(f"Unknown profile {args.id}")
        path = category_path(app.store.folders, app.store.categories, profile.category_id)
        print(display_title(profile))
        print(f"  link:     {profile_link(profile)}")
        print(f"  platform: {profile.platform.value}")
        print(f"  category: {path or 'Uncategorized'}")
        if profile.notes:
            print(f"  notes:    {profile.notes}")
        return 0

    if not app.delete_profile(args.id, _confirm(args.yes)):
        return _die(f"Profile {args.id} not deleted", rc=1)
    return 0


def _run(app: KeepyApp, args: argparse.Namespace) -> int:
    if args.command == 'login':
        code = args.code if args.code is not None else getpass.getpass("Access code: ")
        if not app.login(code):
            return _die("Incorrect access code", rc=1)
        print("Unlocked")
        return 0

    if args.command == 'logout':
        app.logout()
        return 0

    if not app.is_authenticated:
        return _die(f"Locked. Run '{PROG} login' first", rc=1)

    if args.command == 'theme':
        if args.mode == 'toggle':
            app.toggle_theme()
        elif args.mode:
            app.set_theme(args.mode)
        print(app.theme)
        return 0
    if args.command == 'folder':
        return _run_folder(app, args)
    if args.command == 'category':
        return _run_category(app, args)
    if args.command == 'tree':
        if args.sort:
            app.set_category_sort(SortMode(args.sort))
        _print_tree(app)
        return 0
    if args.command == 'profile':
        return _run_profile(app, args)
    if args.command == 'list':
        _apply_filters(app, args)
        _print_profiles(app)
        return 0
    if args.command == 'share':
        _apply_filters(app, args)
        if args.out:
            def write(text: str) -> None:
                with open(args.out, 'w', encoding='utf-8') as f:
                    f.write(text)
            result = app.share(clipboard_sink=write)
        else:
            result = app.share(clipboard_sink=lambda text: sys.stdout.write(text))
        if not result.ok:
            return _die(result.message, rc=1)
        return 0
    if args.command == 'export':
        print(app.export_backup(args.dir))
        return 0
    if args.command == 'import':
        if not _confirm(args.yes)("Importing replaces all folders, categories and profiles. Continue?"):
            return 1
        result = app.import_backup(args.file)
        if not result.ok:
            return _die(result.message, rc=1)
        print(result.message)
        return 0

    return _die(f"Unknown command {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the keepy command."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(args.config)
    except FileNotFoundError as e:
        return _die(str(e))
    if args.data_dir:
        config.set('storage.data_dir', args.data_dir)
    if args.log_level:
        config.set('logging.level', args.log_level)
    setup_logger(PROG, level=config.log_level, log_file=config.log_file)

    try:
        app = KeepyApp(config=config)
        return _run(app, args)
    except (OSError, ValueError) as e:
        logger.error("Storage error: %s", e)
        return _die(f"Storage error: {e}", rc=3)


if __name__ == "__main__":
    raise SystemExit(main())
