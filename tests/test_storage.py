"""Unit tests for persistence."""

import json

import pytest

from keepy.models import Category, Folder, Platform, Profile
from keepy.storage import KeepyStorage, LocalStorage, migrate_profile_records


class TestLocalStorage:
    """Tests for the directory-backed key/value store."""

    def test_missing_key_returns_none(self, local_storage):
        """Test reading a key that was never written."""
        assert local_storage.get_item('nothing') is None

    def test_set_get_remove(self, local_storage):
        """Test the basic key lifecycle."""
        local_storage.set_item('k', '"v"')
        assert local_storage.get_item('k') == '"v"'
        local_storage.remove_item('k')
        assert local_storage.get_item('k') is None

    def test_remove_missing_key_is_ignored(self, local_storage):
        """Test removing an unknown key."""
        local_storage.remove_item('never-written')

    def test_one_file_per_key(self, local_storage):
        """Test the on-disk layout."""
        local_storage.set_item('keepy_profiles', '[]')
        assert (local_storage.data_dir / 'keepy_profiles.json').exists()


class TestMigration:
    """Tests for legacy profile migration."""

    def test_twitter_and_missing_platform(self):
        """Test that legacy tags are rewritten and counted."""
        records = [
            {'id': '1', 'platform': 'twitter'},
            {'id': '2'},
            {'id': '3', 'platform': 'tiktok'},
        ]
        migrated, changed = migrate_profile_records(records)
        assert [r['platform'] for r in migrated] == ['x', 'instagram', 'tiktok']
        assert changed == 2
        # Input records are not modified
        assert records[0]['platform'] == 'twitter'


class TestKeepyStorage:
    """Tests for the persistence adapter."""

    def test_empty_storage_loads_empty_collections(self, keepy_storage):
        """Test first start."""
        assert keepy_storage.load_folders() == []
        assert keepy_storage.load_categories() == []
        assert keepy_storage.load_profiles() == []

    def test_collections_round_trip(self, keepy_storage):
        """Test saving and loading every collection."""
        folders = [Folder(id='f', name='Life', created_at=1)]
        categories = [Category(id='c', name='Travel', color='#BAE1FF', folder_id='f', created_at=2)]
        profiles = [Profile(id='p', username='jane', category_id='c', created_at=3)]
        keepy_storage.save_folders(folders)
        keepy_storage.save_categories(categories)
        keepy_storage.save_profiles(profiles)

        assert keepy_storage.load_folders() == folders
        assert keepy_storage.load_categories() == categories
        assert keepy_storage.load_profiles() == profiles

    def test_separate_keys(self, keepy_storage, local_storage):
        """Test that each collection has its own key."""
        keepy_storage.save_folders([])
        keepy_storage.save_categories([])
        keepy_storage.save_profiles([])
        for name in ('folders', 'categories', 'profiles'):
            assert local_storage.get_item(f'keepy_{name}') == '[]'

    def test_legacy_profiles_migrated_on_load(self, keepy_storage, local_storage):
        """Test that stored legacy profiles load with current tags."""
        local_storage.set_item('keepy_profiles', json.dumps([
            {'id': '1', 'username': 'jack', 'platform': 'twitter', 'categoryId': '', 'notes': '', 'createdAt': 1},
            {'id': '2', 'username': 'jane', 'categoryId': '', 'notes': '', 'createdAt': 2},
        ]))
        profiles = keepy_storage.load_profiles()
        assert [p.platform for p in profiles] == [Platform.X, Platform.INSTAGRAM]

    def test_non_list_payload_rejected(self, keepy_storage, local_storage):
        """Test that a corrupt collection raises instead of being overwritten."""
        local_storage.set_item('keepy_categories', '{"not": "a list"}')
        with pytest.raises(ValueError):
            keepy_storage.load_categories()

    def test_theme_flag(self, keepy_storage, local_storage):
        """Test the theme flag defaults to light and persists dark."""
        assert keepy_storage.load_theme() == 'light'
        keepy_storage.save_theme('dark')
        assert local_storage.get_item('keepy_theme') == 'dark'
        assert keepy_storage.load_theme() == 'dark'

    def test_auth_flag(self, keepy_storage, local_storage):
        """Test setting and clearing the access flag."""
        assert keepy_storage.is_authenticated() is False
        keepy_storage.set_authenticated(True)
        assert local_storage.get_item('keepy_auth') == 'true'
        assert keepy_storage.is_authenticated() is True
        keepy_storage.set_authenticated(False)
        assert local_storage.get_item('keepy_auth') is None

    def test_key_prefix(self, local_storage):
        """Test a custom key prefix."""
        storage = KeepyStorage(local_storage, key_prefix='other')
        storage.save_folders([])
        assert local_storage.get_item('other_folders') == '[]'
        assert isinstance(storage, KeepyStorage)
        assert isinstance(local_storage, LocalStorage)
