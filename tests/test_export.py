"""Unit tests for the text report and JSON backup."""

import json
from datetime import date

import pytest

from keepy.export import (
    ALL_PROFILES_TITLE,
    BackupFormatError,
    backup_filename,
    build_snapshot,
    build_text_report,
    dump_snapshot,
    parse_backup,
    report_title,
    share_title,
)
from keepy.models import Platform

from conftest import make_category, make_folder, make_profile


@pytest.fixture
def hierarchy():
    folders = [make_folder('f1', 'Work'), make_folder('f2', 'Life')]
    categories = [
        make_category('a', 'Travel', folder_id='f2'),
        make_category('a1', 'Hiking', parent_id='a'),
        make_category('a2', 'Food', parent_id='a'),
        make_category('b', 'Design', folder_id='f1'),
        make_category('c', 'Archive'),
    ]
    return folders, categories


class TestTextReport:
    """Tests for the grouped share report."""

    def test_full_report(self, hierarchy):
        """Test grouping, ordering and line format."""
        folders, categories = hierarchy
        profiles = [
            make_profile('p1', 'wanderer', category_id='a'),
            make_profile('p2', 'trails.com', category_id='a1', platform=Platform.WEBSITE),
            make_profile('p3', 'chef', category_id='a2', platform=Platform.TIKTOK, display_name='Street Chef'),
            make_profile('p4', 'dribbler', category_id='b', platform=Platform.X),
            make_profile('p5', 'old', category_id='c'),
        ]
        report = build_text_report(profiles, folders, categories)
        assert report == (
            "📂 All Profiles\n"
            "(Shared via Keepy)\n"
            "\n"
            "📁 Life\n"
            "  Travel:\n"
            "  • [Instagram] wanderer: https://instagram.com/wanderer\n"
            "    ↳ Food:\n"
            "    • [Tiktok] Street Chef: https://tiktok.com/@chef\n"
            "    ↳ Hiking:\n"
            "    • [Web] trails.com: https://trails.com\n"
            "\n"
            "📁 Work\n"
            "  Design:\n"
            "  • [X] dribbler: https://x.com/dribbler\n"
            "\n"
            "📁 Unfiled\n"
            "  Archive:\n"
            "  • [Instagram] old: https://instagram.com/old\n"
        )

    def test_empty_groups_omitted(self, hierarchy):
        """Test that folders and categories without profiles are not printed."""
        folders, categories = hierarchy
        report = build_text_report([make_profile('p4', 'dribbler', category_id='b')], folders, categories)
        assert 'Work' in report
        assert 'Life' not in report
        assert 'Travel' not in report
        assert 'Unfiled' not in report

    def test_uncategorized_and_dangling_skipped(self, hierarchy):
        """Test that profiles with no resolvable category are left out."""
        folders, categories = hierarchy
        profiles = [
            make_profile('p1', 'nobody', category_id=''),
            make_profile('p2', 'ghost', category_id='deleted'),
        ]
        report = build_text_report(profiles, folders, categories, title='Everything')
        assert report == "📂 Everything\n(Shared via Keepy)\n"

    def test_profile_order_within_group_kept(self, hierarchy):
        """Test that profiles keep the order of the filtered view."""
        folders, categories = hierarchy
        profiles = [
            make_profile('p1', 'zeta', category_id='b'),
            make_profile('p2', 'alpha', category_id='b'),
        ]
        report = build_text_report(profiles, folders, categories)
        assert report.index('zeta') < report.index('alpha')

    def test_titles(self, hierarchy):
        """Test report and share titles."""
        folders, categories = hierarchy
        assert report_title(folders, categories) == ALL_PROFILES_TITLE
        assert report_title(folders, categories, folder_id='f1') == 'Work'
        assert report_title(folders, categories, category_id='a1', folder_id='f1') == 'Hiking'
        assert share_title('Hiking') == 'Keepy List: Hiking'


class TestSnapshot:
    """Tests for the backup document."""

    def test_snapshot_contents(self, hierarchy):
        """Test that every collection is included with version and timestamp."""
        folders, categories = hierarchy
        profiles = [make_profile('p1', 'wanderer', category_id='a', created_at=5)]
        snapshot = build_snapshot(folders, categories, profiles, version=2, exported_at=1234)

        assert snapshot['version'] == 2
        assert snapshot['exportedAt'] == 1234
        assert [f['id'] for f in snapshot['folders']] == ['f1', 'f2']
        assert len(snapshot['categories']) == 5
        assert snapshot['profiles'][0]['username'] == 'wanderer'

    def test_dump_is_pretty_utf8(self):
        """Test JSON text formatting."""
        text = dump_snapshot({'folders': [{'name': 'Café'}]})
        assert 'Café' in text
        assert '\n  ' in text

    def test_round_trip(self, hierarchy):
        """Test that a dumped snapshot parses back to the same records."""
        folders, categories = hierarchy
        profiles = [make_profile('p1', 'wanderer', category_id='a', created_at=5)]
        backup = parse_backup(dump_snapshot(build_snapshot(folders, categories, profiles, exported_at=9)))

        assert backup.folders == folders
        assert backup.categories == categories
        assert backup.profiles == profiles
        assert backup.exported_at == 9

    def test_backup_filename(self):
        """Test date-stamped filenames."""
        assert backup_filename('keepy-backup', date(2026, 3, 1)) == 'keepy-backup-2026-03-01.json'


class TestParseBackup:
    """Tests for backup validation."""

    def test_folders_optional(self):
        """Test that backups from before folders existed are accepted."""
        backup = parse_backup(json.dumps({
            'categories': [{'id': '1', 'name': 'Travel', 'color': '#BAE1FF'}],
            'profiles': [],
        }))
        assert backup.folders == []
        assert backup.version == 1

    def test_legacy_platform_migrated(self):
        """Test that imported profiles get current platform tags."""
        backup = parse_backup(json.dumps({
            'categories': [],
            'profiles': [
                {'id': '1', 'username': 'jack', 'platform': 'twitter', 'categoryId': ''},
                {'id': '2', 'username': 'jane', 'categoryId': ''},
            ],
        }))
        assert [p.platform for p in backup.profiles] == [Platform.X, Platform.INSTAGRAM]

    @pytest.mark.parametrize('value', ['Infinity', '-Infinity', 'NaN'])
    def test_non_finite_created_at_ignored(self, value):
        """Test that non-finite timestamps fall back like missing ones."""
        backup = parse_backup(
            '{"folders": [{"id": "f", "name": "Life", "createdAt": %s}],'
            ' "categories": [{"id": "7", "name": "Travel", "createdAt": %s}],'
            ' "profiles": [{"id": "p", "username": "a", "createdAt": %s}]}'
            % (value, value, value)
        )
        assert backup.folders[0].created_at == 0
        assert backup.categories[0].created_at == 7
        assert backup.profiles[0].created_at == 0

    @pytest.mark.parametrize('text', [
        'not json',
        '[]',
        '{"profiles": []}',
        '{"categories": []}',
        '{"categories": {}, "profiles": []}',
        '{"categories": [], "profiles": [], "folders": "x"}',
        '{"categories": [1], "profiles": []}',
    ])
    def test_invalid_documents_rejected(self, text):
        """Test that malformed documents raise BackupFormatError."""
        with pytest.raises(BackupFormatError):
            parse_backup(text)

    def test_error_is_value_error(self):
        """Test that callers can catch ValueError."""
        with pytest.raises(ValueError):
            parse_backup('{}')
