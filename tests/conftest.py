"""
Pytest Fixtures for Keepy Tests

Provides temporary storage, a deterministic id generator, and a small
sample hierarchy used across the test files.
"""

import pytest
import yaml

from keepy.app import KeepyApp
from keepy.config import Config
from keepy.models import (
    Category,
    CategoryForm,
    Folder,
    FolderForm,
    IdGenerator,
    Platform,
    Profile,
    ProfileForm,
)
from keepy.storage import KeepyStorage, LocalStorage
from keepy.store import EntityStore


ACCESS_CODE = 'test-code'


@pytest.fixture
def id_generator():
    """Id generator with a frozen clock: ids are 1000, 1001, 1002, ..."""
    return IdGenerator(clock=lambda: 1000)


@pytest.fixture
def local_storage(tmp_path):
    """Directory-backed key/value storage in a temporary directory."""
    return LocalStorage(str(tmp_path / 'data'))


@pytest.fixture
def keepy_storage(local_storage):
    """Persistence adapter over the temporary storage."""
    return KeepyStorage(local_storage, key_prefix='keepy')


@pytest.fixture
def store(keepy_storage, id_generator):
    """Empty entity store writing through to temporary storage."""
    store = EntityStore(storage=keepy_storage, id_generator=id_generator)
    store.load()
    return store


@pytest.fixture
def sample(store):
    """
    Populate the store with:

    Life (folder)
      Travel (root, blue)
        Hiking (sub)
        Food (sub)
    Work (folder)
      Design (root, green)
    """
    life = store.create_folder(FolderForm(name='Life'))
    work = store.create_folder(FolderForm(name='Work'))
    travel = store.save_category(CategoryForm(name='Travel', color='#BAE1FF', folder_id=life.id))
    hiking = store.save_category(CategoryForm(name='Hiking', color='#FFB3BA', parent_id=travel.id))
    food = store.save_category(CategoryForm(name='Food', parent_id=travel.id))
    design = store.save_category(CategoryForm(name='Design', color='#BAFFC9', folder_id=work.id))

    p_travel = store.save_profile(ProfileForm(
        username='wanderer', platform=Platform.INSTAGRAM, category_id=travel.id,
        notes='travel photos', display_name='Wanderer'))
    p_hiking = store.save_profile(ProfileForm(
        username='trails.com', platform=Platform.WEBSITE, category_id=hiking.id,
        notes='maps'))
    p_food = store.save_profile(ProfileForm(
        username='@chef', platform=Platform.TIKTOK, category_id=food.id,
        display_name='Street Chef'))
    p_design = store.save_profile(ProfileForm(
        username='dribbler', platform=Platform.X, category_id=design.id,
        notes='UI inspiration'))

    return {
        'life': life, 'work': work,
        'travel': travel, 'hiking': hiking, 'food': food, 'design': design,
        'p_travel': p_travel, 'p_hiking': p_hiking, 'p_food': p_food, 'p_design': p_design,
    }


@pytest.fixture
def config_file(tmp_path):
    """Config file pointing storage at a temporary directory."""
    path = tmp_path / 'config.yaml'
    with open(path, 'w') as f:
        yaml.dump({
            'storage': {'data_dir': str(tmp_path / 'app-data'), 'key_prefix': 'keepy'},
            'auth': {'access_code': ACCESS_CODE},
            'views': {'profile_sort': 'newest', 'category_sort': 'a-z'},
            'backup': {'version': 2, 'filename_prefix': 'keepy-backup'},
            'logging': {'level': 'WARNING', 'file': None},
        }, f)
    return str(path)


@pytest.fixture
def config(config_file, monkeypatch):
    """Config loaded from the temporary config file, free of env overrides."""
    for name in ('KEEPY_DATA_DIR', 'KEEPY_ACCESS_CODE', 'KEEPY_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    return Config(config_file)


@pytest.fixture
def app(config, id_generator):
    """Application over temporary storage."""
    return KeepyApp(config=config, id_generator=id_generator)


def make_category(id, name, color='#BAE1FF', parent_id=None, folder_id=None, created_at=0):
    """Build a Category without going through the store."""
    return Category(id=id, name=name, color=color, parent_id=parent_id,
                    folder_id=folder_id, created_at=created_at)


def make_profile(id, username, category_id='', platform=Platform.INSTAGRAM,
                 display_name=None, notes='', created_at=0):
    """Build a Profile without going through the store."""
    return Profile(id=id, username=username, platform=platform, category_id=category_id,
                   notes=notes, created_at=created_at, display_name=display_name)


def make_folder(id, name, created_at=0):
    """Build a Folder without going through the store."""
    return Folder(id=id, name=name, created_at=created_at)
