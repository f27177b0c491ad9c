from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from fileserver.errors import StorageFailureError
from fileserver.services.listing import DirectoryLister
from fileserver.services.paths import PathResolver
from fileserver.services.storage import MemoryStorage

ROOT = Path('/srv/files')
NOW = 1_700_000_000.0


def _setup():
    storage = MemoryStorage(clock=lambda: NOW)
    storage.makedirs(ROOT)
    return PathResolver(ROOT, storage), DirectoryLister(storage), storage


def test_list_missing_directory_returns_empty():
    resolver, lister, _ = _setup()

    assert lister.list(resolver.resolve('/never/created')) == []


def test_list_reports_logical_paths_and_sizes():
    resolver, lister, storage = _setup()
    storage.makedirs(ROOT / 'docs' / 'sub')
    storage.files[ROOT / 'docs' / 'a.txt'] = (b'0123456789', NOW)

    entries = {entry.name: entry for entry in lister.list(resolver.resolve('docs/'))}

    assert set(entries) == {'a.txt', 'sub'}
    assert entries['a.txt'].path == '/docs/a.txt'
    assert entries['a.txt'].is_dir is False
    assert entries['a.txt'].size == 10
    assert entries['sub'].path == '/docs/sub'
    assert entries['sub'].is_dir is True
    assert entries['sub'].size == 0


def test_list_root_builds_paths_from_root():
    resolver, lister, storage = _setup()
    storage.files[ROOT / 'top.bin'] = (b'x', NOW)

    [entry] = lister.list(resolver.resolve('/'))

    assert entry.path == '/top.bin'


def test_list_formats_modification_time_to_seconds():
    resolver, lister, storage = _setup()
    storage.files[ROOT / 'a.txt'] = (b'', NOW + 0.75)

    [entry] = lister.list(resolver.resolve('/'))

    assert entry.updated_at == datetime.fromtimestamp(NOW + 0.75).strftime('%Y-%m-%d %H:%M:%S')
    assert len(entry.updated_at) == len('2024-01-01 00:00:00')


def test_list_of_a_file_is_a_storage_failure():
    resolver, lister, storage = _setup()
    storage.files[ROOT / 'a.txt'] = (b'abc', NOW)

    with pytest.raises(StorageFailureError) as exc:
        lister.list(resolver.resolve('/a.txt'))

    assert exc.value.status_code == 500
    assert exc.value.message == 'Failed to read directory'


def test_list_permission_error_does_not_leak_details():
    resolver, _, storage = _setup()

    class _DeniedStorage(MemoryStorage):
        def scan(self, path):
            raise PermissionError(13, 'Permission denied', '/srv/files/private')

    lister = DirectoryLister(_DeniedStorage())

    with pytest.raises(StorageFailureError) as exc:
        lister.list(resolver.resolve('/private'))

    assert '/srv/files' not in exc.value.message
