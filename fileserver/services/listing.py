from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..errors import StorageFailureError
from .paths import ResolvedPath, join_logical
from .storage import Storage

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass(frozen=True)
class Entry:
    name: str
    path: str
    is_dir: bool
    size: int
    updated_at: str


def format_mtime(mtime: float) -> str:
    return datetime.fromtimestamp(mtime).strftime(TIMESTAMP_FORMAT)


class DirectoryLister:
    def __init__(self, storage: Storage):
        self.storage = storage

    def list(self, resolved: ResolvedPath) -> list[Entry]:
        """Entries of ``resolved`` in directory order; empty if it does not exist yet."""
        try:
            items = self.storage.scan(resolved.fs_path)
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.error('Failed to read directory %s', resolved.fs_path, exc_info=True)
            raise StorageFailureError('Failed to read directory') from exc

        return [
            Entry(
                name=item.name,
                path=join_logical(resolved.logical, item.name),
                is_dir=item.is_dir,
                size=0 if item.is_dir else item.size,
                updated_at=format_mtime(item.mtime),
            )
            for item in items
        ]
