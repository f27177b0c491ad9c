from __future__ import annotations

import logging

from ..errors import MalformedRequestError, StorageFailureError
from .paths import PathResolver, ResolvedPath, join_logical
from .storage import Storage

logger = logging.getLogger(__name__)


class DirectoryCreator:
    def __init__(self, resolver: PathResolver, storage: Storage):
        self.resolver = resolver
        self.storage = storage

    def create(self, parent: ResolvedPath, name: str | None) -> ResolvedPath:
        if not name:
            raise MalformedRequestError('Directory name is required')

        target = self.resolver.resolve(join_logical(parent.logical, name))
        try:
            self.storage.makedirs(target.fs_path)
        except OSError as exc:
            logger.error('Failed to create directory %s', target.fs_path, exc_info=True)
            raise StorageFailureError('Failed to create directory') from exc

        logger.info('Created directory %s', target.logical)
        return target
