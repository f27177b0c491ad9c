from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path

from ..errors import InvalidPathError
from .storage import Storage

logger = logging.getLogger(__name__)

ROOT = '/'


@dataclass(frozen=True)
class ResolvedPath:
    """A location confined to the storage root.

    ``fs_path`` is the lexical join of the root and the normalized logical
    path; ``logical`` is the normalized client-facing form, always starting
    with ``/``.
    """

    fs_path: Path
    logical: str

    @property
    def is_root(self) -> bool:
        return self.logical == ROOT

    @property
    def name(self) -> str:
        return posixpath.basename(self.logical)


def normalize_logical_path(logical: str | None) -> str:
    """Collapse separators and dot segments; return '' for the root.

    Leading separators are dropped first so that ``/../x`` keeps its ``..``
    instead of being clamped to ``/x``.
    """
    raw = (logical or '').replace('\\', '/')
    if '\x00' in raw:
        raise InvalidPathError()
    relative = posixpath.normpath(raw.lstrip('/') or '.')
    return '' if relative == '.' else relative


def join_logical(parent: str, name: str) -> str:
    return f"{parent.rstrip('/')}/{name}"


class PathResolver:
    def __init__(self, storage_root: str | os.PathLike, storage: Storage, reject_symlink_escape: bool = True):
        self.root = Path(os.path.abspath(storage_root))
        self.storage = storage
        self.reject_symlink_escape = reject_symlink_escape

    def resolve(self, logical: str | None) -> ResolvedPath:
        try:
            relative = normalize_logical_path(logical)
        except InvalidPathError:
            logger.warning('Rejected malformed path %r', logical)
            raise

        joined = os.path.join(self.root, relative) if relative else str(self.root)
        rel = os.path.relpath(joined, self.root)
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            logger.warning('Rejected path escaping storage root: %r', logical)
            raise InvalidPathError()

        fs_path = Path(joined)
        if self.reject_symlink_escape and not self._canonically_inside(fs_path):
            logger.warning('Rejected path leaving storage root through a symlink: %r', logical)
            raise InvalidPathError()

        return ResolvedPath(fs_path=fs_path, logical=ROOT + relative)

    def _canonically_inside(self, fs_path: Path) -> bool:
        base = self.storage.realpath(self.root)
        candidate = self.storage.realpath(fs_path)
        return base == candidate or base in candidate.parents

    def ensure_root(self) -> None:
        self.storage.makedirs(self.root)
