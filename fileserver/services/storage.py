from __future__ import annotations

import io
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Protocol

logger = logging.getLogger(__name__)

_FILE_MODE = 0o644


@dataclass(frozen=True)
class StatResult:
    name: str
    is_dir: bool
    size: int
    mtime: float


class Storage(Protocol):
    """Filesystem operations used by the file services.

    Paths handed to a storage are already confined to the storage root.
    Implementations raise the usual ``OSError`` subclasses.
    """

    def scan(self, path: Path) -> list[StatResult]:
        ...

    def stat(self, path: Path) -> StatResult | None:
        ...

    def makedirs(self, path: Path) -> None:
        ...

    def open_atomic(self, target: Path):
        ...

    def realpath(self, path: Path) -> Path:
        ...


def _fsync_dir(path: Path) -> None:
    dir_fd = os.open(str(path), os.O_RDONLY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


class LocalStorage:
    def scan(self, path: Path) -> list[StatResult]:
        items: list[StatResult] = []
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    st = entry.stat()
                except OSError:
                    # dangling or looping symlink, or entry removed while scanning
                    logger.debug('Skipping unreadable entry %s', entry.path, exc_info=True)
                    continue
                items.append(StatResult(entry.name, entry.is_dir(), st.st_size, st.st_mtime))
        return items

    def stat(self, path: Path) -> StatResult | None:
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        return StatResult(path.name, path.is_dir(), st.st_size, st.st_mtime)

    def makedirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def open_atomic(self, target: Path) -> Iterator[BinaryIO]:
        """Yield a handle whose content replaces ``target`` only on a clean exit."""
        fd, tmp_path = tempfile.mkstemp(prefix=f'.{target.name}.', suffix='.part', dir=str(target.parent))
        try:
            os.fchmod(fd, _FILE_MODE)
            with os.fdopen(fd, 'wb') as handle:
                yield handle
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
            _fsync_dir(target.parent)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def realpath(self, path: Path) -> Path:
        return Path(os.path.realpath(path))


class MemoryStorage:
    """In-memory tree for tests. No symlinks, no permissions."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self.dirs: dict[Path, float] = {}
        self.files: dict[Path, tuple[bytes, float]] = {}

    def _children(self, path: Path) -> Iterator[Path]:
        for child in list(self.dirs) + list(self.files):
            if child.parent == path and child != path:
                yield child

    def scan(self, path: Path) -> list[StatResult]:
        if path in self.files:
            raise NotADirectoryError(str(path))
        if path not in self.dirs:
            raise FileNotFoundError(str(path))
        items = [self.stat(child) for child in self._children(path)]
        return [item for item in items if item is not None]

    def stat(self, path: Path) -> StatResult | None:
        if path in self.dirs:
            return StatResult(path.name, True, 0, self.dirs[path])
        if path in self.files:
            data, mtime = self.files[path]
            return StatResult(path.name, False, len(data), mtime)
        return None

    def makedirs(self, path: Path) -> None:
        for candidate in [path, *path.parents]:
            if candidate in self.files:
                raise FileExistsError(str(candidate))
        for candidate in [*reversed(path.parents), path]:
            self.dirs.setdefault(candidate, self._clock())

    @contextmanager
    def open_atomic(self, target: Path) -> Iterator[BinaryIO]:
        if target.parent not in self.dirs:
            raise FileNotFoundError(str(target.parent))
        if target in self.dirs:
            raise IsADirectoryError(str(target))
        buffer = io.BytesIO()
        yield buffer
        self.files[target] = (buffer.getvalue(), self._clock())

    def realpath(self, path: Path) -> Path:
        return path
